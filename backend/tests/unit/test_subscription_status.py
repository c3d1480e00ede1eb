"""
Unit tests for subscription status computation.

Covers the inclusive date boundaries of the paid period and grace window,
and the sticky blocked status.
"""
import uuid
from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace

from swiftlink.services.subscription_status import (
    VirtualSubscription,
    add_grace_period,
    compute_status,
)

END = date(2026, 3, 31)


def make_subscription(status="active", end_date=END, grace_period_end=None):
    if grace_period_end is None:
        grace_period_end = end_date + timedelta(days=3)
    return SimpleNamespace(status=status, end_date=end_date, grace_period_end=grace_period_end)


class TestComputeStatus:
    """Status as a function of the reference date."""

    def test_no_subscription_is_active(self):
        """Users without a row are on the free plan, which never lapses."""
        assert compute_status(None, today=END) == "active"

    def test_before_end_date_is_active(self):
        assert compute_status(make_subscription(), today=END - timedelta(days=10)) == "active"

    def test_end_date_itself_is_active(self):
        assert compute_status(make_subscription(), today=END) == "active"

    def test_grace_window_is_expired(self):
        subscription = make_subscription()
        for offset in (1, 2, 3):
            assert compute_status(subscription, today=END + timedelta(days=offset)) == "expired"

    def test_after_grace_window_is_blocked(self):
        assert compute_status(make_subscription(), today=END + timedelta(days=4)) == "blocked"

    def test_blocked_is_sticky(self):
        """A stored blocked status survives dates that would make it active."""
        subscription = make_subscription(status="blocked")
        assert compute_status(subscription, today=END - timedelta(days=10)) == "blocked"

    def test_expired_row_recovers_when_dates_move(self):
        """Only blocked is sticky; an expired row with a renewed period is active."""
        subscription = make_subscription(status="expired", end_date=END + timedelta(days=30))
        assert compute_status(subscription, today=END + timedelta(days=2)) == "active"

    def test_missing_grace_period_blocks_after_end(self):
        subscription = SimpleNamespace(status="active", end_date=END, grace_period_end=None)
        assert compute_status(subscription, today=END + timedelta(days=1)) == "blocked"


class TestGracePeriod:

    def test_default_grace_is_three_days(self):
        assert add_grace_period(END) == date(2026, 4, 3)

    def test_custom_grace_days(self):
        assert add_grace_period(END, days=7) == date(2026, 4, 7)


class TestVirtualSubscription:
    """Free/active default for users with no row."""

    def test_for_user_uses_today_for_all_dates(self):
        user_id = uuid.uuid4()
        virtual = VirtualSubscription.for_user(user_id, "driver", today=END)

        assert virtual.user_id == user_id
        assert virtual.role == "driver"
        assert virtual.plan == "free"
        assert virtual.status == "active"
        assert virtual.monthly_price == Decimal("0.00")
        assert virtual.start_date == END
        assert virtual.end_date == END
        assert virtual.grace_period_end == END
        assert virtual.kind == "virtual"
