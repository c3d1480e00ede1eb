"""
Subscription status computation.

Status is derived from the stored status and the paid period dates:

    blocked (stored)            -> blocked   (only an explicit unblock reverses it)
    today <= end_date           -> active
    today <= grace_period_end   -> expired   (inside the grace window)
    otherwise                   -> blocked

Date comparisons are inclusive: a subscription is still active on its end date.
"""
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Union

from swiftlink.core.config import settings
from swiftlink.models import Subscription


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def add_grace_period(end_date: date, days: Optional[int] = None) -> date:
    """Grace window end for a paid period ending on end_date."""
    if days is None:
        days = settings.grace_period_days
    return end_date + timedelta(days=days)


def compute_status(subscription, today: Optional[date] = None) -> str:
    """
    Compute the lifecycle status of a subscription.

    Args:
        subscription: Anything exposing status, end_date and grace_period_end,
            or None when the user has no subscription row
        today: Reference date (defaults to the current UTC date)

    Returns:
        "active", "expired" or "blocked"
    """
    # No row means the free plan, which never lapses
    if subscription is None:
        return "active"

    if subscription.status == "blocked":
        return "blocked"

    today = today or utc_today()
    if today <= subscription.end_date:
        return "active"
    if subscription.grace_period_end is not None and today <= subscription.grace_period_end:
        return "expired"
    return "blocked"


@dataclass(frozen=True)
class StoredSubscription:
    """A subscription backed by a database row."""

    row: Subscription
    kind: str = "stored"


@dataclass(frozen=True)
class VirtualSubscription:
    """Free/active default for a user with no subscription row."""

    user_id: uuid.UUID
    role: Optional[str]
    start_date: date
    end_date: date
    grace_period_end: date
    plan: str = "free"
    status: str = "active"
    monthly_price: Decimal = Decimal("0.00")
    kind: str = "virtual"

    @classmethod
    def for_user(cls, user_id: uuid.UUID, role: Optional[str], today: Optional[date] = None) -> "VirtualSubscription":
        today = today or utc_today()
        return cls(
            user_id=user_id,
            role=role,
            start_date=today,
            end_date=today,
            grace_period_end=today,
        )


CurrentSubscription = Union[StoredSubscription, VirtualSubscription]
