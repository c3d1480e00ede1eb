"""
Unit tests for the daily subscription status refresh task.
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from swiftlink.models import Subscription
from swiftlink.services.subscription_status import utc_today
from swiftlink.tasks.subscription_tasks import refresh_subscription_statuses


class TestRefreshTask:

    def test_refresh_reports_changed_rows(self, db, restaurant_user):
        today = utc_today()
        lapsed = Subscription(
            user_id=restaurant_user.id,
            role="restaurant",
            plan="pro",
            status="active",
            start_date=today - timedelta(days=40),
            end_date=today - timedelta(days=10),
            grace_period_end=today - timedelta(days=7),
            monthly_price=Decimal("9.99"),
        )
        db.add(lapsed)
        db.commit()

        with patch("swiftlink.tasks.subscription_tasks.SessionLocal", return_value=db):
            result = refresh_subscription_statuses()

        assert result == {"updated": 1, "subscription_ids": [str(lapsed.id)]}

    def test_failure_rolls_back_and_reraises(self):
        session = MagicMock()

        with patch("swiftlink.tasks.subscription_tasks.SessionLocal", return_value=session), \
                patch(
                    "swiftlink.tasks.subscription_tasks.subscription_service.refresh_statuses",
                    side_effect=RuntimeError("database unavailable"),
                ):
            with pytest.raises(RuntimeError):
                refresh_subscription_statuses()

        session.rollback.assert_called_once()
        session.close.assert_called_once()
