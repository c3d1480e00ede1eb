"""
Unit tests for billing service.

Tests checkout session creation (role and plan gating, metadata, redirect
URLs) and billing portal sessions.
"""
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import stripe

from swiftlink.core.errors import Forbidden, InvalidPlan, Misconfigured, MissingCustomer, UpstreamFailure
from swiftlink.core.plans import PlanCatalog
from swiftlink.models import Subscription
from swiftlink.services.billing import BillingService

CATALOG = PlanCatalog(price_references={"pro": "price_pro_test", "ultimate": "price_ultimate_test"})


@pytest.fixture
def billing():
    return BillingService(catalog=CATALOG, frontend_url="https://app.swiftlink.test/")


def checkout_mock():
    return MagicMock(id="cs_test_123", url="https://checkout.stripe.com/c/pay/cs_test_123")


class TestStartCheckout:
    """Stripe checkout session creation."""

    @patch("stripe.checkout.Session.create")
    def test_pro_checkout_for_restaurant(self, mock_create, billing, restaurant_user):
        """Restaurant buying pro gets a hosted checkout URL."""
        mock_create.return_value = checkout_mock()

        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            result = billing.start_checkout(restaurant_user, "pro")

        assert result == {"url": "https://checkout.stripe.com/c/pay/cs_test_123"}

        kwargs = mock_create.call_args.kwargs
        assert kwargs["mode"] == "subscription"
        assert kwargs["line_items"] == [{"price": "price_pro_test", "quantity": 1}]
        assert kwargs["customer_email"] == "restaurant@test.com"
        assert kwargs["allow_promotion_codes"] is True

    @patch("stripe.checkout.Session.create")
    def test_metadata_links_session_to_user(self, mock_create, billing, driver_user):
        mock_create.return_value = checkout_mock()

        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            billing.start_checkout(driver_user, "ultimate")

        kwargs = mock_create.call_args.kwargs
        assert kwargs["metadata"] == {
            "user_id": str(driver_user.id),
            "role": "driver",
            "plan": "ultimate",
        }
        assert kwargs["line_items"][0]["price"] == "price_ultimate_test"

    @patch("stripe.checkout.Session.create")
    def test_redirect_urls(self, mock_create, billing, restaurant_user):
        mock_create.return_value = checkout_mock()

        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            billing.start_checkout(restaurant_user, "pro")

        kwargs = mock_create.call_args.kwargs
        assert kwargs["success_url"] == (
            "https://app.swiftlink.test/pricing?checkout=success"
            "&session_id={CHECKOUT_SESSION_ID}&plan=pro"
        )
        assert kwargs["cancel_url"] == "https://app.swiftlink.test/pricing?checkout=cancel"

    @patch("stripe.checkout.Session.create")
    def test_admin_cannot_subscribe(self, mock_create, billing, admin_user):
        with pytest.raises(Forbidden):
            billing.start_checkout(admin_user, "pro")
        mock_create.assert_not_called()

    @patch("stripe.checkout.Session.create")
    def test_roleless_user_cannot_subscribe(self, mock_create, billing, roleless_user):
        with pytest.raises(Forbidden):
            billing.start_checkout(roleless_user, "pro")
        mock_create.assert_not_called()

    @patch("stripe.checkout.Session.create")
    def test_free_plan_is_not_purchasable(self, mock_create, billing, restaurant_user):
        with pytest.raises(InvalidPlan):
            billing.start_checkout(restaurant_user, "free")
        mock_create.assert_not_called()

    @patch("stripe.checkout.Session.create")
    def test_unknown_plan_rejected(self, mock_create, billing, restaurant_user):
        with pytest.raises(InvalidPlan):
            billing.start_checkout(restaurant_user, "enterprise")
        mock_create.assert_not_called()

    @patch("stripe.checkout.Session.create")
    def test_missing_price_id_is_misconfigured(self, mock_create, restaurant_user):
        billing = BillingService(catalog=PlanCatalog(price_references={"pro": ""}))

        with pytest.raises(Misconfigured):
            billing.start_checkout(restaurant_user, "pro")
        mock_create.assert_not_called()

    @patch("stripe.checkout.Session.create")
    def test_missing_secret_key_is_misconfigured(self, mock_create, billing, restaurant_user):
        with patch("swiftlink.services.stripe_gateway.stripe.api_key", None):
            with pytest.raises(Misconfigured):
                billing.start_checkout(restaurant_user, "pro")
        mock_create.assert_not_called()

    @patch("stripe.checkout.Session.create")
    def test_stripe_failure_is_upstream_failure(self, mock_create, billing, restaurant_user):
        mock_create.side_effect = stripe.APIConnectionError("Request timed out")

        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            with pytest.raises(UpstreamFailure):
                billing.start_checkout(restaurant_user, "pro")

    @patch("stripe.checkout.Session.create")
    def test_checkout_writes_no_subscription(self, mock_create, billing, db, restaurant_user):
        mock_create.return_value = checkout_mock()

        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            billing.start_checkout(restaurant_user, "pro")

        assert db.query(Subscription).count() == 0


class TestPortalSession:
    """Stripe billing portal sessions."""

    @patch("stripe.billing_portal.Session.create")
    def test_portal_for_stripe_customer(self, mock_create, billing, db, restaurant_user):
        db.add(Subscription(
            user_id=restaurant_user.id,
            role="restaurant",
            plan="pro",
            status="active",
            start_date=date(2026, 1, 1),
            end_date=date(2026, 1, 31),
            grace_period_end=date(2026, 2, 3),
            monthly_price=Decimal("9.99"),
            stripe_customer_id="cus_123",
        ))
        db.commit()
        mock_create.return_value = MagicMock(url="https://billing.stripe.com/p/session/test")

        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            result = billing.create_portal_session(restaurant_user, db)

        assert result == {"url": "https://billing.stripe.com/p/session/test"}
        mock_create.assert_called_once_with(
            customer="cus_123",
            return_url="https://app.swiftlink.test/pricing",
        )

    @patch("stripe.billing_portal.Session.create")
    def test_portal_without_customer(self, mock_create, billing, db, restaurant_user):
        with pytest.raises(MissingCustomer):
            billing.create_portal_session(restaurant_user, db)
        mock_create.assert_not_called()
