"""
Billing service for Stripe checkout and the customer billing portal.

Checkout sessions carry user_id/role/plan metadata, which is the only link
the reconciler has back to our users. No subscription row is written here;
rows only change once payment completes.
"""
from typing import Dict, Optional

from sqlalchemy.orm import Session

from swiftlink.core.config import settings
from swiftlink.core.errors import Forbidden, InvalidPlan, Misconfigured, MissingCustomer
from swiftlink.core.plans import SUBSCRIBER_ROLES, PlanCatalog, is_paid_plan
from swiftlink.models import User
from swiftlink.services.stripe_gateway import StripeGateway, stripe_gateway
from swiftlink.services.subscription import SubscriptionService, subscription_service
import logging

logger = logging.getLogger(__name__)


class BillingService:
    """Creates Stripe checkout and billing portal sessions."""

    def __init__(
        self,
        catalog: Optional[PlanCatalog] = None,
        gateway: Optional[StripeGateway] = None,
        subscriptions: Optional[SubscriptionService] = None,
        frontend_url: Optional[str] = None,
    ):
        self.catalog = catalog or PlanCatalog.from_settings()
        self.gateway = gateway or stripe_gateway
        self.subscriptions = subscriptions or subscription_service
        self.frontend_url = (frontend_url or settings.frontend_url).rstrip("/")

    def success_url(self, plan: str) -> str:
        # Stripe substitutes {CHECKOUT_SESSION_ID} when redirecting back
        return (
            f"{self.frontend_url}/pricing?checkout=success"
            f"&session_id={{CHECKOUT_SESSION_ID}}&plan={plan}"
        )

    def cancel_url(self) -> str:
        return f"{self.frontend_url}/pricing?checkout=cancel"

    def start_checkout(self, user: User, plan: str) -> Dict[str, str]:
        """
        Create a Stripe checkout session for a paid plan.

        Args:
            user: Authenticated user profile (must be a restaurant or driver)
            plan: Paid plan to purchase (pro or ultimate)

        Returns:
            Dictionary with the Stripe-hosted checkout url

        Raises:
            Forbidden: role cannot subscribe
            InvalidPlan: plan is not a paid plan
            Misconfigured: no Stripe price ID for the plan in this environment
        """
        if user.role not in SUBSCRIBER_ROLES:
            raise Forbidden("Only restaurant/driver accounts can subscribe")
        if not is_paid_plan(plan):
            raise InvalidPlan("Invalid paid plan")

        price = self.catalog.price_reference(plan)
        if not price:
            raise Misconfigured(f'Missing Stripe price id for plan "{plan}"')

        session = self.gateway.create_checkout_session(
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": price, "quantity": 1}],
            success_url=self.success_url(plan),
            cancel_url=self.cancel_url(),
            customer_email=user.email or None,
            allow_promotion_codes=True,
            metadata={
                "user_id": str(user.id),
                "role": user.role,
                "plan": plan,
            },
        )

        logger.info(f"Created Stripe checkout session for user {user.id} ({plan}): {session.id}")

        return {"url": session.url}

    def create_portal_session(self, user: User, db: Session) -> Dict[str, str]:
        """
        Create a Stripe billing portal session for the user's latest subscription.

        Args:
            user: Authenticated user profile
            db: Database session

        Returns:
            Dictionary with the portal url
        """
        subscription = self.subscriptions.latest_for_user(db, user.id)
        if subscription is None or not subscription.stripe_customer_id:
            raise MissingCustomer("No Stripe customer found for this account")

        session = self.gateway.create_portal_session(
            customer_id=subscription.stripe_customer_id,
            return_url=f"{self.frontend_url}/pricing",
        )

        logger.info(f"Created Stripe billing portal session for user {user.id}")

        return {"url": session.url}


# Global service instance
billing_service = BillingService()
