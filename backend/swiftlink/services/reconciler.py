"""
Checkout reconciliation.

The only code path that creates or advances subscription rows from payment
events. Two triggers converge on the same idempotent upsert:
- the Stripe webhook (checkout.session.completed), after signature checks
- the confirmation pull made by the browser right after redirect-back

Running it twice for the same session leaves one row with the same values.
"""
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from swiftlink.core.errors import Forbidden, InvalidCheckoutSession, MissingMetadata, PaymentIncomplete
from swiftlink.core.plans import SUBSCRIBER_ROLES, PlanCatalog, is_valid_plan
from swiftlink.models import Subscription, User
from swiftlink.services.stripe_gateway import StripeGateway, stripe_gateway
from swiftlink.services.subscription import SubscriptionService, subscription_service
from swiftlink.services.subscription_status import add_grace_period, utc_today
import logging

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"

# Stripe subscription status -> internal status
_ACTIVE_STRIPE_STATUSES = ("active", "trialing")
_EXPIRED_STRIPE_STATUSES = ("past_due", "unpaid")


def _field(obj: Any, key: str, default: Any = None) -> Any:
    """Read a key from a Stripe object or plain dict."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        value = obj.get(key)
    else:
        try:
            value = obj[key]
        except (KeyError, TypeError):
            value = getattr(obj, key, None)
    return default if value is None else value


def _object_id(value: Any) -> Optional[str]:
    """Id of a Stripe reference that may be a bare id or an expanded object."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return _field(value, "id")


def status_from_stripe(stripe_status: Optional[str]) -> str:
    """Map a Stripe subscription status onto active / expired / blocked."""
    if stripe_status in _ACTIVE_STRIPE_STATUSES:
        return "active"
    if stripe_status in _EXPIRED_STRIPE_STATUSES:
        return "expired"
    return "blocked"


def _to_date(timestamp: Optional[int]) -> Optional[date]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).date()


def _period_bounds(stripe_subscription: Any):
    """
    Current period start/end of a Stripe subscription.

    Newer Stripe API versions report the period on subscription items rather
    than on the subscription itself.
    """
    start = _field(stripe_subscription, "current_period_start")
    end = _field(stripe_subscription, "current_period_end")
    if start is None or end is None:
        items = _field(_field(stripe_subscription, "items"), "data", [])
        if items:
            start = start if start is not None else _field(items[0], "current_period_start")
            end = end if end is not None else _field(items[0], "current_period_end")
    return _to_date(start), _to_date(end)


class CheckoutReconciler:
    """Upserts subscription rows from completed Stripe checkout sessions."""

    def __init__(
        self,
        catalog: Optional[PlanCatalog] = None,
        gateway: Optional[StripeGateway] = None,
        subscriptions: Optional[SubscriptionService] = None,
    ):
        self.catalog = catalog or PlanCatalog.from_settings()
        self.gateway = gateway or stripe_gateway
        self.subscriptions = subscriptions or subscription_service

    def _stripe_subscription(self, checkout_session: Any):
        """Linked Stripe subscription, fetched unless already expanded."""
        linked = _field(checkout_session, "subscription")
        if linked is None:
            return None
        if isinstance(linked, str):
            return self.gateway.retrieve_subscription(linked)
        return linked

    def build_values(self, checkout_session: Any, plan: str) -> Dict[str, Any]:
        """
        Column values for the subscription row described by a checkout session.

        Args:
            checkout_session: Completed Stripe checkout session
            plan: Plan from the session metadata

        Returns:
            Dictionary of subscription column values
        """
        stripe_subscription = self._stripe_subscription(checkout_session)

        start_date = end_date = None
        if stripe_subscription is not None:
            start_date, end_date = _period_bounds(stripe_subscription)
            status = status_from_stripe(_field(stripe_subscription, "status"))
        else:
            # One-off completion with no recurring object
            status = "active"

        today = utc_today()
        start_date = start_date or today
        end_date = end_date or today

        return {
            "plan": plan,
            "status": status,
            "start_date": start_date,
            "end_date": end_date,
            "grace_period_end": add_grace_period(end_date),
            "monthly_price": self.catalog.monthly_price(plan),
            "stripe_customer_id": _object_id(_field(checkout_session, "customer")),
            "stripe_subscription_id": _object_id(_field(checkout_session, "subscription")),
        }

    def reconcile(self, checkout_session: Any, db: Session) -> Subscription:
        """
        Upsert the subscription row for a completed checkout session.

        Args:
            checkout_session: Stripe checkout session (webhook object or retrieved)
            db: Database session

        Returns:
            The stored subscription row

        Raises:
            MissingMetadata: user_id, role or plan absent from the session
        """
        metadata = _field(checkout_session, "metadata", {})
        user_id = _field(metadata, "user_id")
        role = _field(metadata, "role")
        plan = _field(metadata, "plan")

        if not user_id or not role or not plan:
            raise MissingMetadata("Missing checkout metadata for subscription sync")

        try:
            user_uuid = uuid.UUID(str(user_id))
        except ValueError as e:
            raise MissingMetadata(f"Invalid user_id in checkout metadata: {user_id}") from e
        if role not in SUBSCRIBER_ROLES:
            raise MissingMetadata(f"Role cannot subscribe in checkout metadata: {role}")
        if not is_valid_plan(plan):
            raise MissingMetadata(f"Unknown plan in checkout metadata: {plan}")

        values = self.build_values(checkout_session, plan)
        subscription = self.subscriptions.upsert_lineage(db, user_uuid, role, values)

        logger.info(
            f"Reconciled checkout session {_field(checkout_session, 'id')} for user {user_uuid} "
            f"({role}): plan={plan} status={subscription.status} end_date={subscription.end_date}"
        )
        return subscription

    def confirm_checkout(self, session_id: str, user: User, db: Session) -> Subscription:
        """
        Reconcile a checkout session on behalf of the user who paid for it.

        The session is re-fetched from Stripe; client-supplied state is not trusted.

        Raises:
            InvalidCheckoutSession: missing id or not a subscription-mode session
            Forbidden: session belongs to another user
            PaymentIncomplete: session is not paid yet
        """
        if not session_id:
            raise InvalidCheckoutSession("Missing session_id")

        checkout_session = self.gateway.retrieve_checkout_session(session_id)
        if not checkout_session or _field(checkout_session, "mode") != "subscription":
            raise InvalidCheckoutSession("Invalid checkout session")

        metadata_user_id = _field(_field(checkout_session, "metadata", {}), "user_id")
        if not metadata_user_id or str(metadata_user_id) != str(user.id):
            raise Forbidden("Session does not belong to this user")

        payment_status = _field(checkout_session, "payment_status")
        if payment_status != "paid":
            raise PaymentIncomplete(f"Payment not completed (status: {payment_status})")

        return self.reconcile(checkout_session, db)

    def handle_event(self, event: Any, db: Session) -> bool:
        """
        Process a verified Stripe webhook event.

        Returns:
            True if the event triggered reconciliation, False if it was ignored
        """
        event_type = _field(event, "type")
        if event_type != CHECKOUT_COMPLETED:
            logger.debug(f"Ignoring Stripe event type: {event_type}")
            return False

        self.reconcile(_field(_field(event, "data"), "object"), db)
        return True


# Global reconciler instance
checkout_reconciler = CheckoutReconciler()
