"""
Thin adapter over the Stripe SDK.

Every outbound call carries the configured timeout, and Stripe failures are
translated into the billing error taxonomy:
- missing API key / webhook secret -> Misconfigured
- unknown checkout session         -> InvalidCheckoutSession
- bad webhook signature or payload -> InvalidSignature
- any other Stripe error/timeout   -> UpstreamFailure
"""
import logging
from typing import Any, Dict, Optional

import stripe

from swiftlink.core.config import settings
from swiftlink.core.errors import (
    InvalidCheckoutSession,
    InvalidSignature,
    Misconfigured,
    UpstreamFailure,
)

logger = logging.getLogger(__name__)

# Initialize Stripe with API key from settings
stripe.api_key = settings.stripe_secret_key or None


class StripeGateway:
    """Stripe operations used by checkout, reconciliation and the billing portal."""

    def __init__(self, timeout_seconds: Optional[int] = None):
        self.timeout_seconds = timeout_seconds or settings.stripe_timeout_seconds
        self._http_client_installed = False

    def ensure_configured(self) -> None:
        if not stripe.api_key:
            raise Misconfigured("Stripe is not configured. Missing STRIPE_SECRET_KEY.")
        if not self._http_client_installed:
            stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout_seconds)
            self._http_client_installed = True

    def create_checkout_session(self, **params: Any):
        """Create a hosted checkout session."""
        self.ensure_configured()
        try:
            return stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session creation failed: {e}")
            raise UpstreamFailure(f"Payment provider error: {e.user_message or str(e)}") from e

    def retrieve_checkout_session(self, session_id: str):
        """Retrieve a checkout session with its subscription expanded."""
        self.ensure_configured()
        try:
            return stripe.checkout.Session.retrieve(session_id, expand=["subscription"])
        except stripe.InvalidRequestError as e:
            logger.warning(f"Unknown checkout session {session_id}: {e}")
            raise InvalidCheckoutSession("Invalid checkout session") from e
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session retrieval failed for {session_id}: {e}")
            raise UpstreamFailure(f"Payment provider error: {e.user_message or str(e)}") from e

    def retrieve_subscription(self, subscription_id: str):
        """Retrieve a Stripe subscription for its period and status."""
        self.ensure_configured()
        try:
            return stripe.Subscription.retrieve(subscription_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe subscription retrieval failed for {subscription_id}: {e}")
            raise UpstreamFailure(f"Payment provider error: {e.user_message or str(e)}") from e

    def create_portal_session(self, customer_id: str, return_url: str):
        """Create a billing portal session for self-service management."""
        self.ensure_configured()
        try:
            return stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe billing portal session creation failed: {e}")
            raise UpstreamFailure(f"Payment provider error: {e.user_message or str(e)}") from e

    def construct_webhook_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook payload's signature and decode it.

        Args:
            payload: Raw request body
            signature: Value of the stripe-signature header

        Returns:
            Decoded Stripe event
        """
        self.ensure_configured()
        if not settings.stripe_webhook_secret:
            raise Misconfigured("Stripe webhook secret not configured. Missing STRIPE_WEBHOOK_SECRET.")
        if not signature:
            raise InvalidSignature("Missing stripe-signature header")

        try:
            return stripe.Webhook.construct_event(
                payload, signature, settings.stripe_webhook_secret
            )
        except ValueError as e:
            raise InvalidSignature("Invalid payload") from e
        except stripe.SignatureVerificationError as e:
            raise InvalidSignature("Invalid signature") from e


# Global gateway instance
stripe_gateway = StripeGateway()
