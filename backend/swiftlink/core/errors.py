"""
Billing error taxonomy.

Each error carries the HTTP status it maps to on the API boundary. Services
raise these; the FastAPI exception handler in main.py renders them.
"""
from fastapi import status


class BillingError(Exception):
    """Base class for subscription and billing errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Forbidden(BillingError):
    """Role or ownership violation."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidPlan(BillingError):
    pass


class InvalidStatus(BillingError):
    pass


class InvalidDates(BillingError):
    """Grace period would end before the paid period."""


class InvalidCheckoutSession(BillingError):
    """Checkout session is unknown or not a subscription-mode session."""


class Misconfigured(BillingError):
    """
    Deployment is missing a required secret or Stripe reference.

    Not caused by the request; logged at critical level.
    """


class MissingMetadata(BillingError):
    """Checkout session lacks the user_id/role/plan correlation metadata."""


class PaymentIncomplete(BillingError):
    pass


class InvalidSignature(BillingError):
    """Webhook payload failed Stripe signature verification."""


class NotFound(BillingError):

    status_code = status.HTTP_404_NOT_FOUND


class UpstreamFailure(BillingError):
    """Stripe call failed or timed out."""

    status_code = status.HTTP_502_BAD_GATEWAY


class MissingCustomer(BillingError):
    """No Stripe customer is stored for the account."""


class Conflict(BillingError):
    """Change would give the user a second row for the same role."""

    status_code = status.HTTP_409_CONFLICT
