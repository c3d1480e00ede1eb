"""
Client-side helpers for the billing flow.

Used after the browser returns from Stripe checkout to wait until the
subscription reflects the payment.
"""
from swiftlink.client.api_client import BillingApiClient, BillingApiError
from swiftlink.client.checkout_poller import (
    CheckoutReconciliationPoller,
    CheckoutRedirect,
    PollOutcome,
    PollResult,
    dashboard_route,
    is_reconciled,
    parse_checkout_redirect,
)

__all__ = [
    "BillingApiClient",
    "BillingApiError",
    "CheckoutReconciliationPoller",
    "CheckoutRedirect",
    "PollOutcome",
    "PollResult",
    "dashboard_route",
    "is_reconciled",
    "parse_checkout_redirect",
]
