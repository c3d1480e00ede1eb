"""
Checkout reconciliation poller.

After Stripe redirects back with a session id, the webhook may not have been
processed yet. The poller asks the API to confirm the session once (best
effort), then reads the subscription up to max_attempts times until it shows
the paid plan as active.

Exhausting the attempts is not an error: the payment went through and only
the subscription update is late, so the caller shows a "reload" message.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import parse_qs, urlparse

import httpx

from swiftlink.client.api_client import BillingApiClient, BillingApiError
from swiftlink.core.plans import PAID_PLANS

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 12
DEFAULT_INTERVAL_SECONDS = 1.0
DEFAULT_REDIRECT_DELAY_SECONDS = 0.8

CONFIRMING_MESSAGE = "Payment confirmed. Updating your subscription..."
SUCCESS_MESSAGE = "Payment successful. Redirecting to your dashboard..."
DELAYED_MESSAGE = (
    "Payment received, but the plan update is taking longer than expected. "
    "Reload the page in a few seconds."
)

DASHBOARD_ROUTES = {
    "admin": "/admin/dashboard",
    "restaurant": "/restaurant/dashboard",
    "driver": "/driver/dashboard",
}


def dashboard_route(role: Optional[str]) -> str:
    return DASHBOARD_ROUTES.get(role, "/login")


@dataclass(frozen=True)
class CheckoutRedirect:
    """Query parameters Stripe sends the browser back with."""

    status: Optional[str]
    session_id: Optional[str]
    plan: Optional[str]

    @property
    def is_success(self) -> bool:
        return self.status == "success" and bool(self.session_id)


def parse_checkout_redirect(url: str) -> Optional[CheckoutRedirect]:
    """Read checkout/session_id/plan from a redirect-back URL, None if absent."""
    query = parse_qs(urlparse(url).query)
    status = query.get("checkout", [None])[0]
    if status is None:
        return None
    return CheckoutRedirect(
        status=status,
        session_id=query.get("session_id", [None])[0],
        plan=query.get("plan", [None])[0],
    )


def is_reconciled(subscription: Optional[Dict[str, Any]], selected_plan: Optional[str]) -> bool:
    """
    Whether the subscription reflects the completed checkout.

    Any active paid plan counts: a concurrent webhook may have applied a
    different paid plan than the one selected.
    """
    if not subscription or subscription.get("status") != "active":
        return False
    plan = subscription.get("plan")
    return plan == selected_plan or plan in PAID_PLANS


class PollOutcome(str, Enum):
    CONFIRMED = "confirmed"
    DELAYED = "delayed"
    CANCELLED = "cancelled"


@dataclass
class PollResult:
    outcome: PollOutcome
    attempts: int
    subscription: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    redirect_to: Optional[str] = None


class CheckoutReconciliationPoller:
    """
    Bounded, cancellable wait for a checkout to show up in the subscription.

    cancel() stops further attempts; a request already in flight is not
    aborted, its result is simply ignored.
    """

    def __init__(
        self,
        client: BillingApiClient,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        redirect_delay_seconds: float = DEFAULT_REDIRECT_DELAY_SECONDS,
        on_message: Optional[Callable[[str], None]] = None,
        on_navigate: Optional[Callable[[str], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds
        self.redirect_delay_seconds = redirect_delay_seconds
        self.on_message = on_message
        self.on_navigate = on_navigate
        self._sleep = sleep
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def _notify(self, message: str) -> None:
        if self.on_message is not None:
            self.on_message(message)

    def start(self, session_id: str, selected_plan: Optional[str], role: Optional[str]) -> "asyncio.Task[PollResult]":
        """Run the poller as a task on the current event loop."""
        return asyncio.ensure_future(self.run(session_id, selected_plan, role))

    async def run(self, session_id: str, selected_plan: Optional[str], role: Optional[str]) -> PollResult:
        """
        Confirm the checkout and poll the subscription until it is reconciled.

        Args:
            session_id: Stripe checkout session id from the redirect
            selected_plan: Plan the user picked
            role: User role, selects the dashboard to navigate to

        Returns:
            PollResult describing how the wait ended
        """
        self._notify(CONFIRMING_MESSAGE)

        try:
            await self.client.confirm_checkout(session_id)
        except (httpx.HTTPError, BillingApiError) as e:
            # The webhook may still reconcile the session
            logger.warning(f"Checkout confirmation failed for {session_id}: {e}")

        subscription = None
        for attempt in range(1, self.max_attempts + 1):
            if self._cancelled:
                return PollResult(PollOutcome.CANCELLED, attempt - 1, subscription)

            try:
                subscription = await self.client.get_my_subscription()
            except (httpx.HTTPError, BillingApiError) as e:
                logger.info(f"Subscription read failed (attempt {attempt}/{self.max_attempts}): {e}")
                subscription = None

            if self._cancelled:
                return PollResult(PollOutcome.CANCELLED, attempt, subscription)

            if is_reconciled(subscription, selected_plan):
                route = dashboard_route(role)
                self._notify(SUCCESS_MESSAGE)
                await self._sleep(self.redirect_delay_seconds)
                if self._cancelled:
                    return PollResult(PollOutcome.CANCELLED, attempt, subscription)
                if self.on_navigate is not None:
                    self.on_navigate(route)
                return PollResult(PollOutcome.CONFIRMED, attempt, subscription, SUCCESS_MESSAGE, route)

            if attempt < self.max_attempts:
                await self._sleep(self.interval_seconds)

        if self._cancelled:
            return PollResult(PollOutcome.CANCELLED, self.max_attempts, subscription)

        self._notify(DELAYED_MESSAGE)
        return PollResult(PollOutcome.DELAYED, self.max_attempts, subscription, DELAYED_MESSAGE)
