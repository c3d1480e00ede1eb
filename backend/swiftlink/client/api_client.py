"""
Async HTTP client for the SwiftLink billing and subscription endpoints.
"""
from typing import Any, Dict, Optional

import httpx

DEFAULT_TIMEOUT_SECONDS = 15.0


class BillingApiError(Exception):
    """Non-2xx or unreadable answer from the API."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class BillingApiClient:
    """
    Authenticated client for the billing API.

    Args:
        base_url: API root, e.g. "https://api.example.com/api"
        access_token: Bearer token of the signed-in user
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "BillingApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = await self._client.request(method, path, **kwargs)
        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            detail = data.get("detail", response.text) if isinstance(data, dict) else response.text
            raise BillingApiError(response.status_code, str(detail))
        # Proxies and captive portals can answer 200 with an HTML page
        if not isinstance(data, dict):
            raise BillingApiError(response.status_code, "Invalid JSON response")
        return data

    async def start_checkout(self, plan: str) -> str:
        """Start a Stripe checkout and return the hosted checkout URL."""
        data = await self._request("POST", "/billing/checkout", json={"plan": plan})
        if not data.get("url"):
            raise BillingApiError(502, "Stripe checkout session did not return a URL")
        return data["url"]

    async def confirm_checkout(self, session_id: str) -> Dict[str, Any]:
        return await self._request("GET", "/billing/confirm", params={"session_id": session_id})

    async def get_my_subscription(self) -> Dict[str, Any]:
        return await self._request("GET", "/subscriptions/me")

    async def open_portal(self) -> str:
        """Return the Stripe billing portal URL."""
        data = await self._request("POST", "/billing/portal")
        return data["url"]
