"""
Pydantic schemas for API request/response validation.
"""
from swiftlink.schemas.subscription import (
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionDetail,
    VirtualSubscriptionDetail,
    SubscriptionOwner,
    SubscriptionWithUser,
    SubscriptionCreate,
    SubscriptionUpdate,
    RefreshStatusesResponse,
    CheckoutRequest,
    CheckoutResponse,
    ConfirmCheckoutResponse,
    PortalResponse,
    WebhookAck,
)

__all__ = [
    "SubscriptionPlan",
    "SubscriptionStatus",
    "SubscriptionDetail",
    "VirtualSubscriptionDetail",
    "SubscriptionOwner",
    "SubscriptionWithUser",
    "SubscriptionCreate",
    "SubscriptionUpdate",
    "RefreshStatusesResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "ConfirmCheckoutResponse",
    "PortalResponse",
    "WebhookAck",
]
