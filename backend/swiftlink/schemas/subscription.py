"""
Pydantic schemas for subscription and billing operations.
"""
import uuid
from datetime import date, datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


SubscriptionPlan = Literal["free", "pro", "ultimate"]
SubscriptionStatus = Literal["active", "expired", "blocked"]


class SubscriptionBase(BaseModel):
    """Fields shared by stored and virtual subscriptions."""
    user_id: uuid.UUID
    role: Optional[str] = None
    plan: SubscriptionPlan
    status: SubscriptionStatus
    start_date: date
    end_date: date
    grace_period_end: Optional[date] = None
    monthly_price: float


class SubscriptionDetail(SubscriptionBase):
    """A persisted subscription row."""
    kind: Literal["stored"] = "stored"
    id: uuid.UUID
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VirtualSubscriptionDetail(SubscriptionBase):
    """Free/active default for users without a subscription row. Never persisted."""
    kind: Literal["virtual"] = "virtual"


class SubscriptionOwner(BaseModel):
    """Owning user summary shown in the admin list."""
    id: uuid.UUID
    full_name: Optional[str] = None
    email: str
    role: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SubscriptionWithUser(SubscriptionDetail):
    """Subscription row with its owner, for the admin list."""
    user: Optional[SubscriptionOwner] = None


class SubscriptionCreate(BaseModel):
    """Admin request to create (or supersede) a subscription lineage."""
    user_id: uuid.UUID
    role: str = Field(..., min_length=1)
    plan: str = "free"
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class SubscriptionUpdate(BaseModel):
    """
    Allow-listed admin update.

    Only the named fields may be changed; unknown keys are rejected.
    """
    role: Optional[str] = None
    plan: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    grace_period_end: Optional[date] = None
    monthly_price: Optional[float] = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")


class RefreshStatusesResponse(BaseModel):
    """Rows whose status changed during a refresh sweep."""
    updated: List[SubscriptionDetail]


# Stripe checkout schemas
class CheckoutRequest(BaseModel):
    """Request to start a Stripe checkout for a paid plan."""
    plan: str = Field(..., description="Plan to purchase (pro or ultimate)")


class CheckoutResponse(BaseModel):
    """Stripe-hosted checkout URL."""
    url: str = Field(..., description="URL to redirect the browser to Stripe checkout")


class ConfirmCheckoutResponse(BaseModel):
    success: bool = True


class PortalResponse(BaseModel):
    """Stripe billing portal URL."""
    url: str = Field(..., description="URL to redirect the browser to the Stripe billing portal")


class WebhookAck(BaseModel):
    received: bool = True
