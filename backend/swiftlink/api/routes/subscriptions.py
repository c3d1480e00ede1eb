"""
API endpoints for subscriptions.

Endpoints:
- GET /subscriptions/me - Current subscription (stored row or free default)
- POST /subscriptions/refresh-statuses - Recompute every status (admin)
- GET /subscriptions - List all subscriptions with owners (admin)
- POST /subscriptions - Create a subscription lineage (admin)
- PUT /subscriptions/{id} - Allow-listed update (admin)
- PUT /subscriptions/{id}/block - Force blocked (admin)
- PUT /subscriptions/{id}/unblock - Force active (admin)
"""
import uuid
from typing import List, Union

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from swiftlink.core.auth import get_current_user
from swiftlink.core.permissions import get_admin_user
from swiftlink.core.rate_limit import limiter
from swiftlink.db.base import get_db
from swiftlink.models import User
from swiftlink.schemas import (
    RefreshStatusesResponse,
    SubscriptionCreate,
    SubscriptionDetail,
    SubscriptionUpdate,
    SubscriptionWithUser,
    VirtualSubscriptionDetail,
)
from swiftlink.services.subscription import subscription_service
from swiftlink.services.subscription_status import StoredSubscription
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=Union[SubscriptionDetail, VirtualSubscriptionDetail])
@limiter.limit("60/minute")
async def get_my_subscription(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Get the current subscription for the authenticated user.

    Users without a subscription row get a virtual free/active subscription.
    A stale stored status is corrected before it is returned.
    """
    current = subscription_service.get_current_subscription(current_user, db)

    if isinstance(current, StoredSubscription):
        return SubscriptionDetail.model_validate(current.row)

    return VirtualSubscriptionDetail(
        user_id=current.user_id,
        role=current.role,
        plan=current.plan,
        status=current.status,
        start_date=current.start_date,
        end_date=current.end_date,
        grace_period_end=current.grace_period_end,
        monthly_price=float(current.monthly_price),
    )


@router.post("/refresh-statuses", response_model=RefreshStatusesResponse)
async def refresh_statuses(
    admin_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """
    Recompute the status of every subscription.

    Returns only the rows whose status changed.
    """
    changed = subscription_service.refresh_statuses(db)
    logger.info(f"Admin {admin_user.id} refreshed subscription statuses: {len(changed)} changed")
    return RefreshStatusesResponse(
        updated=[SubscriptionDetail.model_validate(row) for row in changed]
    )


@router.get("", response_model=List[SubscriptionWithUser])
async def list_subscriptions(
    admin_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """List every subscription, newest first, with its owning user."""
    return subscription_service.list_all(db)


@router.post("", response_model=SubscriptionDetail, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    payload: SubscriptionCreate,
    admin_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """Create a subscription for a (user, role) lineage, superseding any existing row."""
    return subscription_service.create_subscription(payload, db)


@router.put("/{subscription_id}", response_model=SubscriptionDetail)
async def update_subscription(
    subscription_id: uuid.UUID,
    payload: SubscriptionUpdate,
    admin_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """Update the allow-listed fields of a subscription."""
    return subscription_service.update_subscription(subscription_id, payload, db)


@router.put("/{subscription_id}/block", response_model=SubscriptionDetail)
async def block_subscription(
    subscription_id: uuid.UUID,
    admin_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """Block a subscription regardless of its dates."""
    return subscription_service.set_status(subscription_id, "blocked", db)


@router.put("/{subscription_id}/unblock", response_model=SubscriptionDetail)
async def unblock_subscription(
    subscription_id: uuid.UUID,
    admin_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
):
    """Unblock a subscription (status back to active)."""
    return subscription_service.set_status(subscription_id, "active", db)
