"""
API endpoints for Stripe billing.

Endpoints:
- POST /billing/checkout - Create Stripe checkout session for a paid plan
- GET /billing/confirm - Reconcile a completed checkout after redirect-back
- POST /billing/portal - Create Stripe billing portal session
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from swiftlink.core.auth import get_current_user
from swiftlink.core.rate_limit import limiter
from swiftlink.db.base import get_db
from swiftlink.models import User
from swiftlink.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    ConfirmCheckoutResponse,
    PortalResponse,
)
from swiftlink.services.billing import billing_service
from swiftlink.services.reconciler import checkout_reconciler
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/checkout", response_model=CheckoutResponse)
@limiter.limit("5/minute")
async def create_checkout_session(
    request: Request,
    payload: CheckoutRequest,
    current_user: User = Depends(get_current_user),
):
    """
    Create a Stripe checkout session.

    Only restaurant and driver accounts can subscribe, and only to pro or ultimate.
    """
    result = billing_service.start_checkout(current_user, payload.plan)
    return CheckoutResponse(url=result["url"])


@router.get("/confirm", response_model=ConfirmCheckoutResponse)
@limiter.limit("30/minute")
async def confirm_checkout_session(
    request: Request,
    session_id: Optional[str] = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Confirm a checkout session after the browser is redirected back.

    Re-fetches the session from Stripe, checks it belongs to the caller and is
    paid, then applies the same reconciliation as the webhook.
    """
    checkout_reconciler.confirm_checkout(session_id, current_user, db)
    logger.info(f"Checkout session {session_id} confirmed by user {current_user.id}")
    return ConfirmCheckoutResponse(success=True)


@router.post("/portal", response_model=PortalResponse)
@limiter.limit("5/minute")
async def create_portal_session(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Create a Stripe billing portal session.

    Requires a Stripe customer on the user's latest subscription.
    """
    result = billing_service.create_portal_session(current_user, db)
    return PortalResponse(url=result["url"])
