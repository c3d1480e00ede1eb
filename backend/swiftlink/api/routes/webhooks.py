"""
Stripe webhook endpoint.

Failures answer 400 with a plain-text body so Stripe redelivers the event
later; nothing is retried locally.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from swiftlink.core.errors import BillingError, Misconfigured
from swiftlink.core.rate_limit import limiter
from swiftlink.db.base import get_db
from swiftlink.schemas import WebhookAck
from swiftlink.services.reconciler import checkout_reconciler
from swiftlink.services.stripe_gateway import stripe_gateway
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook")
@limiter.limit("200/minute")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Handle Stripe webhooks.

    Only checkout.session.completed triggers reconciliation; other verified
    events are acknowledged and ignored.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = stripe_gateway.construct_webhook_event(payload, signature)
        logger.info(f"Received Stripe webhook: {event['type']}")
        checkout_reconciler.handle_event(event, db)
    except Misconfigured as e:
        logger.critical(f"Stripe webhook misconfigured: {e.message}")
        return PlainTextResponse(f"Webhook Error: {e.message}", status_code=400)
    except BillingError as e:
        logger.warning(f"Stripe webhook rejected: {e.message}")
        return PlainTextResponse(f"Webhook Error: {e.message}", status_code=400)
    except Exception as e:
        logger.error(f"Error processing Stripe webhook: {str(e)}", exc_info=True)
        return PlainTextResponse(f"Webhook Error: {str(e)}", status_code=400)

    return WebhookAck(received=True)
