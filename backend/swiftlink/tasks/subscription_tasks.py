"""
Celery tasks for subscription maintenance.

Tasks:
- refresh_subscription_statuses: demote lapsed subscriptions to expired/blocked
"""
import logging

from swiftlink.core.celery_app import celery_app
from swiftlink.db.base import SessionLocal
from swiftlink.services.subscription import subscription_service

logger = logging.getLogger(__name__)


@celery_app.task
def refresh_subscription_statuses():
    """
    Daily task recomputing every subscription status against today's date.

    Returns:
        Count and ids of the subscriptions whose status changed
    """
    db = SessionLocal()

    try:
        changed = subscription_service.refresh_statuses(db)
        logger.info(f"[subscriptions] Status refresh changed {len(changed)} subscription(s)")
        return {
            "updated": len(changed),
            "subscription_ids": [str(subscription.id) for subscription in changed],
        }

    except Exception as e:
        db.rollback()
        logger.error(f"[subscriptions] Status refresh task failed: {e}")
        raise

    finally:
        db.close()
