"""
Subscription service for reading and maintaining subscription rows.

Handles:
- Current subscription lookup (stored row or virtual free default)
- Status corrections and the admin refresh sweep
- The (user, role) lineage upsert shared by reconciliation and admin creation
- Admin create / update / block / unblock
"""
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from swiftlink.core.errors import Conflict, InvalidDates, InvalidPlan, InvalidStatus, NotFound
from swiftlink.core.plans import PlanCatalog, is_valid_plan, is_valid_status
from swiftlink.models import Subscription, User
from swiftlink.schemas import SubscriptionCreate, SubscriptionUpdate
from swiftlink.services.subscription_status import (
    CurrentSubscription,
    StoredSubscription,
    VirtualSubscription,
    add_grace_period,
    compute_status,
    utc_today,
)
import logging

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Service for subscription reads, status maintenance and admin changes."""

    def __init__(self, catalog: Optional[PlanCatalog] = None):
        self.catalog = catalog or PlanCatalog.from_settings()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_latest(self, db: Session, user_id: uuid.UUID, role: str, lock: bool = False) -> Optional[Subscription]:
        """Most recent subscription row for a (user, role) lineage."""
        query = db.query(Subscription).filter(
            Subscription.user_id == user_id,
            Subscription.role == role,
        ).order_by(Subscription.created_at.desc())
        if lock:
            query = query.with_for_update()
        return query.first()

    def latest_for_user(self, db: Session, user_id: uuid.UUID) -> Optional[Subscription]:
        """Most recent subscription row for a user, any role."""
        return db.query(Subscription).filter(
            Subscription.user_id == user_id
        ).order_by(Subscription.created_at.desc()).first()

    def get_by_id(self, db: Session, subscription_id: uuid.UUID) -> Subscription:
        subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
        if not subscription:
            raise NotFound(f"Subscription not found: {subscription_id}")
        return subscription

    def list_all(self, db: Session) -> List[Subscription]:
        """Every subscription with its owner, newest first."""
        return db.query(Subscription).options(
            joinedload(Subscription.user)
        ).order_by(Subscription.created_at.desc()).all()

    # ------------------------------------------------------------------
    # Status maintenance
    # ------------------------------------------------------------------

    def get_current_subscription(
        self,
        user: User,
        db: Session,
        today: Optional[date] = None,
    ) -> CurrentSubscription:
        """
        Current subscription for a user.

        A stored row whose computed status differs from the stored one is
        corrected before it is returned. Users without a row get the virtual
        free/active default, which is never persisted.

        Args:
            user: Authenticated user profile
            db: Database session
            today: Reference date (defaults to the current UTC date)

        Returns:
            StoredSubscription or VirtualSubscription
        """
        subscription = self.latest_for_user(db, user.id)
        if subscription is None:
            return VirtualSubscription.for_user(user.id, user.role, today=today)

        next_status = compute_status(subscription, today=today)
        if next_status != subscription.status:
            logger.info(
                f"Correcting subscription {subscription.id} status: "
                f"{subscription.status} -> {next_status}"
            )
            subscription.status = next_status
            db.commit()
            db.refresh(subscription)

        return StoredSubscription(row=subscription)

    def refresh_statuses(self, db: Session, today: Optional[date] = None) -> List[Subscription]:
        """
        Recompute the status of every subscription and persist the changes.

        Args:
            db: Database session
            today: Reference date (defaults to the current UTC date)

        Returns:
            Rows whose status actually changed
        """
        today = today or utc_today()
        changed = []

        for subscription in db.query(Subscription).all():
            next_status = compute_status(subscription, today=today)
            if next_status == subscription.status:
                continue
            logger.info(
                f"Refreshing subscription {subscription.id} status: "
                f"{subscription.status} -> {next_status}"
            )
            subscription.status = next_status
            changed.append(subscription)

        if changed:
            db.commit()
            for subscription in changed:
                db.refresh(subscription)

        logger.info(f"Subscription status refresh complete: {len(changed)} changed")
        return changed

    # ------------------------------------------------------------------
    # Lineage upsert
    # ------------------------------------------------------------------

    def upsert_lineage(
        self,
        db: Session,
        user_id: uuid.UUID,
        role: str,
        values: Dict[str, Any],
    ) -> Subscription:
        """
        Update the (user, role) row in place, inserting it if none exists.

        The unique (user_id, role) constraint makes a concurrent second insert
        fail; that writer rolls back and applies its values as an update.

        Args:
            db: Database session
            user_id: Owning user
            role: Subscribing role
            values: Column values to write

        Returns:
            The stored subscription row
        """
        for attempt in range(2):
            existing = self.find_latest(db, user_id, role, lock=True)
            if existing is not None:
                for field, value in values.items():
                    setattr(existing, field, value)
                db.commit()
                db.refresh(existing)
                logger.info(f"Updated subscription {existing.id} for user {user_id} ({role})")
                return existing

            subscription = Subscription(user_id=user_id, role=role, **values)
            db.add(subscription)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                if attempt:
                    raise
                logger.info(
                    f"Concurrent subscription insert for user {user_id} ({role}), "
                    f"applying as update"
                )
                continue

            db.refresh(subscription)
            logger.info(f"Created subscription {subscription.id} for user {user_id} ({role})")
            return subscription

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def create_subscription(self, request: SubscriptionCreate, db: Session, today: Optional[date] = None) -> Subscription:
        """Create (or supersede) a subscription lineage on behalf of an admin."""
        if not is_valid_plan(request.plan):
            raise InvalidPlan("Invalid plan")

        start_date = request.start_date or today or utc_today()
        end_date = request.end_date or start_date

        return self.upsert_lineage(
            db,
            user_id=request.user_id,
            role=request.role,
            values={
                "plan": request.plan,
                "status": "active",
                "start_date": start_date,
                "end_date": end_date,
                "grace_period_end": add_grace_period(end_date),
                "monthly_price": self.catalog.monthly_price(request.plan),
            },
        )

    def update_subscription(
        self,
        subscription_id: uuid.UUID,
        request: SubscriptionUpdate,
        db: Session,
    ) -> Subscription:
        """Apply an allow-listed partial update."""
        updates = request.model_dump(exclude_unset=True, exclude_none=True)

        if "plan" in updates and not is_valid_plan(updates["plan"]):
            raise InvalidPlan("Invalid plan")
        if "status" in updates and not is_valid_status(updates["status"]):
            raise InvalidStatus("Invalid status")
        if updates.get("plan") and updates.get("monthly_price") is None:
            updates["monthly_price"] = self.catalog.monthly_price(updates["plan"])
        if updates.get("end_date") and not updates.get("grace_period_end"):
            updates["grace_period_end"] = add_grace_period(updates["end_date"])

        subscription = self.get_by_id(db, subscription_id)

        end_date = updates.get("end_date") or subscription.end_date
        grace_period_end = updates.get("grace_period_end", subscription.grace_period_end)
        if grace_period_end is not None and grace_period_end < end_date:
            raise InvalidDates("grace_period_end cannot be before end_date")

        user_id = subscription.user_id
        for field, value in updates.items():
            setattr(subscription, field, value)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise Conflict(
                f"User {user_id} already has a {updates.get('role')} subscription"
            ) from e
        db.refresh(subscription)

        logger.info(f"Admin updated subscription {subscription_id}: {sorted(updates)}")
        return subscription

    def set_status(self, subscription_id: uuid.UUID, status: str, db: Session) -> Subscription:
        """Force a status regardless of dates (admin block / unblock)."""
        if not is_valid_status(status):
            raise InvalidStatus("Invalid status")

        subscription = self.get_by_id(db, subscription_id)
        subscription.status = status
        db.commit()
        db.refresh(subscription)

        logger.info(f"Subscription {subscription_id} forced to {status}")
        return subscription


# Global service instance
subscription_service = SubscriptionService()
