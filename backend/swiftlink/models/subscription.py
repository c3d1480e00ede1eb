"""
Subscription model - one current row per (user, role) lineage.
"""
import uuid
from datetime import datetime
from sqlalchemy import CheckConstraint, Column, String, Date, DateTime, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from swiftlink.db.base import Base


class Subscription(Base):
    """
    Subscription lifecycle row.

    Created by checkout reconciliation or by an administrator and then updated
    in place; the unique (user_id, role) constraint backs the upsert.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_subscriptions_user_role"),
        CheckConstraint("plan IN ('free', 'pro', 'ultimate')", name="ck_subscriptions_plan"),
        CheckConstraint("status IN ('active', 'expired', 'blocked')", name="ck_subscriptions_status"),
        CheckConstraint(
            "grace_period_end IS NULL OR grace_period_end >= end_date",
            name="ck_subscriptions_grace_after_end",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String(50), nullable=False)  # restaurant, driver

    # Plan and lifecycle
    plan = Column(String(50), nullable=False, default="free")  # free, pro, ultimate
    status = Column(String(50), nullable=False, default="active")  # active, expired, blocked
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    grace_period_end = Column(Date, nullable=True)
    monthly_price = Column(Numeric(10, 2), nullable=False, default=0)

    # Stripe integration (set only by reconciliation)
    stripe_customer_id = Column(String(255), nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    # Relationships
    user = relationship("User", backref="subscriptions")

    def __repr__(self):
        return (
            f"<Subscription(id={self.id}, user_id={self.user_id}, role={self.role}, "
            f"plan={self.plan}, status={self.status})>"
        )
