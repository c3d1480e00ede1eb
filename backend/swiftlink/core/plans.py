"""
Plan catalog for SwiftLink subscriptions.

Maps plan identifiers to their monthly price and, for paid plans, the Stripe
price reference used to start a checkout. Stripe price IDs differ between
test and live accounts, so they come from settings rather than code.

The catalog does not validate plan names: unknown plans resolve to a zero
price and no price reference. Callers reject unknown plans first.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from swiftlink.core.config import Settings, settings


# =============================================================================
# Plans, roles and statuses
# =============================================================================

FREE_PLAN = "free"
PAID_PLANS = ("pro", "ultimate")
VALID_PLANS = (FREE_PLAN,) + PAID_PLANS

VALID_STATUSES = ("active", "expired", "blocked")

# Roles allowed to go through Stripe checkout
SUBSCRIBER_ROLES = ("restaurant", "driver")

PLAN_PRICES: Dict[str, Decimal] = {
    "free": Decimal("0.00"),
    "pro": Decimal("9.99"),
    "ultimate": Decimal("19.99"),
}


@dataclass(frozen=True)
class PlanCatalog:
    """Lookup table of plan prices and Stripe price references."""

    prices: Dict[str, Decimal] = field(default_factory=lambda: dict(PLAN_PRICES))
    price_references: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "PlanCatalog":
        """
        Build the catalog for the current environment.

        Args:
            config: Settings to read Stripe price IDs from (defaults to global settings)

        Returns:
            PlanCatalog with environment-specific price references
        """
        config = config or settings
        return cls(
            prices=dict(PLAN_PRICES),
            price_references={
                "pro": config.stripe_price_pro,
                "ultimate": config.stripe_price_ultimate,
            },
        )

    def monthly_price(self, plan: str) -> Decimal:
        """Monthly price for a plan, zero when the plan is unknown."""
        return self.prices.get(plan, Decimal("0.00"))

    def price_reference(self, plan: str) -> Optional[str]:
        """Stripe price ID for a paid plan, None when absent or empty."""
        return self.price_references.get(plan) or None


def is_valid_plan(plan: Optional[str]) -> bool:
    return plan in VALID_PLANS


def is_paid_plan(plan: Optional[str]) -> bool:
    return plan in PAID_PLANS


def is_valid_status(status: Optional[str]) -> bool:
    return status in VALID_STATUSES
