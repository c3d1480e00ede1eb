"""
Database models package.

All SQLAlchemy models are exported from this module for easy imports.
"""
from swiftlink.models.user import User
from swiftlink.models.subscription import Subscription

__all__ = [
    "User",
    "Subscription",
]
