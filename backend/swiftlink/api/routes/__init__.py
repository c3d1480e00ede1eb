"""
API route modules.
"""
from swiftlink.api.routes import billing, subscriptions, webhooks

__all__ = ["billing", "subscriptions", "webhooks"]
