"""
Shared rate limiting configuration.

The limiter lives here so routers can decorate endpoints without importing
the FastAPI app. Tests switch it off with RATE_LIMIT_ENABLED=false.
"""
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from swiftlink.core.config import settings

# Keyed by client address; billing routes add tighter per-route limits
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000/hour"],
    enabled=settings.rate_limit_enabled,
)

rate_limit_handler = _rate_limit_exceeded_handler
rate_limit_exception = RateLimitExceeded
