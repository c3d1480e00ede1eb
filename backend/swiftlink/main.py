"""
SwiftLink API application.

Wires the billing and subscription routers, rate limiting, CORS and the
billing error handler. Run with `uvicorn swiftlink.main:app`.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from swiftlink.api.routes import billing, subscriptions, webhooks
from swiftlink.core.config import settings
from swiftlink.core.errors import BillingError, Misconfigured
from swiftlink.core.rate_limit import limiter, rate_limit_exception, rate_limit_handler

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Restaurant and delivery platform API: subscriptions and Stripe billing",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.state.limiter = limiter
app.add_exception_handler(rate_limit_exception, rate_limit_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Billing and the Stripe webhook share the /billing prefix
app.include_router(billing.router, prefix=f"{settings.api_prefix}/billing", tags=["billing"])
app.include_router(webhooks.router, prefix=f"{settings.api_prefix}/billing", tags=["webhooks"])
app.include_router(
    subscriptions.router,
    prefix=f"{settings.api_prefix}/subscriptions",
    tags=["subscriptions"],
)


@app.on_event("startup")
async def check_billing_configuration():
    """Report missing Stripe secrets loudly; requests needing them fail with 400."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")

    missing = [
        name
        for name, value in (
            ("STRIPE_SECRET_KEY", settings.stripe_secret_key),
            ("STRIPE_WEBHOOK_SECRET", settings.stripe_webhook_secret),
            ("STRIPE_PRICE_PRO", settings.stripe_price_pro),
            ("STRIPE_PRICE_ULTIMATE", settings.stripe_price_ultimate),
        )
        if not value
    ]
    if missing:
        logger.critical(f"Billing is misconfigured, missing: {', '.join(missing)}")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/")
async def root():
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs" if settings.debug else None,
        "health": "/health",
    }


@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
    """Render a billing error with the status code it maps to."""
    if isinstance(exc, Misconfigured):
        # Deployment defect, not a bad request
        logger.critical(f"Misconfiguration on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("swiftlink.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
