"""Marketplace FastAPI application.

Web server for the checkout-to-fulfillment pipeline. Commands are processed
synchronously; each request runs inside the marketplace domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.api.handlers import register_error_handlers
from marketplace.config import get_settings
from marketplace.domain import marketplace
from marketplace.utils.logging import add_context, clear_context, configure_logging

configure_logging()
logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the domain.toml overlay ("production" → postgres/redis).
marketplace.init()


def _wire_adapters() -> None:
    """Swap the default fakes for real collaborators where configured."""
    from marketplace.fanout.broker import set_broker
    from marketplace.fanout.broker.domain_adapter import DomainBroker
    from marketplace.payments.gateway import set_gateway
    from marketplace.payments.gateway.stripe_adapter import StripeGateway

    settings = get_settings()
    if settings.stripe_secret_key:
        set_gateway(
            StripeGateway(
                settings.stripe_secret_key,
                settings.stripe_webhook_secret,
                timeout=settings.gateway_timeout_seconds,
            )
        )
        logger.info("Stripe gateway configured")
    else:
        logger.warning("STRIPE_SECRET_KEY not set, using the fake payment gateway")

    set_broker(DomainBroker(marketplace, timeout=settings.broker_timeout_seconds))


_wire_adapters()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace API",
    description="Multi-vendor marketplace: carts, checkout, payment webhooks and inventory",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context and bind request logging context."""
    add_context(path=request.url.path, method=request.method)
    try:
        with marketplace.domain_context():
            return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from marketplace.api.routes import cart_router, checkout_router, inventory_router  # noqa: E402

app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(inventory_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": marketplace.name})
