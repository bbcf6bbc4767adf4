"""
FastAPI server for the Truth Hair storefront.

Serves the cart, checkout and order lookup endpoints used by the web client.
"""
from __future__ import annotations

import logging
import urllib.parse
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from truthhair import __version__
from truthhair.api.rate_limit import limiter
from truthhair.api.webapp import router as webapp_router
from truthhair.core.async_db import AsyncDBProxy
from truthhair.core.config import Settings, load_settings
from truthhair.core.exceptions import CartStorageException, OrderNotFoundException
from truthhair.core.sentry_integration import init_sentry
from truthhair.infra.db.orders_repo import OrdersRepository
from truthhair.integrations.redis_cart import CartStoreFactory, MemoryStateClient
from truthhair.services.checkout_service import CheckoutService

logger = logging.getLogger(__name__)

DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8080",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def _origin_from_url(value: str | None) -> str | None:
    if not value:
        return None
    parsed = urllib.parse.urlsplit(value.strip())
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def build_allowed_origins(settings: Settings) -> list[str]:
    origins: list[str] = []
    for raw in settings.allowed_origins:
        origin = _origin_from_url(raw)
        if origin and origin not in origins:
            origins.append(origin)
    # localhost only outside production
    if settings.is_dev:
        origins.extend(o for o in DEV_ORIGINS if o not in origins)
    return origins


async def _cart_storage_handler(request: Request, exc: CartStorageException) -> JSONResponse:
    logger.error("Cart storage failed for session %s: %s", exc.session_id, exc.reason)
    return JSONResponse(status_code=503, content={"detail": "Cart temporarily unavailable"})


async def _order_not_found_handler(request: Request, exc: OrderNotFoundException) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Order not found"})


def create_api_app(
    settings: Settings | None = None,
    db: Any = None,
    repo: OrdersRepository | None = None,
    cart_factory: CartStoreFactory | None = None,
    checkout_service: CheckoutService | None = None,
) -> FastAPI:
    """
    Create the storefront FastAPI application.

    Args:
        settings: Typed settings; loaded from the environment when omitted
        db: Database instance (truthhair_db.Database or a compatible object)
        repo: Orders repository; built over ``db`` when omitted
        cart_factory: Cart store factory; built from REDIS_URL when omitted
        checkout_service: Checkout pipeline; built over ``repo`` when omitted
    """
    settings = settings or load_settings()

    if repo is None and db is not None:
        repo = OrdersRepository(db)
    if checkout_service is None and repo is not None:
        catalog = repo if settings.checkout.verify_prices else None
        checkout_service = CheckoutService(
            repo,
            catalog,
            store_address=settings.checkout.store_address,
        )
    if cart_factory is None:
        cart_factory = CartStoreFactory(settings.redis_url, ttl_seconds=settings.cart_ttl_seconds)

    if settings.sentry_dsn:
        init_sentry(settings.sentry_dsn, environment=settings.environment)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Storefront API starting (environment=%s)", settings.environment)
        if checkout_service is None:
            logger.warning("No database configured: checkout and order lookups are disabled")
        elif not checkout_service.verifies_prices:
            logger.warning("Checkout price verification is disabled")
        yield
        logger.info("Storefront API shutting down...")
        cart_factory.close()

    app = FastAPI(
        title="Truth Hair Storefront API",
        description="Cart, checkout and order endpoints for the Truth Hair web store",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.settings = settings
    app.state.db = db
    app.state.orders_repo = repo
    app.state.cart_factory = cart_factory
    app.state.checkout_service = checkout_service

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(CartStorageException, _cart_storage_handler)
    app.add_exception_handler(OrderNotFoundException, _order_not_found_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=build_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=[
            "Content-Type",
            "Authorization",
            "X-Cart-Session",
            "X-User-Id",
            "X-Order-Email",
            "Sentry-Trace",
            "Baggage",
        ],
        expose_headers=["Content-Length", "Content-Type"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.path.startswith("/api/v1/cart") or request.url.path.startswith(
            "/api/v1/checkout"
        ):
            response.headers["Cache-Control"] = "no-store"
        return response

    app.include_router(webapp_router)

    @app.get("/api/v1/health")
    async def health():
        database = "disabled"
        if db is not None:
            try:
                await AsyncDBProxy(db).ping()
                database = "ok"
            except Exception as e:
                logger.warning("Health check database ping failed: %s", e)
                database = "unavailable"
        storage = "memory" if isinstance(cart_factory.client, MemoryStateClient) else "redis"
        status = "ok" if database != "unavailable" else "degraded"
        return {
            "status": status,
            "version": __version__,
            "database": database,
            "cartStorage": storage,
        }

    @app.get("/")
    async def root():
        return {"service": "Truth Hair Storefront API", "version": __version__, "docs": "/api/docs"}

    return app
