from __future__ import annotations

from fastapi import APIRouter

from . import routes_cart, routes_checkout, routes_orders

router = APIRouter(prefix="/api/v1", tags=["storefront"])

router.include_router(routes_cart.router)
router.include_router(routes_checkout.router)
router.include_router(routes_orders.router)

__all__ = ["router"]
