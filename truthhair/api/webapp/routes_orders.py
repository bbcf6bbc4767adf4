from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from truthhair.core.async_db import AsyncDBProxy
from truthhair.core.constants import MAX_ORDERS_PER_PAGE, ORDERS_PER_PAGE
from truthhair.core.exceptions import OrderNotFoundException
from truthhair.infra.db.orders_repo import OrdersRepository

from .common import OrderDetailResponse, get_order_email, get_orders_repo, get_user_id

router = APIRouter()


def _require_identity(user_id: str | None, email: str | None) -> None:
    if not user_id and not email:
        raise HTTPException(status_code=401, detail="Authentication required")


def _visible_order(
    order: dict[str, Any] | None, order_ref: str, user_id: str | None, email: str | None
) -> dict[str, Any]:
    """Return the order if the caller owns it, else raise not found.

    Account orders match on X-User-Id; any order also matches on its email
    (X-Order-Email), which is how guests look up their own orders.
    """
    if order:
        if user_id and order.get("user_id") == user_id:
            return order
        if email and str(order.get("email") or "").strip().lower() == email:
            return order
    raise OrderNotFoundException(order_ref)


@router.get("/orders/number/{order_number}", response_model=OrderDetailResponse)
async def get_order_by_number(
    order_number: str,
    user_id: str | None = Depends(get_user_id),
    email: str | None = Depends(get_order_email),
    repo: OrdersRepository = Depends(get_orders_repo),
):
    _require_identity(user_id, email)
    order_number = order_number.strip().upper()
    order = await AsyncDBProxy(repo).get_order_by_number(order_number)
    return _visible_order(order, order_number, user_id, email)


@router.get("/orders/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: str,
    user_id: str | None = Depends(get_user_id),
    email: str | None = Depends(get_order_email),
    repo: OrdersRepository = Depends(get_orders_repo),
):
    _require_identity(user_id, email)
    order = await AsyncDBProxy(repo).get_order(order_id)
    return _visible_order(order, order_id, user_id, email)


@router.get("/orders", response_model=list[OrderDetailResponse])
async def list_user_orders(
    limit: int = Query(ORDERS_PER_PAGE, ge=1, le=MAX_ORDERS_PER_PAGE),
    user_id: str | None = Depends(get_user_id),
    repo: OrdersRepository = Depends(get_orders_repo),
):
    """Most recent orders of the signed-in shopper."""
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return await AsyncDBProxy(repo).get_user_orders(user_id, limit)
