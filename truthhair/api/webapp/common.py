from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, Request
from pydantic import Field, PlainSerializer

from truthhair.core.constants import MAX_QUANTITY, MAX_UNIT_PRICE
from truthhair.domain.checkout import CamelModel, VariantInfo
from truthhair.infra.db.orders_repo import OrdersRepository
from truthhair.integrations.redis_cart import CartStoreFactory, LineItem, RedisCartStore
from truthhair.services.checkout_service import CheckoutService

logger = logging.getLogger(__name__)

# Decimal goes out as a JSON number, not pydantic's default string
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


# =============================================================================
# Pydantic Models
# =============================================================================


class CartItemResponse(CamelModel):
    id: str
    product_id: str
    variant_id: str | None = None
    name: str
    price: Money
    image: str = ""
    quantity: int
    line_total: Money
    variant: VariantInfo | None = None

    @classmethod
    def from_line_item(cls, item: LineItem) -> CartItemResponse:
        return cls(
            id=item.id,
            product_id=item.product_id,
            variant_id=item.variant_id,
            name=item.name,
            price=item.unit_price,
            image=item.image,
            quantity=item.quantity,
            line_total=item.line_total,
            variant=VariantInfo(**item.variant.to_dict()) if item.variant else None,
        )


class CartResponse(CamelModel):
    items: list[CartItemResponse]
    is_open: bool
    total_price: Money
    total_items: int


class AddCartItemRequest(CamelModel):
    product_id: str = Field(..., min_length=1)
    variant_id: str | None = None
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0, le=MAX_UNIT_PRICE)
    image: str = ""
    variant: VariantInfo | None = None


class UpdateQuantityRequest(CamelModel):
    quantity: int = Field(..., le=MAX_QUANTITY)


class OrderItemResponse(CamelModel):
    id: str
    product_id: str
    variant_id: str | None = None
    quantity: int
    price: Money
    total: Money
    created_at: datetime | None = None


class OrderDetailResponse(CamelModel):
    id: str
    order_number: str
    user_id: str | None = None
    email: str
    phone: str | None = None
    status: str
    subtotal: Money
    tax: Money
    shipping: Money
    discount: Money
    total: Money
    shipping_address: dict[str, Any]
    billing_address: dict[str, Any]
    payment_intent_id: str | None = None
    payment_method: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[OrderItemResponse] = Field(default_factory=list)


def build_cart_response(store: RedisCartStore) -> CartResponse:
    return CartResponse(
        items=[CartItemResponse.from_line_item(item) for item in store.items],
        is_open=store.is_open,
        total_price=store.get_total_price(),
        total_items=store.get_total_items(),
    )


# =============================================================================
# Dependencies (instances live on app.state, wired by create_api_app)
# =============================================================================


def _state_attr(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        logger.error("%s is not configured on the application", name)
        raise HTTPException(status_code=503, detail="Service not initialized")
    return value


def get_cart_factory(request: Request) -> CartStoreFactory:
    return _state_attr(request, "cart_factory")


def get_checkout_service(request: Request) -> CheckoutService:
    return _state_attr(request, "checkout_service")


def get_orders_repo(request: Request) -> OrdersRepository:
    return _state_attr(request, "orders_repo")


def get_cart_store(
    x_cart_session: str | None = Header(None, alias="X-Cart-Session"),
    factory: CartStoreFactory = Depends(get_cart_factory),
) -> RedisCartStore:
    """Open the cart of the session named in the X-Cart-Session header."""
    session_id = (x_cart_session or "").strip()
    if not session_id:
        raise HTTPException(status_code=400, detail="X-Cart-Session header is required")
    if len(session_id) > 128:
        raise HTTPException(status_code=400, detail="X-Cart-Session header is too long")
    return factory.open(session_id)


def get_user_id(x_user_id: str | None = Header(None, alias="X-User-Id")) -> str | None:
    """User id forwarded by the auth layer, if the shopper is signed in."""
    user_id = (x_user_id or "").strip()
    return user_id or None


def get_order_email(
    x_order_email: str | None = Header(None, alias="X-Order-Email"),
) -> str | None:
    """Customer email presented to look up an order without an account."""
    email = (x_order_email or "").strip().lower()
    return email or None


__all__ = [
    "logger",
    "Money",
    "CartItemResponse",
    "CartResponse",
    "AddCartItemRequest",
    "UpdateQuantityRequest",
    "OrderItemResponse",
    "OrderDetailResponse",
    "build_cart_response",
    "get_cart_factory",
    "get_cart_store",
    "get_checkout_service",
    "get_orders_repo",
    "get_order_email",
    "get_user_id",
]
