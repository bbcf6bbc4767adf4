"""Orders repository adapter for application use cases."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from truthhair.domain.order import Order, OrderItem, parse_address


@runtime_checkable
class OrderStore(Protocol):
    """Persistence contract the checkout service relies on."""

    def create_order_with_items(self, order: Order, items: list[OrderItem]) -> None:
        """Persist an order and its items atomically."""
        ...


@runtime_checkable
class PriceCatalog(Protocol):
    """Authoritative price source for checkout validation."""

    def get_product_price(self, product_id: str, variant_id: str | None = None) -> Decimal | None:
        ...


def _present_order(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    order = dict(row)
    order["shipping_address"] = parse_address(order.get("shipping_address"))
    order["billing_address"] = parse_address(order.get("billing_address"))
    return order


class OrdersRepository:
    """Thin adapter over the database: persistence, lookups and catalog prices."""

    def __init__(self, db: Any):
        self._db = db

    @property
    def db(self) -> Any:
        return self._db

    def create_order_with_items(self, order: Order, items: list[OrderItem]) -> None:
        self._db.create_order_with_items(order, items)

    def get_product_price(self, product_id: str, variant_id: str | None = None) -> Decimal | None:
        return self._db.get_product_price(product_id, variant_id)

    def get_order(self, order_id: str) -> dict[str, Any] | None:
        return _present_order(self._db.get_order(order_id))

    def get_order_by_number(self, order_number: str) -> dict[str, Any] | None:
        return _present_order(self._db.get_order_by_number(order_number))

    def get_user_orders(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        return [_present_order(row) for row in self._db.get_user_orders(user_id, limit)]
