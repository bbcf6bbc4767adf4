"""
Order-related database operations.
"""
from __future__ import annotations

import logging
from dataclasses import astuple
from typing import Any

import psycopg

from truthhair.core.exceptions import OrderPersistenceException
from truthhair.domain.order import Order, OrderItem

logger = logging.getLogger(__name__)

ORDER_COLUMNS = (
    "id, order_number, user_id, email, phone, status, "
    "subtotal, tax, shipping, discount, total, "
    "shipping_address, billing_address, payment_intent_id, payment_method, "
    "created_at, updated_at"
)
ORDER_ITEM_COLUMNS = "id, order_id, product_id, variant_id, quantity, price, total, created_at"


class OrderMixin:
    """Mixin for order-related database operations."""

    def create_order_with_items(self, order: Order, items: list[OrderItem]) -> None:
        """Insert an order and all of its lines in one transaction.

        The order row is written first so item foreign keys resolve; any
        failure rolls back both, leaving no orphaned order behind.

        Raises:
            OrderPersistenceException: when any insert fails
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"""
                    INSERT INTO orders ({ORDER_COLUMNS})
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    astuple(order),
                )
                cursor.executemany(
                    f"""
                    INSERT INTO order_items ({ORDER_ITEM_COLUMNS})
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    [astuple(item) for item in items],
                )
        except psycopg.Error as e:
            raise OrderPersistenceException(order.order_number, e) from e

        logger.info(
            "Order %s (%s) stored with %s item(s)", order.order_number, order.id, len(items)
        )

    def get_order_items(self, order_id: str) -> list[dict[str, Any]]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {ORDER_ITEM_COLUMNS} FROM order_items
                WHERE order_id = %s
                ORDER BY created_at, id
                """,
                (order_id,),
            )
            return list(cursor.fetchall())

    def get_order(self, order_id: str) -> dict[str, Any] | None:
        """Order row with its items, or None."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {ORDER_COLUMNS} FROM orders WHERE id = %s", (order_id,))
            row = cursor.fetchone()
        if not row:
            return None
        order = dict(row)
        order["items"] = self.get_order_items(order["id"])
        return order

    def get_order_by_number(self, order_number: str) -> dict[str, Any] | None:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id FROM orders WHERE order_number = %s", (order_number,))
            row = cursor.fetchone()
        if not row:
            return None
        return self.get_order(row["id"])

    def get_user_orders(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Most recent orders of a user, newest first, with items."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {ORDER_COLUMNS} FROM orders
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (user_id, limit),
            )
            rows = [dict(row) for row in cursor.fetchall()]
        for order in rows:
            order["items"] = self.get_order_items(order["id"])
        return rows
