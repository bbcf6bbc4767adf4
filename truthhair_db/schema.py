"""
Database schema initialization.
"""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class SchemaMixin:
    """Mixin for database schema initialization."""

    def init_db(self) -> None:
        """Create catalog and order tables if they are missing."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            # Catalog tables (managed by the admin dashboard, read here for pricing)
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS products (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    slug TEXT UNIQUE NOT NULL,
                    price NUMERIC(12, 2) NOT NULL,
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    stock INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS product_variants (
                    id TEXT PRIMARY KEY,
                    product_id TEXT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
                    name TEXT NOT NULL,
                    price NUMERIC(12, 2) NOT NULL,
                    stock INTEGER NOT NULL DEFAULT 0,
                    color TEXT,
                    length TEXT,
                    density TEXT,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS orders (
                    id TEXT PRIMARY KEY,
                    order_number TEXT NOT NULL,
                    user_id TEXT,
                    email TEXT NOT NULL,
                    phone TEXT,
                    status TEXT NOT NULL DEFAULT 'PENDING',
                    subtotal NUMERIC(12, 2) NOT NULL,
                    tax NUMERIC(12, 2) NOT NULL DEFAULT 0,
                    shipping NUMERIC(12, 2) NOT NULL DEFAULT 0,
                    discount NUMERIC(12, 2) NOT NULL DEFAULT 0,
                    total NUMERIC(12, 2) NOT NULL,
                    shipping_address TEXT NOT NULL,
                    billing_address TEXT NOT NULL,
                    payment_intent_id TEXT,
                    payment_method TEXT,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            # no FK to products; lines survive catalog deletions
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS order_items (
                    id TEXT PRIMARY KEY,
                    order_id TEXT NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
                    product_id TEXT NOT NULL,
                    variant_id TEXT,
                    quantity INTEGER NOT NULL CHECK (quantity > 0),
                    price NUMERIC(12, 2) NOT NULL,
                    total NUMERIC(12, 2) NOT NULL,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

            cursor.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS idx_orders_order_number ON orders(order_number)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_orders_user_created ON orders(user_id, created_at DESC)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_order_items_order_id ON order_items(order_id)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_product_variants_product ON product_variants(product_id)"
            )

        logger.info("Database schema initialized")
