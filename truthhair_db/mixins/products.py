"""
Catalog price lookups used to re-validate checkout submissions.
"""
from __future__ import annotations

from decimal import Decimal


class ProductMixin:
    """Mixin for read-only catalog queries."""

    def get_product_price(self, product_id: str, variant_id: str | None = None) -> Decimal | None:
        """Current price of an active product or one of its variants.

        Variant prices override the base product price. Returns None when the
        product (or the variant under that product) does not exist.
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            if variant_id:
                cursor.execute(
                    """
                    SELECT v.price FROM product_variants v
                    JOIN products p ON p.id = v.product_id
                    WHERE v.id = %s AND v.product_id = %s AND p.is_active
                    """,
                    (variant_id, product_id),
                )
            else:
                cursor.execute(
                    "SELECT price FROM products WHERE id = %s AND is_active",
                    (product_id,),
                )
            row = cursor.fetchone()
        return row["price"] if row else None
