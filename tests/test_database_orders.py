"""PostgreSQL-backed tests; skipped unless a disposable test database is configured."""
from __future__ import annotations

import json
from decimal import Decimal

import pytest

from truthhair.core.exceptions import OrderPersistenceException
from truthhair.infra.db.orders_repo import OrdersRepository
from truthhair.services.checkout_service import CheckoutService

pytestmark = pytest.mark.postgres


def _seed_catalog(db) -> None:
    with db.get_connection() as conn:
        conn.execute(
            "INSERT INTO products (id, name, slug, price) VALUES (%s, %s, %s, %s), (%s, %s, %s, %s)",
            ("p1", "Body Wave", "body-wave", Decimal("180"), "p2", "Closure", "closure", Decimal("350")),
        )
        conn.execute(
            "INSERT INTO product_variants (id, product_id, name, price) VALUES (%s, %s, %s, %s)",
            ("v1", "p1", "18in Natural Black", Decimal("200")),
        )


def test_checkout_persists_order_and_items(db, checkout_payload) -> None:
    _seed_catalog(db)
    repo = OrdersRepository(db)
    service = CheckoutService(repo, repo)

    result = service.checkout(checkout_payload, user_id="user-1")

    order = repo.get_order(result.order_id)
    assert order["order_number"] == result.order_number
    assert order["status"] == "PENDING"
    assert order["total"] == Decimal("550.00")
    assert order["shipping"] == Decimal("0.00")
    assert order["shipping_address"]["country"] == "Zimbabwe"
    assert {item["product_id"] for item in order["items"]} == {"p1", "p2"}
    assert repo.get_order_by_number(result.order_number)["id"] == result.order_id
    assert [o["id"] for o in repo.get_user_orders("user-1")] == [result.order_id]


def test_variant_price_overrides_product_price(db) -> None:
    _seed_catalog(db)

    assert db.get_product_price("p1", "v1") == Decimal("200.00")
    assert db.get_product_price("p1") == Decimal("180.00")
    assert db.get_product_price("p2", "v1") is None
    assert db.get_product_price("missing") is None


def test_failed_item_insert_rolls_back_order(db, checkout_payload) -> None:
    repo = OrdersRepository(db)
    # duplicate item ids violate the primary key on the second insert
    ids = iter(["order-1", "dup", "dup"])
    service = CheckoutService(
        repo,
        order_number_factory=lambda: "TH-ROLLBACK-00001",
        id_factory=lambda: next(ids),
    )

    with pytest.raises(OrderPersistenceException):
        service.checkout(checkout_payload)

    assert repo.get_order("order-1") is None
    assert repo.get_order_by_number("TH-ROLLBACK-00001") is None


def test_duplicate_order_number_is_rejected(db, checkout_payload) -> None:
    repo = OrdersRepository(db)
    service = CheckoutService(repo, order_number_factory=lambda: "TH-SAME-00001")
    service.checkout(checkout_payload)

    with pytest.raises(OrderPersistenceException):
        service.checkout(checkout_payload)

    with db.get_connection() as conn:
        row = conn.execute("SELECT count(*) AS n FROM orders").fetchone()
    assert row["n"] == 1


def test_addresses_are_stored_as_json_text(db, checkout_payload) -> None:
    repo = OrdersRepository(db)
    result = CheckoutService(repo).checkout(checkout_payload)

    with db.get_connection() as conn:
        row = conn.execute(
            "SELECT shipping_address, billing_address FROM orders WHERE id = %s",
            (result.order_id,),
        ).fetchone()
    assert json.loads(row["shipping_address"]) == json.loads(row["billing_address"])
