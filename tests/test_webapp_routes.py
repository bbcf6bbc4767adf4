from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
import redis
from fastapi.testclient import TestClient

from truthhair.api.api_server import build_allowed_origins, create_api_app
from truthhair.core.config import CheckoutConfig, Settings
from truthhair.integrations import redis_cart
from truthhair.integrations.redis_cart import CartStoreFactory, RedisCartStore
from truthhair.services.checkout_service import CheckoutService

SESSION = {"X-Cart-Session": "sess-1"}
OWNER = {"X-User-Id": "user-1"}


def _settings(**overrides) -> Settings:
    data = dict(
        database_url=None,
        redis_url=None,
        environment="test",
        port=8000,
        cart_ttl_seconds=3600,
        checkout=CheckoutConfig(verify_prices=False, store_address="123 First Street, Harare CBD"),
    )
    data.update(overrides)
    return Settings(**data)


class DummyRepo:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved = []
        self.orders: dict[str, dict] = {}

    def create_order_with_items(self, order, items) -> None:
        if self.fail:
            raise RuntimeError("db down")
        self.saved.append((order, items))

    def get_product_price(self, product_id, variant_id=None):
        return {"p1": Decimal("200"), "p2": Decimal("350")}.get(product_id)

    def get_order(self, order_id):
        return self.orders.get(order_id)

    def get_order_by_number(self, order_number):
        for order in self.orders.values():
            if order["order_number"] == order_number:
                return order
        return None

    def get_user_orders(self, user_id, limit=10):
        rows = [o for o in self.orders.values() if o["user_id"] == user_id]
        return rows[:limit]


def _order_row(order_id: str = "o-1", user_id: str | None = "user-1") -> dict:
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    return {
        "id": order_id,
        "order_number": f"TH-ABC-{order_id[-1]}0000",
        "user_id": user_id,
        "email": "tariro@example.com",
        "phone": "0771000000",
        "status": "PENDING",
        "subtotal": Decimal("50.00"),
        "tax": Decimal("0.00"),
        "shipping": Decimal("25.00"),
        "discount": Decimal("0.00"),
        "total": Decimal("75.00"),
        "shipping_address": {"line1": "12 Samora Machel Ave", "city": "Harare"},
        "billing_address": {"line1": "12 Samora Machel Ave", "city": "Harare"},
        "payment_intent_id": "cash_TH-ABC-10000",
        "payment_method": "cash",
        "created_at": now,
        "updated_at": now,
        "items": [
            {
                "id": "i-1",
                "product_id": "p3",
                "variant_id": None,
                "quantity": 1,
                "price": Decimal("50.00"),
                "total": Decimal("50.00"),
                "created_at": now,
            }
        ],
    }


@pytest.fixture
def repo() -> DummyRepo:
    return DummyRepo()


@pytest.fixture
def client(fake_redis, repo) -> TestClient:
    app = create_api_app(
        settings=_settings(),
        repo=repo,
        cart_factory=CartStoreFactory(client=fake_redis),
        checkout_service=CheckoutService(repo, store_address="123 First Street, Harare CBD"),
    )
    return TestClient(app)


def _add(client: TestClient, **body):
    payload = {"productId": "p1", "name": "Body Wave", "price": 200}
    payload.update(body)
    return client.post("/api/v1/cart/items", json=payload, headers=SESSION)


# ----------------------------------------------------------------------
# cart
# ----------------------------------------------------------------------


def test_cart_requires_session_header(client) -> None:
    response = client.get("/api/v1/cart")

    assert response.status_code == 400


def test_empty_cart(client) -> None:
    response = client.get("/api/v1/cart", headers=SESSION)

    assert response.status_code == 200
    assert response.json() == {"items": [], "isOpen": False, "totalPrice": 0.0, "totalItems": 0}


def test_add_items_merges_and_reports_totals(client) -> None:
    _add(client, variantId="v1", variant={"color": "Natural Black"})
    _add(client, variantId="v1", variant={"color": "Natural Black"})
    response = _add(client, productId="p2", name="Closure", price=350)

    assert response.status_code == 200
    data = response.json()
    assert [item["id"] for item in data["items"]] == ["p1-v1", "p2-default"]
    assert data["items"][0]["quantity"] == 2
    assert data["items"][0]["lineTotal"] == 400.0
    assert data["items"][0]["variant"]["color"] == "Natural Black"
    assert data["totalPrice"] == 750.0
    assert data["totalItems"] == 3


def test_add_item_validates_body(client) -> None:
    response = _add(client, price=-5)

    assert response.status_code == 422


def test_add_item_rejects_price_beyond_money_range(client) -> None:
    response = _add(client, price="1e30")

    assert response.status_code == 422
    assert client.get("/api/v1/cart", headers=SESSION).json()["items"] == []


def test_locked_cart_answers_503(client, fake_redis, monkeypatch) -> None:
    monkeypatch.setattr(redis_cart, "LOCK_WAIT_SECONDS", 0.1)
    monkeypatch.setattr(redis_cart, "LOCK_POLL_SECONDS", 0.01)
    fake_redis.data[RedisCartStore.lock_key("sess-1")] = "held-by-another-request"

    response = _add(client)

    assert response.status_code == 503
    assert response.json()["detail"] == "Cart temporarily unavailable"


def test_cart_survives_redis_outage_between_requests(client, fake_redis, monkeypatch) -> None:
    _add(client)

    def _down(*args, **kwargs):
        raise redis.ConnectionError("redis is down")

    monkeypatch.setattr(fake_redis, "get", _down)
    _add(client, productId="p2", name="Closure", price=350)

    response = client.get("/api/v1/cart", headers=SESSION)
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["items"]] == ["p2-default"]
    assert client.get("/api/v1/health").json()["cartStorage"] == "memory"


def test_update_and_remove_lines(client) -> None:
    _add(client)
    _add(client, productId="p2", name="Closure", price=350)

    response = client.patch(
        "/api/v1/cart/items/p1-default", json={"quantity": 3}, headers=SESSION
    )
    assert response.json()["totalItems"] == 4

    response = client.patch(
        "/api/v1/cart/items/p2-default", json={"quantity": 0}, headers=SESSION
    )
    assert [item["id"] for item in response.json()["items"]] == ["p1-default"]

    response = client.delete("/api/v1/cart/items/p1-default", headers=SESSION)
    assert response.json()["items"] == []


def test_drawer_endpoints(client) -> None:
    assert client.post("/api/v1/cart/open", headers=SESSION).json()["isOpen"] is True
    assert client.post("/api/v1/cart/close", headers=SESSION).json()["isOpen"] is False
    assert client.post("/api/v1/cart/toggle", headers=SESSION).json()["isOpen"] is True
    assert client.get("/api/v1/cart", headers=SESSION).json()["isOpen"] is True


def test_clear_cart(client) -> None:
    _add(client)

    response = client.delete("/api/v1/cart", headers=SESSION)

    assert response.json()["totalItems"] == 0


def test_carts_are_isolated_by_session(client) -> None:
    _add(client)

    response = client.get("/api/v1/cart", headers={"X-Cart-Session": "other"})

    assert response.json()["items"] == []


# ----------------------------------------------------------------------
# checkout
# ----------------------------------------------------------------------


def test_checkout_creates_order_and_clears_cart(client, repo, fake_redis, checkout_payload) -> None:
    _add(client)

    response = client.post(
        "/api/v1/checkout",
        json=checkout_payload,
        headers={**SESSION, "X-User-Id": "user-9"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["orderNumber"].startswith("TH-")
    assert data["paymentMethod"] == "ecocash"
    assert data["paymentInstructions"] == "EcoCash payment prompt sent to 0772000000"
    [(order, items)] = repo.saved
    assert data["orderId"] == order.id
    assert order.user_id == "user-9"
    assert order.total == Decimal("550.00")
    assert len(items) == 2
    assert RedisCartStore("sess-1", fake_redis).is_empty()


def test_checkout_without_session_leaves_carts_alone(client, repo, checkout_payload) -> None:
    _add(client)

    response = client.post("/api/v1/checkout", json=checkout_payload)

    assert response.status_code == 200
    assert client.get("/api/v1/cart", headers=SESSION).json()["totalItems"] == 1


def test_checkout_validation_error_is_400(client, repo, checkout_payload) -> None:
    checkout_payload["items"] = []

    response = client.post("/api/v1/checkout", json=checkout_payload)

    assert response.status_code == 400
    assert repo.saved == []


def test_checkout_rejects_price_beyond_money_range(client, repo, checkout_payload) -> None:
    checkout_payload["items"][0]["price"] = 1e30

    response = client.post("/api/v1/checkout", json=checkout_payload)

    assert response.status_code == 400
    assert repo.saved == []


def test_checkout_rejects_non_object_body(client) -> None:
    response = client.post("/api/v1/checkout", json=[1, 2])

    assert response.status_code == 400


def test_checkout_persistence_failure_is_500(fake_redis, checkout_payload) -> None:
    repo = DummyRepo(fail=True)
    app = create_api_app(
        settings=_settings(),
        repo=repo,
        cart_factory=CartStoreFactory(client=fake_redis),
        checkout_service=CheckoutService(repo),
    )

    response = TestClient(app).post("/api/v1/checkout", json=checkout_payload, headers=SESSION)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to process checkout"


def test_checkout_price_mismatch_is_409(fake_redis, checkout_payload) -> None:
    repo = DummyRepo()
    checkout_payload["items"][0]["price"] = 150
    app = create_api_app(
        settings=_settings(checkout=CheckoutConfig(verify_prices=True, store_address="x")),
        repo=repo,
        cart_factory=CartStoreFactory(client=fake_redis),
    )

    response = TestClient(app).post("/api/v1/checkout", json=checkout_payload)

    assert response.status_code == 409
    assert repo.saved == []


def test_checkout_unavailable_without_database(fake_redis, checkout_payload) -> None:
    app = create_api_app(settings=_settings(), cart_factory=CartStoreFactory(client=fake_redis))

    response = TestClient(app).post("/api/v1/checkout", json=checkout_payload)

    assert response.status_code == 503


# ----------------------------------------------------------------------
# orders
# ----------------------------------------------------------------------


def test_get_order_by_id_and_number(client, repo) -> None:
    repo.orders["o-1"] = _order_row()

    by_id = client.get("/api/v1/orders/o-1", headers=OWNER)
    by_number = client.get("/api/v1/orders/number/th-abc-10000", headers=OWNER)

    assert by_id.status_code == 200
    data = by_id.json()
    assert data["orderNumber"] == "TH-ABC-10000"
    assert data["total"] == 75.0
    assert data["shippingAddress"]["city"] == "Harare"
    assert data["items"][0]["productId"] == "p3"
    assert by_number.json()["id"] == "o-1"


def test_missing_order_is_404(client) -> None:
    assert client.get("/api/v1/orders/nope", headers=OWNER).status_code == 404
    assert client.get("/api/v1/orders/number/TH-NOPE", headers=OWNER).status_code == 404


def test_order_lookup_requires_identity(client, repo) -> None:
    repo.orders["o-1"] = _order_row()

    assert client.get("/api/v1/orders/o-1").status_code == 401
    assert client.get("/api/v1/orders/number/TH-ABC-10000").status_code == 401


def test_other_users_order_is_not_found(client, repo) -> None:
    repo.orders["o-1"] = _order_row()
    stranger = {"X-User-Id": "user-2"}

    by_id = client.get("/api/v1/orders/o-1", headers=stranger)
    by_number = client.get("/api/v1/orders/number/TH-ABC-10000", headers=stranger)

    assert by_id.status_code == 404
    assert by_number.status_code == 404
    assert "tariro" not in by_id.text


def test_guest_order_lookup_by_email(client, repo) -> None:
    repo.orders["o-1"] = _order_row(user_id=None)

    found = client.get(
        "/api/v1/orders/number/TH-ABC-10000",
        headers={"X-Order-Email": " Tariro@Example.com "},
    )
    wrong_email = client.get(
        "/api/v1/orders/o-1", headers={"X-Order-Email": "someone@example.com"}
    )
    guest_via_user_header = client.get("/api/v1/orders/o-1", headers=OWNER)

    assert found.status_code == 200
    assert found.json()["id"] == "o-1"
    assert wrong_email.status_code == 404
    assert guest_via_user_header.status_code == 404


def test_list_orders_requires_user(client) -> None:
    assert client.get("/api/v1/orders").status_code == 401


def test_list_orders_for_user(client, repo) -> None:
    repo.orders["o-1"] = _order_row("o-1")
    repo.orders["o-2"] = _order_row("o-2", user_id="someone-else")

    response = client.get("/api/v1/orders", headers={"X-User-Id": "user-1"})

    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == ["o-1"]


def test_list_orders_limit_is_bounded(client) -> None:
    response = client.get("/api/v1/orders?limit=500", headers={"X-User-Id": "user-1"})

    assert response.status_code == 422


# ----------------------------------------------------------------------
# app
# ----------------------------------------------------------------------


def test_health_reports_storage(client) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["database"] == "disabled"
    assert response.json()["cartStorage"] == "redis"


def test_security_headers(client) -> None:
    response = client.get("/api/v1/cart", headers=SESSION)

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"


def test_allowed_origins_include_localhost_only_in_dev() -> None:
    prod = _settings(environment="production", allowed_origins=["https://truthhair.co.zw/shop"])
    dev = _settings(environment="development")

    assert build_allowed_origins(prod) == ["https://truthhair.co.zw"]
    assert "http://localhost:3000" in build_allowed_origins(dev)
