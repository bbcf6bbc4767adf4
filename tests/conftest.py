"""Shared pytest fixtures for the storefront tests."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

import pytest

# The limiter reads this at import time
os.environ.setdefault("RATE_LIMIT_DISABLED", "1")


@dataclass
class FakeRedisClient:
    data: dict[str, str] = field(default_factory=dict)
    expiry: dict[str, int] = field(default_factory=dict)
    setex_calls: list[tuple[str, int]] = field(default_factory=list)
    closed: bool = False

    def ping(self) -> bool:
        return True

    def get(self, key: str):
        return self.data.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        self.data[key] = value
        self.expiry[key] = ttl
        self.setex_calls.append((key, ttl))
        return True

    def set(self, key: str, value: str, nx: bool = False, ex: int | None = None) -> bool:
        if nx and key in self.data:
            return False
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    def eval(self, _script: str, _keys_count: int, key: str, token: str) -> int:
        if self.data.get(key) == token:
            self.delete(key)
            return 1
        return 0

    def delete(self, key: str) -> int:
        existed = 1 if key in self.data else 0
        self.data.pop(key, None)
        self.expiry.pop(key, None)
        return existed

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient()


@pytest.fixture
def checkout_payload() -> dict[str, Any]:
    """Two-line cart submission from a shopper paying by EcoCash."""
    return {
        "items": [
            {
                "productId": "p1",
                "variantId": "v1",
                "name": "Body Wave Frontal",
                "price": 200,
                "quantity": 1,
                "image": "/img/p1.jpg",
                "variant": {"color": "Natural Black", "length": "18in", "density": "180%"},
            },
            {
                "productId": "p2",
                "name": "Kinky Straight Closure",
                "price": 350,
                "quantity": 1,
            },
        ],
        "customerInfo": {
            "firstName": "Tariro",
            "lastName": "Moyo",
            "email": "tariro@example.com",
            "phone": "0771000000",
            "deliveryAddress": {"line1": "12 Samora Machel Ave", "suburb": "Avondale"},
            "sameAsBilling": True,
            "paymentMethod": "ecocash",
            "ecocashNumber": "0772000000",
        },
    }


def _get_test_db_url() -> str | None:
    return os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL")


def _is_safe_db_url(db_url: str) -> bool:
    """Allow only local/test hosts unless explicitly overridden."""
    parsed = urlparse(db_url)
    host = (parsed.hostname or "").lower()
    return host in {"localhost", "127.0.0.1", "postgres", "db"}


@pytest.fixture(scope="session")
def postgres_db():
    """Session-scoped PostgreSQL database handle for tests."""
    db_url = _get_test_db_url()
    if not db_url:
        pytest.skip("TEST_DATABASE_URL (or DATABASE_URL) is required for DB tests")
    if not _is_safe_db_url(db_url) and os.getenv("ALLOW_TEST_DB_RESET") != "1":
        pytest.skip(
            "Refusing to run DB tests against non-local database. "
            "Set ALLOW_TEST_DB_RESET=1 to override."
        )

    from truthhair_db import Database

    db = Database(db_url)
    db.init_db()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def db(postgres_db):
    """Function-scoped database fixture with empty storefront tables."""
    with postgres_db.get_connection() as conn:
        conn.execute(
            "TRUNCATE TABLE order_items, orders, product_variants, products RESTART IDENTITY CASCADE"
        )
    return postgres_db
