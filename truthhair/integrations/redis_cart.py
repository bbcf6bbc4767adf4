"""Redis-backed shopper cart with merge-by-variant line items."""
from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, TypeVar

import redis

from truthhair.core.constants import CART_NAMESPACE, CART_TTL_SECONDS, DEFAULT_VARIANT_KEY
from truthhair.core.exceptions import CartStorageException
from truthhair.core.order_math import calc_line_total, to_money

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOCK_TTL_SECONDS = 5
LOCK_WAIT_SECONDS = 2.0
LOCK_POLL_SECONDS = 0.05
_UNLOCK_LUA = (
    "if redis.call('get', KEYS[1]) == ARGV[1] "
    "then return redis.call('del', KEYS[1]) else return 0 end"
)

# process-local session locks, striped by key
_LOCAL_LOCKS = tuple(threading.RLock() for _ in range(64))


def _local_lock(key: str) -> threading.RLock:
    return _LOCAL_LOCKS[hash(key) % len(_LOCAL_LOCKS)]


def make_line_item_id(product_id: str, variant_id: str | None = None) -> str:
    return f"{product_id}-{variant_id or DEFAULT_VARIANT_KEY}"


@dataclass
class VariantDescriptor:
    """Display labels of the selected variant."""

    color: str | None = None
    length: str | None = None
    density: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"color": self.color, "length": self.length, "density": self.density}

    @classmethod
    def from_dict(cls, data: Any) -> VariantDescriptor | None:
        if not data:
            return None
        if not isinstance(data, dict):
            raise ValueError(f"variant must be an object, got {type(data).__name__}")
        return cls(
            color=data.get("color"),
            length=data.get("length"),
            density=data.get("density"),
        )


@dataclass
class LineItem:
    """Single product+variant selection in the cart."""

    id: str
    product_id: str
    name: str
    unit_price: Decimal
    image: str
    quantity: int
    variant_id: str | None = None
    variant: VariantDescriptor | None = None

    @property
    def line_total(self) -> Decimal:
        return calc_line_total(self.unit_price, self.quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "name": self.name,
            "price": str(self.unit_price),
            "image": self.image,
            "quantity": int(self.quantity),
            "variant": self.variant.to_dict() if self.variant else None,
        }

    @classmethod
    def from_dict(cls, data: Any) -> LineItem:
        if not isinstance(data, dict):
            raise ValueError("line item must be an object")
        product_id = str(data["productId"])
        variant_id = data.get("variantId") or None
        quantity = int(data["quantity"])
        if quantity < 1:
            raise ValueError(f"stored quantity {quantity} for {product_id} is not positive")
        return cls(
            # identity is always re-derived so a tampered id cannot split a key
            id=make_line_item_id(product_id, variant_id),
            product_id=product_id,
            name=str(data.get("name", "")),
            unit_price=to_money(data["price"]),
            image=str(data.get("image") or ""),
            quantity=quantity,
            variant_id=variant_id,
            variant=VariantDescriptor.from_dict(data.get("variant")),
        )

    def to_checkout_item(self) -> dict[str, Any]:
        """Shape used by the checkout submission payload."""
        payload = self.to_dict()
        payload.pop("id")
        return payload


class MemoryStateClient:
    """Process-local key/value store used when Redis is not configured.

    Implements the subset of the redis client API the cart store touches.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def setex(self, key: str, ttl: int, value: str) -> bool:
        with self._lock:
            self._data[key] = value
        return True

    def delete(self, key: str) -> int:
        with self._lock:
            return 1 if self._data.pop(key, None) is not None else 0


class RedisCartStore:
    """Cart state for one shopper session.

    The whole state (items and drawer flag) lives under one namespaced key.
    Every mutation holds the session lock (process-local, plus a Redis
    ``SET NX`` lock when Redis is the backend), re-reads the stored state,
    applies the change and writes it back with a fresh TTL.
    """

    def __init__(
        self,
        session_id: str,
        client: Any,
        ttl_seconds: int = CART_TTL_SECONDS,
        on_storage_error: Callable[[Exception], Any] | None = None,
    ):
        if not session_id:
            raise ValueError("session_id is required")
        self.session_id = session_id
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._on_storage_error = on_storage_error
        self._lock = threading.RLock()
        self._items: list[LineItem] = []
        self._is_open = False
        with self._lock:
            self._storage_call(self._load)

    @staticmethod
    def state_key(session_id: str) -> str:
        return f"{CART_NAMESPACE}:{session_id}"

    @staticmethod
    def lock_key(session_id: str) -> str:
        return f"{CART_NAMESPACE}-lock:{session_id}"

    @property
    def key(self) -> str:
        return self.state_key(self.session_id)

    # ------------------------------------------------------------------
    # persistence
    # ------------------------------------------------------------------

    def _storage_call(self, operation: Callable[[], T]) -> T:
        """Run ``operation``; on a Redis error move to the fallback client and retry once.

        Raises:
            CartStorageException: Redis failed and no fallback is wired in
        """
        try:
            return operation()
        except redis.RedisError as exc:
            if self._on_storage_error is None:
                raise CartStorageException(self.session_id, exc) from exc
            self._client = self._on_storage_error(exc)
            return operation()

    @contextmanager
    def _session_lock(self) -> Iterator[None]:
        with _local_lock(self.key):
            if isinstance(self._client, MemoryStateClient):
                yield
                return

            lock_key = self.lock_key(self.session_id)
            token = str(uuid.uuid4())
            deadline = time.monotonic() + LOCK_WAIT_SECONDS
            while not self._client.set(lock_key, token, nx=True, ex=LOCK_TTL_SECONDS):
                if time.monotonic() >= deadline:
                    raise CartStorageException(self.session_id, "session lock wait timed out")
                time.sleep(LOCK_POLL_SECONDS)
            try:
                yield
            finally:
                try:
                    self._client.eval(_UNLOCK_LUA, 1, lock_key, token)
                except redis.RedisError as exc:
                    logger.warning("Cart lock release failed for %s: %s", lock_key, exc)

    def _decode(self, raw: Any) -> tuple[list[LineItem], bool]:
        if not raw:
            return [], False
        try:
            payload = json.loads(raw)
            if not isinstance(payload, dict):
                raise ValueError("cart state must be an object")
            raw_items = payload.get("items", [])
            if not isinstance(raw_items, list):
                raise ValueError("cart items must be a list")
            is_open = payload.get("isOpen", False)
            if not isinstance(is_open, bool):
                raise ValueError("isOpen must be a boolean")
            items = [LineItem.from_dict(raw_item) for raw_item in raw_items]
        except (ValueError, KeyError, TypeError, ArithmeticError) as exc:
            logger.warning("Discarding malformed cart state for %s: %s", self.key, exc)
            return [], False
        return items, is_open

    def _load(self) -> None:
        self._items, self._is_open = self._decode(self._client.get(self.key))

    def _write(self) -> None:
        state = {"items": [item.to_dict() for item in self._items], "isOpen": self._is_open}
        self._client.setex(self.key, self._ttl_seconds, json.dumps(state, ensure_ascii=False))

    def _mutate(self, apply: Callable[[], T]) -> T:
        def operation() -> T:
            with self._session_lock():
                self._load()
                result = apply()
                self._write()
                return result

        with self._lock:
            return self._storage_call(operation)

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------

    def add_item(
        self,
        product_id: str,
        name: str,
        unit_price: Any,
        image: str = "",
        variant_id: str | None = None,
        variant: VariantDescriptor | None = None,
    ) -> LineItem:
        """Add one unit of a product/variant, merging with an existing line."""
        item_id = make_line_item_id(product_id, variant_id)
        price = to_money(unit_price)

        def apply() -> LineItem:
            for item in self._items:
                if item.id == item_id:
                    item.quantity += 1
                    return replace(item)
            item = LineItem(
                id=item_id,
                product_id=product_id,
                name=name,
                unit_price=price,
                image=image,
                quantity=1,
                variant_id=variant_id or None,
                variant=variant,
            )
            self._items.append(item)
            return replace(item)

        added = self._mutate(apply)
        logger.debug("Cart %s: %s qty=%s", self.session_id, item_id, added.quantity)
        return added

    def remove_item(self, item_id: str) -> bool:
        def apply() -> bool:
            before = len(self._items)
            self._items = [item for item in self._items if item.id != item_id]
            return len(self._items) != before

        return self._mutate(apply)

    def update_quantity(self, item_id: str, quantity: int) -> bool:
        """Set an exact quantity; zero or below removes the line."""
        if quantity <= 0:
            return self.remove_item(item_id)

        def apply() -> bool:
            for item in self._items:
                if item.id == item_id:
                    item.quantity = int(quantity)
                    return True
            return False

        return self._mutate(apply)

    def clear_cart(self) -> None:
        def apply() -> None:
            self._items = []

        self._mutate(apply)

    def open_cart(self) -> None:
        self._set_open(True)

    def close_cart(self) -> None:
        self._set_open(False)

    def toggle_cart(self) -> None:
        def apply() -> None:
            self._is_open = not self._is_open

        self._mutate(apply)

    def _set_open(self, value: bool) -> None:
        def apply() -> None:
            self._is_open = value

        self._mutate(apply)

    # ------------------------------------------------------------------
    # queries (state as of construction or the last mutation)
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def items(self) -> list[LineItem]:
        """Insertion-ordered copies of the current lines."""
        with self._lock:
            return [
                replace(item, variant=replace(item.variant) if item.variant else None)
                for item in self._items
            ]

    def get_item(self, item_id: str) -> LineItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def get_total_price(self) -> Decimal:
        with self._lock:
            return to_money(sum((item.line_total for item in self._items), Decimal("0")))

    def get_total_items(self) -> int:
        with self._lock:
            return sum(item.quantity for item in self._items)

    def is_empty(self) -> bool:
        with self._lock:
            return not self._items

    def snapshot(self) -> list[dict[str, Any]]:
        """Line items in the checkout submission shape."""
        with self._lock:
            return [item.to_checkout_item() for item in self._items]


class CartStoreFactory:
    """Creates per-session cart stores over one shared state client.

    A Redis failure at runtime switches every later store to a process-local
    client, the same way an unreachable Redis does at startup.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        ttl_seconds: int = CART_TTL_SECONDS,
        client: Any | None = None,
    ):
        self._redis_url = redis_url
        self._ttl_seconds = ttl_seconds
        self._switch_lock = threading.Lock()
        self._client = client if client is not None else self._init_client()
        self._primary = self._client

    def _init_client(self) -> Any:
        if not self._redis_url:
            logger.warning("REDIS_URL is not set; cart uses in-process storage")
            return MemoryStateClient()

        try:
            client = redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            client.ping()
        except redis.RedisError as exc:
            logger.warning("Redis cart init failed, falling back to in-process storage: %s", exc)
            return MemoryStateClient()
        logger.info("Redis cart storage enabled")
        return client

    def _switch_to_memory_fallback(self, reason: Exception) -> MemoryStateClient:
        with self._switch_lock:
            if not isinstance(self._client, MemoryStateClient):
                logger.warning("Redis cart fallback to in-process storage: %s", reason)
                self._client = MemoryStateClient()
            return self._client

    @property
    def client(self) -> Any:
        return self._client

    def open(self, session_id: str) -> RedisCartStore:
        return RedisCartStore(
            session_id,
            self._client,
            ttl_seconds=self._ttl_seconds,
            on_storage_error=self._switch_to_memory_fallback,
        )

    def close(self) -> None:
        close = getattr(self._primary, "close", None)
        if callable(close):
            close()
