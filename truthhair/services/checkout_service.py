"""
Checkout service - turns a cart snapshot and customer details into an order.

Pipeline (one call per submission, no state kept between calls):
    1. validate the submission (pydantic schemas)
    2. re-check submitted prices against the catalog, when one is wired in
    3. subtotal -> delivery tier -> total (tax and discount are zero)
    4. order number, payment method and instruction text
    5. shipping/billing address shaping
    6. order + items persisted in a single transaction
    7. small response payload for the storefront

The service never touches a cart store; clearing the cart after a successful
response is the caller's job.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from truthhair.core.constants import DEFAULT_STORE_ADDRESS
from truthhair.core.exceptions import (
    OrderPersistenceException,
    PriceMismatchException,
    TruthHairException,
    UnknownProductException,
    ValidationException,
)
from truthhair.core.order_math import calc_line_total, compute_order_totals, to_money
from truthhair.core.order_numbers import generate_id, generate_order_number
from truthhair.domain.checkout import CheckoutItem, CheckoutRequest, CheckoutResponse
from truthhair.domain.order import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    build_address_fields,
    payment_instructions,
)
from truthhair.infra.db.orders_repo import OrderStore, PriceCatalog

logger = logging.getLogger(__name__)


def describe_validation_error(error: ValidationError, limit: int = 3) -> str:
    """Compact, client-safe summary of a pydantic error."""
    parts = []
    for err in error.errors()[:limit]:
        location = ".".join(str(part) for part in err.get("loc", ())) or "body"
        parts.append(f"{location}: {err.get('msg', 'invalid value')}")
    extra = error.error_count() - limit
    if extra > 0:
        parts.append(f"and {extra} more")
    return "; ".join(parts)


class CheckoutService:
    """Stateless checkout pipeline over an order store and optional catalog."""

    def __init__(
        self,
        store: OrderStore,
        catalog: PriceCatalog | None = None,
        *,
        store_address: str = DEFAULT_STORE_ADDRESS,
        order_number_factory: Callable[[], str] = generate_order_number,
        id_factory: Callable[[], str] = generate_id,
        clock: Callable[[], datetime] | None = None,
    ):
        self._store = store
        self._catalog = catalog
        self._store_address = store_address
        self._order_number_factory = order_number_factory
        self._id_factory = id_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def verifies_prices(self) -> bool:
        return self._catalog is not None

    @staticmethod
    def parse_request(payload: CheckoutRequest | dict[str, Any]) -> CheckoutRequest:
        if isinstance(payload, CheckoutRequest):
            return payload
        if not isinstance(payload, dict):
            raise ValidationException("Checkout payload must be a JSON object")
        try:
            return CheckoutRequest.model_validate(payload)
        except ValidationError as e:
            raise ValidationException(describe_validation_error(e)) from e

    def _verify_prices(self, items: list[CheckoutItem]) -> None:
        if self._catalog is None:
            return
        seen: dict[tuple[str, str | None], Decimal] = {}
        for item in items:
            key = (item.product_id, item.variant_id)
            if key not in seen:
                price = self._catalog.get_product_price(item.product_id, item.variant_id)
                if price is None:
                    raise UnknownProductException(item.product_id, item.variant_id)
                seen[key] = to_money(price)
            if item.price != seen[key]:
                raise PriceMismatchException(item.product_id, item.price, seen[key])

    def checkout(
        self,
        payload: CheckoutRequest | dict[str, Any],
        user_id: str | None = None,
    ) -> CheckoutResponse:
        """Validate, price and persist one checkout submission.

        Raises:
            ValidationException: bad input, unknown product or stale price
            OrderPersistenceException: the order could not be stored
        """
        request = self.parse_request(payload)
        customer = request.customer_info
        self._verify_prices(request.items)

        totals = compute_order_totals(request.items)
        order_number = self._order_number_factory()
        method = PaymentMethod.resolve(customer.payment_method)
        instructions = payment_instructions(method, customer, self._store_address)
        shipping_address, billing_address = build_address_fields(customer)
        now = self._clock()

        order = Order(
            id=self._id_factory(),
            order_number=order_number,
            user_id=user_id or None,
            email=str(customer.email),
            phone=customer.phone,
            status=OrderStatus.PENDING,
            subtotal=totals.subtotal,
            tax=totals.tax,
            shipping=totals.shipping,
            discount=totals.discount,
            total=totals.total,
            shipping_address=shipping_address,
            billing_address=billing_address,
            payment_intent_id=f"{method.value}_{order_number}",
            payment_method=method.value,
            created_at=now,
            updated_at=now,
        )
        order_items = [
            OrderItem(
                id=self._id_factory(),
                order_id=order.id,
                product_id=item.product_id,
                variant_id=item.variant_id,
                quantity=item.quantity,
                price=item.price,
                total=calc_line_total(item.price, item.quantity),
                created_at=now,
            )
            for item in request.items
        ]

        try:
            self._store.create_order_with_items(order, order_items)
        except TruthHairException:
            raise
        except Exception as e:
            raise OrderPersistenceException(order_number, e) from e

        logger.info(
            "Checkout %s: %s line(s), subtotal=%s shipping=%s total=%s method=%s",
            order_number,
            len(order_items),
            totals.subtotal,
            totals.shipping,
            totals.total,
            method.value,
        )
        return CheckoutResponse(
            order_id=order.id,
            order_number=order_number,
            payment_instructions=instructions,
            payment_method=method.value,
        )
