"""Order domain types, payment methods and address shaping."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from truthhair.core.constants import DEFAULT_CITY, DEFAULT_COUNTRY, DEFAULT_STORE_ADDRESS
from truthhair.domain.checkout import CustomerInfo


class OrderStatus:
    """Statuses written to orders.status; checkout creates every order as pending."""

    PENDING = "PENDING"


class PaymentMethod(str, Enum):
    """Supported local payment methods."""

    ECOCASH = "ecocash"
    INNBUCKS = "innbucks"
    CASH = "cash"

    @classmethod
    def resolve(cls, value: str | None) -> PaymentMethod:
        """Map a submitted value to a method, defaulting to cash."""
        if not value:
            return cls.CASH
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.CASH


def payment_instructions(
    method: PaymentMethod,
    customer: CustomerInfo,
    store_address: str = DEFAULT_STORE_ADDRESS,
) -> str:
    """Pick the instruction text shown to the shopper after checkout.

    No provider is contacted; mobile-money methods only reference the number
    the prompt would go to.
    """
    if method is PaymentMethod.ECOCASH:
        return f"EcoCash payment prompt sent to {customer.ecocash_number or customer.phone}"
    if method is PaymentMethod.INNBUCKS:
        return f"InnBucks payment prompt sent to {customer.innbucks_number or customer.phone}"
    return f"Please visit our store at {store_address} to complete payment"


def build_shipping_address(customer: CustomerInfo) -> dict[str, Any]:
    delivery = customer.delivery_address
    return {
        "name": f"{customer.first_name} {customer.last_name}",
        "line1": delivery.line1,
        "line2": delivery.line2,
        "city": delivery.city or DEFAULT_CITY,
        "state": delivery.suburb,
        "postalCode": "",
        "country": DEFAULT_COUNTRY,
    }


def serialize_address(address: dict[str, Any]) -> str:
    return json.dumps(address, ensure_ascii=False)


def build_address_fields(customer: CustomerInfo) -> tuple[str, str]:
    """Return serialized (shipping, billing) addresses."""
    shipping = serialize_address(build_shipping_address(customer))
    if customer.same_as_billing or customer.billing_address is None:
        return shipping, shipping
    billing = customer.billing_address.model_dump(by_alias=True, exclude_none=True)
    return shipping, serialize_address(billing)


def parse_address(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OrderItem:
    """One persisted order line."""

    id: str
    order_id: str
    product_id: str
    variant_id: str | None
    quantity: int
    price: Decimal
    total: Decimal
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class Order:
    """Persisted result of a checkout submission."""

    id: str
    order_number: str
    user_id: str | None
    email: str
    phone: str
    status: str
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal
    shipping_address: str
    billing_address: str
    payment_intent_id: str
    payment_method: str
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
