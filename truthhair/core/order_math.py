"""Shared helpers for order totals and quantities."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from truthhair.core.constants import (
    DISCOUNT_AMOUNT,
    FLAT_DELIVERY_FEE,
    FREE_DELIVERY_THRESHOLD,
    MONEY_QUANT,
    TAX_AMOUNT,
)


def _field(item: Any, key: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(key, default)
    return getattr(item, key, default)


def to_money(value: Any) -> Decimal:
    """Coerce a numeric value to a two-place Decimal.

    Floats go through ``str`` so 0.1 stays 0.10 instead of its binary expansion.
    """
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Not a monetary amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        return amount.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Monetary amount out of range: {value!r}") from e


def calc_line_total(price: Any, quantity: int) -> Decimal:
    return to_money(to_money(price) * int(quantity))


def calc_items_total(items: Iterable[Any]) -> Decimal:
    total = Decimal("0")
    for item in items:
        total += calc_line_total(_field(item, "price", 0), _field(item, "quantity", 1))
    return to_money(total)


def calc_quantity(items: Iterable[Any]) -> int:
    return sum(int(_field(item, "quantity", 1)) for item in items)


def calc_delivery_fee(subtotal: Any) -> Decimal:
    """Two-tier delivery: free strictly above the threshold, flat fee otherwise."""
    if to_money(subtotal) > FREE_DELIVERY_THRESHOLD:
        return to_money(0)
    return to_money(FLAT_DELIVERY_FEE)


def calc_total_price(
    subtotal: Any,
    delivery_fee: Any,
    *,
    tax: Any = TAX_AMOUNT,
    discount: Any = DISCOUNT_AMOUNT,
) -> Decimal:
    return to_money(to_money(subtotal) + to_money(delivery_fee) + to_money(tax) - to_money(discount))


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


def compute_order_totals(items: Iterable[Any]) -> OrderTotals:
    subtotal = calc_items_total(items)
    shipping = calc_delivery_fee(subtotal)
    tax = to_money(TAX_AMOUNT)
    discount = to_money(DISCOUNT_AMOUNT)
    return OrderTotals(
        subtotal=subtotal,
        shipping=shipping,
        tax=tax,
        discount=discount,
        total=calc_total_price(subtotal, shipping, tax=tax, discount=discount),
    )
