"""Checkout submission and response schemas.

The storefront client posts camelCase JSON; every model here accepts both the
camelCase aliases and the snake_case field names.
"""
from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from truthhair.core.constants import MAX_CART_LINES, MAX_QUANTITY, MAX_UNIT_PRICE
from truthhair.core.order_math import to_money


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class VariantInfo(CamelModel):
    color: str | None = None
    length: str | None = None
    density: str | None = None


class CheckoutItem(CamelModel):
    product_id: str = Field(..., min_length=1)
    variant_id: str | None = None
    name: str | None = None
    price: Decimal = Field(..., ge=0, le=MAX_UNIT_PRICE)
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY)
    image: str | None = None
    variant: VariantInfo | None = None

    @field_validator("variant_id")
    @classmethod
    def _blank_variant_is_none(cls, value: str | None) -> str | None:
        return value or None

    @field_validator("price")
    @classmethod
    def _quantize_price(cls, value: Decimal) -> Decimal:
        return to_money(value)


class DeliveryAddress(CamelModel):
    line1: str = Field(..., min_length=1)
    line2: str | None = None
    city: str | None = None
    suburb: str = Field(..., min_length=1)


class BillingAddress(CamelModel):
    name: str | None = None
    line1: str = Field(..., min_length=1)
    line2: str | None = None
    city: str | None = None
    suburb: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class CustomerInfo(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    delivery_address: DeliveryAddress
    billing_address: BillingAddress | None = None
    same_as_billing: bool = True
    # unknown methods resolve to cash
    payment_method: str | None = None
    ecocash_number: str | None = None
    innbucks_number: str | None = None

    @model_validator(mode="after")
    def _billing_required_when_different(self) -> CustomerInfo:
        if not self.same_as_billing and self.billing_address is None:
            raise ValueError("billingAddress is required when sameAsBilling is false")
        return self


class CheckoutRequest(CamelModel):
    items: list[CheckoutItem] = Field(..., min_length=1, max_length=MAX_CART_LINES)
    customer_info: CustomerInfo


class CheckoutResponse(CamelModel):
    order_id: str
    order_number: str
    payment_instructions: str
    payment_method: str
