"""Custom exceptions for the Truth Hair storefront."""
from __future__ import annotations


class TruthHairException(Exception):
    """Base exception for all storefront errors."""

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class DatabaseException(TruthHairException):
    """Database-related errors."""

    pass


class OrderPersistenceException(DatabaseException):
    """Order or order item rows could not be written."""

    def __init__(self, order_number: str, cause: Exception | None = None) -> None:
        super().__init__(f"Failed to persist order {order_number}")
        self.order_number = order_number
        self.cause = cause


class OrderNotFoundException(TruthHairException):
    """Order not found in database."""

    def __init__(self, order_ref: str) -> None:
        super().__init__(f"Order {order_ref} not found")
        self.order_ref = order_ref


class CartStorageException(TruthHairException):
    """Cart state could not be read or written."""

    def __init__(self, session_id: str, reason: object) -> None:
        super().__init__(f"Cart storage unavailable for session {session_id}")
        self.session_id = session_id
        self.reason = reason


class ValidationException(TruthHairException):
    """Input validation errors."""

    pass


class UnknownProductException(ValidationException):
    """Checkout line references a product or variant missing from the catalog."""

    def __init__(self, product_id: str, variant_id: str | None = None) -> None:
        label = f"{product_id}/{variant_id}" if variant_id else product_id
        super().__init__(f"Unknown product: {label}")
        self.product_id = product_id
        self.variant_id = variant_id


class PriceMismatchException(ValidationException):
    """Submitted price no longer matches the catalog price."""

    def __init__(self, product_id: str, submitted: object, expected: object) -> None:
        super().__init__(
            f"Price for {product_id} changed: submitted {submitted}, current {expected}"
        )
        self.product_id = product_id
        self.submitted = submitted
        self.expected = expected


class ConfigurationException(TruthHairException):
    """Configuration errors."""

    pass
