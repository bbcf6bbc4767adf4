"""Database mixins grouped by domain area."""
from .orders import OrderMixin
from .products import ProductMixin

__all__ = ["OrderMixin", "ProductMixin"]
