"""
Main Database class combining all mixins.
"""
from __future__ import annotations

from .core import DatabaseCore
from .mixins import OrderMixin, ProductMixin
from .schema import SchemaMixin


class Database(DatabaseCore, SchemaMixin, OrderMixin, ProductMixin):
    """PostgreSQL database for the storefront core."""

    pass
