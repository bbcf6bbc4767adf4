"""
PostgreSQL persistence for the Truth Hair storefront.

Usage:
    from truthhair_db import Database
    db = Database()  # Uses DATABASE_URL env var
    db.init_db()

The Database class combines functionality through mixins:
- SchemaMixin: table and index creation
- OrderMixin: transactional order + item writes, order lookups
- ProductMixin: catalog price lookups for checkout validation
"""
from __future__ import annotations

from .core import DATABASE_URL, DatabaseCore, safe_database_host
from .database import Database
from .schema import SchemaMixin

__all__ = [
    "Database",
    "DatabaseCore",
    "SchemaMixin",
    "DATABASE_URL",
    "safe_database_host",
]
