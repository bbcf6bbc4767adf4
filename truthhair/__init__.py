"""Truth Hair storefront: cart state and checkout pipeline."""

__version__ = "1.0.0"
