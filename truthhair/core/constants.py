"""Application-wide constants and configuration values.

Centralizes magic numbers so pricing rules and storage keys live in one place.
"""
from decimal import Decimal

# ============== CART ==============
CART_NAMESPACE = "truth-hair-cart"
DEFAULT_VARIANT_KEY = "default"
CART_TTL_SECONDS = 30 * 24 * 3600  # 30 days

# ============== PRICING ==============
MONEY_QUANT = Decimal("0.01")
FREE_DELIVERY_THRESHOLD = Decimal("500")  # strictly above this is free
FLAT_DELIVERY_FEE = Decimal("25")
TAX_AMOUNT = Decimal("0")
DISCOUNT_AMOUNT = Decimal("0")

# ============== ORDERS ==============
ORDER_NUMBER_PREFIX = "TH"
ORDER_NUMBER_RANDOM_LENGTH = 5
ORDERS_PER_PAGE = 10
MAX_ORDERS_PER_PAGE = 50

# ============== ADDRESSES ==============
DEFAULT_CITY = "Harare"
DEFAULT_COUNTRY = "Zimbabwe"
DEFAULT_STORE_ADDRESS = "123 First Street, Harare CBD"

# ============== VALIDATION ==============
MAX_QUANTITY = 1000
MAX_CART_LINES = 100
# keeps order totals within NUMERIC(12, 2)
MAX_UNIT_PRICE = Decimal("50000")
