"""
Error taxonomy for the cart and favorites sync engine.

Message constants live next to the exception classes so the session and
the HTTP layer render identical texts.
"""

# Reason codes carried by MutationResult
REASON_OUT_OF_STOCK = "out_of_stock"
REASON_NOT_FOUND = "not_found"
REASON_UNAVAILABLE = "unavailable"

# Notice codes (successful operations with an adjustment)
NOTICE_CLAMPED_TO_STOCK = "clamped_to_stock"

# Messages
ERROR_PRODUCT_NOT_FOUND = "Product not found"
ERROR_PRODUCT_OUT_OF_STOCK = "Product out of stock"
ERROR_LINE_NOT_FOUND = "Cart line not found"
ERROR_STORE_UNAVAILABLE = "Storage backend unavailable"
ERROR_STORE_UNCONFIGURED = "Storage backend not configured"


class StorefrontError(Exception):
    """Base class for sync engine errors."""

    reason = "error"
    default_message = "Storefront error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class Unconfigured(StorefrontError):
    """No usable backend credentials at process start."""

    reason = "unconfigured"
    default_message = ERROR_STORE_UNCONFIGURED


class Unavailable(StorefrontError):
    """Transient transport failure talking to a backend."""

    reason = REASON_UNAVAILABLE
    default_message = ERROR_STORE_UNAVAILABLE


class OutOfStock(StorefrontError):
    """Product has no stock left to add."""

    reason = REASON_OUT_OF_STOCK
    default_message = ERROR_PRODUCT_OUT_OF_STOCK


class NotFound(StorefrontError):
    """Mutation target (cart line or product) does not exist."""

    reason = REASON_NOT_FOUND
    default_message = ERROR_LINE_NOT_FOUND
