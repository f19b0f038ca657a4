
"""
   Shopify Admin API error types; HTTP failures and top-level GraphQL errors
   are raised, per-mutation userErrors are returned to the caller as data.
"""
from typing import Any, Optional


class ShopifyError(Exception):
    """Base for all Shopify errors."""

class ShopifyHTTPError(ShopifyError):
    """Non-2xx response, timeout or connection failure."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body

class ShopifyGraphQLError(ShopifyError):
    """Top-level GraphQL `errors` (syntax, access scope, throttling)."""

    def __init__(self, message: str, *, errors: Any = None) -> None:
        super().__init__(message)
        self.errors = errors
