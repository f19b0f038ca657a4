
"""
Public surface of the FINA integration:
- import classes/functions from here; internals are free to move.
"""

from .http_client import FinaHttpClient
from .fina_operations import FinaOperationsAPI
from .normalizers import normalize_fina_product, build_quantity_map, build_price_maps

from .errors import (
    FinaError, FinaAuthError, FinaClientError, FinaServerError, FinaPayloadError
)


__all__ = [
    "FinaHttpClient", "FinaOperationsAPI",
    "normalize_fina_product", "build_quantity_map", "build_price_maps",
    "FinaError", "FinaAuthError", "FinaClientError", "FinaServerError", "FinaPayloadError",
]
