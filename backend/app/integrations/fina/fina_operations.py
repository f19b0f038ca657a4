"""
FINA operation API (read side):
   - catalog (getProducts), stock by store (getProductsRestByStore), price tiers (getProductPrices);
   - products changed after a timestamp, customers and api info for the ops endpoints;
   - each call is one request; payload shape is checked and the list under the
     documented key is returned untouched.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.integrations.fina.errors import FinaPayloadError
from app.integrations.fina.http_client import FinaHttpClient

logger = logging.getLogger(__name__)


class FinaOperationsAPI:
    """Wraps the FINA /api/operation endpoints the sync needs."""

    # inject FinaHttpClient so one token is shared by all calls of an invocation
    def __init__(self, http: Optional[FinaHttpClient] = None) -> None:
        self.http = http or FinaHttpClient()


    def fetch_products(self) -> List[dict]:
        """Full catalog: [{id, code, name, add_fields: [{field, value}], ...}]"""
        payload = self.http.get_json(settings.FINA_PRODUCTS_ENDPOINT)
        items = _extract_list(payload, "products")
        logger.info("FINA products fetched count=%d", len(items))
        return items


    def fetch_store_rests(self, store_id: int | str) -> List[dict]:
        """Stock for one store: [{id, rest}]"""
        path = settings.FINA_PRODUCTS_REST_ENDPOINT.format(store_id=store_id)
        payload = self.http.get_json(path)
        items = _extract_list(payload, "store_rest")
        logger.info("FINA store rests fetched store=%s count=%d", store_id, len(items))
        return items


    def fetch_product_prices(self) -> List[dict]:
        """All price tiers: [{product_id, price_id, price}]"""
        payload = self.http.get_json(settings.FINA_PRODUCT_PRICES_ENDPOINT)
        items = _extract_list(payload, "prices")
        logger.info("FINA product prices fetched count=%d", len(items))
        return items


    def fetch_products_after(self, after: str) -> Dict[str, Any]:
        """Products changed after `after` (yyyy-MM-ddTHH:mm:ss); returns the raw payload."""
        path = settings.FINA_PRODUCTS_AFTER_ENDPOINT.format(after=after)
        return _expect_dict(self.http.get_json(path), "getProductsAfter")


    def fetch_customers(self) -> Dict[str, Any]:
        return _expect_dict(self.http.get_json(settings.FINA_CUSTOMERS_ENDPOINT), "getCustomers")


    def fetch_api_info(self) -> Dict[str, Any]:
        return _expect_dict(self.http.get_json(settings.FINA_INFO_ENDPOINT), "getapiinfo")



def _expect_dict(payload: Any, label: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise FinaPayloadError(f"{label} payload is not an object: {type(payload).__name__}")
    return payload


# {"<key>": [...]} -> list[dict]; a missing key means an empty list
def _extract_list(payload: Any, key: str) -> List[dict]:
    data = _expect_dict(payload, key)
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise FinaPayloadError(f"{key} is not a list")
    return [x for x in value if isinstance(x, dict)]
