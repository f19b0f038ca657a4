"""Thin Admin GraphQL client; only the calls the stock sync needs live here."""
from __future__ import annotations

import time, logging, requests
from typing import Any, Dict, List, Optional
from requests import HTTPError, Timeout, RequestException

from app.core.config import settings
from app.integrations.shopify.errors import ShopifyHTTPError, ShopifyGraphQLError
from app.integrations.shopify.graphql_queries import (
    SHOP_PING,
    VARIANTS_BY_SKUS,
    PRIMARY_LOCATION,
    INVENTORY_SET_QUANTITIES,
    INVENTORY_ADJUST_QUANTITIES,
    PRODUCT_VARIANTS_BULK_UPDATE,
    build_sku_search,
)


logger = logging.getLogger(__name__)


def _secret(value: Any) -> Optional[str]:
    if hasattr(value, "get_secret_value"):
        return value.get_secret_value()
    return value


class ShopifyClient:

    def __init__(
        self,
        shop: Optional[str] = None,
        token: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> None:
        self.shop = shop or settings.SHOPIFY_SHOP
        self.token = token or _secret(settings.SHOPIFY_ADMIN_TOKEN)
        self.api_version = api_version or settings.SHOPIFY_API_VERSION


    # ---------------- endpoint & auth ----------------
    def _graphql_endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"

    def _auth_headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.token or "",
            "User-Agent": "FinaStockSync/ShopifyClient (+python)",
        }


    '''
    Generic GraphQL POST (logging + optional retries)
        - one place for headers, json payload, timeout, HTTP errors and top-level errors
        - returns the full body; callers pick data[...] themselves
        Error handling:
           1) HTTP 5xx / network: exponential backoff when retries > 0
           2) HTTP 4xx: no retry, ShopifyHTTPError
           3) 429: honours Retry-After when retries > 0
           4) top-level GraphQL errors: ShopifyGraphQLError, never retried
        Mutations pass retries=0: a replayed write is not something the sync wants.
    '''
    def _post_graphql(
        self,
        query: str,
        variables: Optional[dict] = None,
        *,
        timeout: Optional[int] = None,
        op_name: str = "",
        retries: Optional[int] = None,
    ) -> dict:

        timeout = timeout or settings.SHOPIFY_HTTP_TIMEOUT
        max_retries = max(0, int(settings.SHOPIFY_HTTP_RETRIES if retries is None else retries))
        backoff_ms = max(50, int(settings.SHOPIFY_HTTP_BACKOFF_MS))

        payload = {"query": query, "variables": variables or {}}
        # never log the full query; op_name and variable keys are enough
        safe_vars_keys = list(payload["variables"].keys())

        for attempt in range(max_retries + 1):
            start = time.perf_counter()
            try:
                resp = requests.post(
                    self._graphql_endpoint(),
                    headers=self._auth_headers(),
                    json=payload,
                    timeout=timeout,
                )
                latency_ms = int((time.perf_counter() - start) * 1000)

                try:
                    resp.raise_for_status()
                except HTTPError as e:
                    status = resp.status_code

                    if status == 429 and attempt < max_retries:
                        retry_after = resp.headers.get("Retry-After")
                        try:
                            sleep_s = max(0.1, float(retry_after))
                        except (TypeError, ValueError):
                            sleep_s = (backoff_ms / 1000.0) * (2 ** attempt)
                        logger.warning(
                            "shopify.graphql.429_throttled op=%s latency_ms=%s attempt=%s/%s retry_after=%s",
                            op_name, latency_ms, attempt, max_retries, retry_after)
                        time.sleep(sleep_s)
                        continue

                    logger.warning(
                        "shopify.graphql.http_error op=%s status=%s latency_ms=%s attempt=%s/%s",
                        op_name, status, latency_ms, attempt, max_retries)

                    if 500 <= status < 600 and attempt < max_retries:
                        time.sleep((backoff_ms / 1000.0) * (2 ** attempt))
                        continue
                    body = (resp.text or "")[:300]
                    raise ShopifyHTTPError(f"{op_name} HTTP {status}: {body}", status=status, body=body) from e

                try:
                    data = resp.json()
                except ValueError:
                    if attempt < max_retries:
                        logger.warning("shopify.graphql.non_json op=%s attempt=%s/%s", op_name, attempt, max_retries)
                        time.sleep((backoff_ms / 1000.0) * (2 ** attempt))
                        continue
                    raise ShopifyHTTPError(
                        f"{op_name} response is not JSON: status={resp.status_code}", status=resp.status_code)

                if not isinstance(data, dict):
                    raise ShopifyHTTPError(
                        f"{op_name} response is not a JSON object: {type(data).__name__}", status=resp.status_code)

                if data.get("errors"):
                    logger.error(
                        "shopify.graphql.gql_errors op=%s latency_ms=%s attempt=%s/%s errors=%s",
                        op_name, latency_ms, attempt, max_retries, data["errors"])
                    raise ShopifyGraphQLError(f"{op_name} GraphQL errors: {data['errors']}", errors=data["errors"])

                logger.debug("shopify.graphql.ok op=%s latency_ms=%s attempt=%s vars=%s",
                    op_name, latency_ms, attempt, safe_vars_keys)
                return data

            except Timeout as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.graphql.timeout op=%s latency_ms=%s attempt=%s/%s",
                    op_name, latency_ms, attempt, max_retries)
                if attempt == max_retries:
                    raise ShopifyHTTPError(f"{op_name} timed out after {latency_ms}ms") from e
                time.sleep((backoff_ms / 1000.0) * (2 ** attempt))

            except RequestException as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.graphql.request_exception op=%s latency_ms=%s attempt=%s/%s err=%s",
                    op_name, latency_ms, attempt, max_retries, type(e).__name__)
                if attempt == max_retries:
                    raise ShopifyHTTPError(f"{op_name} request failed: {e}") from e
                time.sleep((backoff_ms / 1000.0) * (2 ** attempt))

        raise ShopifyHTTPError(f"{op_name} failed after {max_retries + 1} attempts")


    # basic connectivity probe (token / domain / version)
    def ping(self) -> dict:
        return self._post_graphql(SHOP_PING, op_name="shop.ping")


    def query_variants_by_skus(
        self,
        skus: List[str],
        *,
        first: Optional[int] = None,
        after: Optional[str] = None,
    ) -> dict:
        """
        One page of productVariants matching any of `skus`.
        Returns the connection {edges, pageInfo}; callers follow endCursor.
        """
        variables = {
            "query": build_sku_search(skus),
            "first": int(first or settings.SHOPIFY_VARIANTS_PAGE_SIZE),
            "after": after,
        }
        data = self._post_graphql(VARIANTS_BY_SKUS, variables, op_name="productVariants.bySkus")
        return (data.get("data") or {}).get("productVariants") or {}


    def first_location(self) -> Optional[dict]:
        """{id, name, isActive} of the first location, None when the shop has none."""
        data = self._post_graphql(PRIMARY_LOCATION, op_name="locations.first")
        edges = ((data.get("data") or {}).get("locations") or {}).get("edges") or []
        if not edges:
            return None
        return edges[0].get("node") or None


    def inventory_set_quantities(self, inventory_item_id: str, location_id: str, quantity: int) -> dict:
        """Absolute quantity write for one inventory item; userErrors stay in the returned body."""
        variables = {
            "input": {
                "name": "available",
                "reason": "correction",
                "quantities": [{
                    "inventoryItemId": inventory_item_id,
                    "locationId": location_id,
                    "quantity": int(quantity),
                }],
                "ignoreCompareQuantity": True,
            }
        }
        return self._post_graphql(
            INVENTORY_SET_QUANTITIES, variables, op_name="inventorySetQuantities", retries=0)


    def inventory_adjust_quantities(self, inventory_item_id: str, location_id: str, delta: int) -> dict:
        """Relative quantity change (manual add/subtract)."""
        variables = {
            "input": {
                "reason": "correction",
                "name": "available",
                "changes": [{
                    "delta": int(delta),
                    "inventoryItemId": inventory_item_id,
                    "locationId": location_id,
                }],
            }
        }
        return self._post_graphql(
            INVENTORY_ADJUST_QUANTITIES, variables, op_name="inventoryAdjustQuantities", retries=0)


    def product_variants_bulk_update(self, product_id: str, variants: List[Dict[str, Any]]) -> dict:
        """
        GraphQL mutation productVariantsBulkUpdate
        variants: [{"id": "gid://shopify/ProductVariant/1", "price": "19.99"}, ...]
        all variants must belong to `product_id`.
        """
        return self._post_graphql(
            PRODUCT_VARIANTS_BULK_UPDATE,
            {"productId": product_id, "variants": variants},
            op_name="productVariantsBulkUpdate",
            retries=0,
        )
