"""
Per-invocation context: who talks to FINA, who talks to Shopify, and the
location id resolved at most once. Build a fresh one per chunk request unless
the caller wants to reuse the token/location on purpose (iter_sync_chunks).
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from app.core.config import settings
from app.integrations.fina import FinaOperationsAPI
from app.integrations.shopify.errors import ShopifyError
from app.integrations.shopify.shopify_client import ShopifyClient
from app.orchestration.stock_sync.channels import ChannelRule, channel_rule_from_settings
from app.orchestration.stock_sync.errors import UpstreamError


logger = logging.getLogger(__name__)


class SyncContext:

    def __init__(
        self,
        fina: Optional[FinaOperationsAPI] = None,
        shopify: Optional[ShopifyClient] = None,
        *,
        channel_rule: Optional[ChannelRule] = None,
        location_id: Optional[str] = None,
        store_id: Optional[int] = None,
    ) -> None:
        self.fina = fina or FinaOperationsAPI()
        self.shopify = shopify or ShopifyClient()
        self.channel_rule = channel_rule or channel_rule_from_settings()
        self.store_id = settings.FINA_STORE_ID if store_id is None else store_id
        self._location_id = location_id or settings.SHOPIFY_LOCATION_ID or None
        self._location_lock = threading.Lock()


    def location_id(self) -> str:
        """Configured location, else the shop's first location; looked up once."""
        if self._location_id:
            return self._location_id
        with self._location_lock:
            if not self._location_id:
                try:
                    node = self.shopify.first_location()
                except ShopifyError as e:
                    raise UpstreamError(
                        f"location lookup failed: {e}", source="shopify",
                        status=getattr(e, "status", None), body=getattr(e, "body", ""),
                    ) from e
                if not node or not node.get("id"):
                    raise UpstreamError("Shopify returned no locations", source="shopify")
                self._location_id = node["id"]
                logger.info("stock_sync.location.resolved id=%s name=%s", node["id"], node.get("name"))
        return self._location_id


    def close(self) -> None:
        self.fina.http.close()
