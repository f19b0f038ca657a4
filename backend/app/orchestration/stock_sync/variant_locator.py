from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from app.core.config import settings
from app.integrations.shopify.errors import ShopifyError
from app.integrations.shopify.payload_utils import normalize_variant_node
from app.integrations.shopify.shopify_client import ShopifyClient
from app.orchestration.stock_sync.errors import UpstreamError
from app.orchestration.stock_sync.models import TargetVariant


logger = logging.getLogger(__name__)


def _unique_skus(skus: Iterable[str]) -> List[str]:
    out: List[str] = []
    seen = set()
    for sku in skus:
        s = (sku or "").strip()
        if not s or s in seen:
            continue
        seen.add(s)
        out.append(s)
    return out


def _batched(items: List[str], size: int) -> Iterable[List[str]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


'''
SKU -> Shopify variants
    - dedupe + drop blank SKUs, split into batches of SYNC_SKU_BATCH_SIZE
    - one OR search per batch, following pageInfo until exhausted
    - keep only nodes whose sku equals a requested SKU exactly (the search
      engine also returns prefix/token neighbours)
    - every requested SKU is present in the result; [] means not found
Shopify transport / GraphQL failures raise UpstreamError.
'''
def locate_batch(
    shopify: ShopifyClient,
    skus: Iterable[str],
    *,
    batch_size: Optional[int] = None,
    page_size: Optional[int] = None,
) -> Dict[str, List[TargetVariant]]:

    size = max(1, int(batch_size or settings.SYNC_SKU_BATCH_SIZE))
    wanted = _unique_skus(skus)
    found: Dict[str, List[TargetVariant]] = {sku: [] for sku in wanted}

    for batch in _batched(wanted, size):
        requested = set(batch)
        after: Optional[str] = None
        pages = 0
        while True:
            try:
                connection = shopify.query_variants_by_skus(batch, first=page_size, after=after)
            except ShopifyError as e:
                status = getattr(e, "status", None)
                logger.error("stock_sync.locate.failed batch_size=%d page=%d err=%s", len(batch), pages, e)
                raise UpstreamError(str(e), source="shopify", status=status, body=getattr(e, "body", "")) from e
            pages += 1

            for edge in connection.get("edges") or []:
                data = normalize_variant_node((edge or {}).get("node") or {})
                if data is None or data["sku"] not in requested:
                    continue
                found[data["sku"]].append(TargetVariant.from_normalized(data))

            page_info = connection.get("pageInfo") or {}
            after = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or not after:
                break

        logger.debug("stock_sync.locate.batch skus=%d pages=%d", len(batch), pages)

    missing = sum(1 for v in found.values() if not v)
    logger.info("stock_sync.locate.done skus=%d not_found=%d", len(wanted), missing)
    return found
