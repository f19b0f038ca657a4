"""
FINA snapshot for one chunk: catalog, stock of one store, two price tiers.
All three loads must succeed; any FINA failure becomes UpstreamError.
"""
from __future__ import annotations

import logging
import time

from app.core.config import settings
from app.integrations.fina import (
    FinaError, FinaOperationsAPI,
    normalize_fina_product, build_quantity_map, build_price_maps,
)
from app.orchestration.stock_sync.errors import UpstreamError
from app.orchestration.stock_sync.models import ProductRecord, SourceSnapshot


logger = logging.getLogger(__name__)


def load_snapshot(fina: FinaOperationsAPI, store_id: int | str) -> SourceSnapshot:
    start = time.perf_counter()
    try:
        raw_products = fina.fetch_products()
        rest_rows = fina.fetch_store_rests(store_id)
        price_rows = fina.fetch_product_prices()
    except FinaError as e:
        logger.error("stock_sync.snapshot.failed store=%s status=%s err=%s", store_id, e.status, e)
        raise UpstreamError(str(e), source="fina", status=e.status, body=e.body) from e

    products = []
    skipped = 0
    for raw in raw_products:
        data = normalize_fina_product(raw)
        if data is None:
            skipped += 1
            continue
        products.append(ProductRecord.from_normalized(data))
    if skipped:
        logger.warning("stock_sync.snapshot.products_without_id count=%d", skipped)

    quantities = build_quantity_map(rest_rows)
    prices_a, prices_b = build_price_maps(
        price_rows,
        settings.FINA_PRICE_ID_CHANNEL_A,
        settings.FINA_PRICE_ID_CHANNEL_B,
    )

    logger.info(
        "stock_sync.snapshot.loaded store=%s products=%d quantities=%d prices_a=%d prices_b=%d latency_ms=%d",
        store_id, len(products), len(quantities), len(prices_a), len(prices_b),
        int((time.perf_counter() - start) * 1000),
    )
    return SourceSnapshot(products=products, quantities=quantities, prices_a=prices_a, prices_b=prices_b)
