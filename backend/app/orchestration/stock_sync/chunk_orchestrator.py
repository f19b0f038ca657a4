"""
Chunk orchestrator
    external chunk (offset/limit, driven by the caller)
      -> FINA snapshot, loaded once per chunk
      -> internal sub-chunks of SYNC_INTERNAL_CHUNK_SIZE, run one after another
         -> variant lookup per sub-chunk, plans per product
         -> writes on a bounded thread pool (SYNC_CONCURRENCY products at a time)
      -> counters + progress + next_offset for the caller
The engine never schedules the next chunk itself; see iter_sync_chunks and sync_task.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterator, List, Optional, Sequence, Union

from app.core.config import settings
from app.orchestration.stock_sync.context import SyncContext
from app.orchestration.stock_sync.delta_calculator import compute_plan
from app.orchestration.stock_sync.errors import UpstreamError, ValidationError
from app.orchestration.stock_sync.models import (
    ChunkCounters, ChunkResponse, ChunkResult, ProductPlan, ProductRecord,
    ResultStatus, SourceSnapshot, SyncProgress,
)
from app.orchestration.stock_sync.mutation_applier import apply_plan, build_result
from app.orchestration.stock_sync.snapshot_loader import load_snapshot
from app.orchestration.stock_sync.variant_locator import locate_batch
from app.orchestration.stock_sync.visibility import resolve_visibility


logger = logging.getLogger(__name__)


def validate_window(offset, limit) -> None:
    """offset >= 0 and limit > 0, both real ints (bool is rejected too)."""
    if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
        raise ValidationError("Invalid offset parameter")
    if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
        raise ValidationError("Invalid limit parameter")


def _subchunks(products: Sequence[ProductRecord], size: int) -> List[Sequence[ProductRecord]]:
    return [products[i:i + size] for i in range(0, len(products), size)]


def _error_result(product: ProductRecord, message: str) -> ChunkResult:
    return ChunkResult(status=ResultStatus.ERROR, sku=product.sku, message=message)


def _apply_one(context: SyncContext, plan: ProductPlan, location_id: Optional[str]) -> ChunkResult:
    if plan.not_found or not plan.needs_write:
        return build_result(plan)
    outcome = apply_plan(context.shopify, plan, location_id or "")
    return build_result(plan, outcome)


# per-item boundary: an unexpected failure in one product never reaches its siblings
def _apply_guarded(context: SyncContext, plan: ProductPlan, location_id: Optional[str]) -> ChunkResult:
    try:
        return _apply_one(context, plan, location_id)
    except Exception as e:
        logger.exception("stock_sync.product.failed sku=%s", plan.product.sku)
        return _error_result(plan.product, f"{type(e).__name__}: {e}")


def _plan_one(context: SyncContext, snapshot: SourceSnapshot, product: ProductRecord, variants) -> ProductPlan:
    return compute_plan(
        product,
        resolve_visibility(product),
        snapshot.quantities,
        snapshot.prices_a,
        snapshot.prices_b,
        variants,
        channel_rule=context.channel_rule,
    )


def process_subchunk(
    context: SyncContext,
    snapshot: SourceSnapshot,
    products: Sequence[ProductRecord],
    *,
    concurrency: Optional[int] = None,
) -> List[ChunkResult]:
    """Results come back in the order of `products`."""
    if not products:
        return []

    variants_by_sku = locate_batch(context.shopify, [p.sku for p in products])

    # a product whose plan cannot be built is settled here as an error result
    items: List[Union[ProductPlan, ChunkResult]] = []
    for product in products:
        try:
            items.append(_plan_one(context, snapshot, product, variants_by_sku.get(product.sku, [])))
        except Exception as e:
            logger.exception("stock_sync.product.plan_failed sku=%s", product.sku)
            items.append(_error_result(product, f"{type(e).__name__}: {e}"))

    plans = [item for item in items if isinstance(item, ProductPlan)]
    location_id = None
    if any(plan.quantity_writes for plan in plans):
        location_id = context.location_id()

    if not plans:
        return list(items)

    workers = max(1, min(int(concurrency or settings.SYNC_CONCURRENCY), len(plans)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="stock-sync") as pool:
        pending = [
            pool.submit(_apply_guarded, context, item, location_id) if isinstance(item, ProductPlan) else item
            for item in items
        ]
        return [item.result() if isinstance(item, Future) else item for item in pending]


def _failure(
    message: str,
    started: float,
    *,
    details: Optional[str] = None,
    status: Optional[int] = None,
    upstream: bool = False,
    internal: bool = False,
) -> ChunkResponse:
    return ChunkResponse(
        success=False,
        is_complete=True,
        message=message,
        error=message,
        details=details,
        upstream_status=status,
        upstream_failure=upstream,
        internal_failure=internal,
        processing_time=time.perf_counter() - started,
    )


def run_sync_chunk(
    offset: int = 0,
    limit: Optional[int] = None,
    context: Optional[SyncContext] = None,
    *,
    internal_chunk_size: Optional[int] = None,
    concurrency: Optional[int] = None,
    subchunk_delay: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ChunkResponse:
    """
    One external chunk. Invalid input returns a failed, complete response without
    touching FINA or Shopify; an UpstreamError (snapshot or lookup) or any other
    unexpected failure does the same after logging. Per-product failures only
    show up in the counters.
    """
    started = time.perf_counter()
    limit = settings.SYNC_DEFAULT_LIMIT if limit is None else limit

    try:
        validate_window(offset, limit)
    except ValidationError as e:
        logger.warning("stock_sync.chunk.invalid offset=%r limit=%r err=%s", offset, limit, e)
        return _failure(str(e), started)

    owns_context = context is None
    try:
        ctx = context or SyncContext()
    except ValueError as e:
        logger.error("stock_sync.chunk.bad_config err=%s", e)
        return _failure("Chunk sync failed", started, details=str(e), internal=True)
    size = max(1, int(internal_chunk_size or settings.SYNC_INTERNAL_CHUNK_SIZE))
    delay = settings.SYNC_SUBCHUNK_DELAY_SEC if subchunk_delay is None else subchunk_delay

    logger.info("stock_sync.chunk.start offset=%d limit=%d", offset, limit)
    try:
        snapshot = load_snapshot(ctx.fina, ctx.store_id)
        chunk = snapshot.products[offset:offset + limit]
        progress = SyncProgress.compute(offset, limit, snapshot.total, len(chunk))

        counters = ChunkCounters()
        results: List[ChunkResult] = []
        parts = _subchunks(chunk, size)
        for index, part in enumerate(parts):
            if index and delay:
                sleep(delay)
            logger.info("stock_sync.subchunk.start index=%d/%d size=%d", index + 1, len(parts), len(part))
            for result in process_subchunk(ctx, snapshot, part, concurrency=concurrency):
                counters.add(result)
                results.append(result)

    except UpstreamError as e:
        logger.error("stock_sync.chunk.failed offset=%d limit=%d source=%s status=%s err=%s",
            offset, limit, e.source, e.status, e)
        return _failure("Chunk sync failed", started, details=str(e), status=e.status, upstream=True)
    except Exception as e:
        logger.exception("stock_sync.chunk.crashed offset=%d limit=%d", offset, limit)
        return _failure("Chunk sync failed", started, details=f"{type(e).__name__}: {e}", internal=True)
    finally:
        if owns_context:
            ctx.close()

    if not chunk:
        message = "No products in range"
    elif progress.is_complete:
        message = f"Sync complete: chunk {progress.current_chunk_index}/{progress.total_chunks} processed"
    else:
        message = f"Chunk {progress.current_chunk_index}/{progress.total_chunks} processed"

    response = ChunkResponse(
        success=True,
        is_complete=progress.is_complete,
        message=message,
        progress=progress,
        counters=counters,
        results=results,
        processing_time=time.perf_counter() - started,
    )
    logger.info(
        "stock_sync.chunk.done offset=%d limit=%d total=%d updated=%d no_change=%d not_found=%d errors=%d next_offset=%s seconds=%.2f",
        offset, limit, progress.total_records, counters.updated, counters.no_change,
        counters.not_found, counters.errors, progress.next_offset, response.processing_time,
    )
    return response


def iter_sync_chunks(
    start_offset: int = 0,
    limit: Optional[int] = None,
    context: Optional[SyncContext] = None,
    **chunk_kwargs,
) -> Iterator[ChunkResponse]:
    """
    Lazy chunk sequence starting at `start_offset`. Each step runs one chunk and
    continues from its next_offset; stops after a complete or failed chunk.
    Restart from any offset by calling again. One context (token, location)
    is shared by all chunks of the iteration.
    """
    owns_context = context is None
    ctx = context or SyncContext()
    offset: Optional[int] = start_offset
    try:
        while offset is not None:
            response = run_sync_chunk(offset, limit, ctx, **chunk_kwargs)
            yield response
            if not response.success or response.is_complete:
                return
            offset = response.next_offset
    finally:
        if owns_context:
            ctx.close()
