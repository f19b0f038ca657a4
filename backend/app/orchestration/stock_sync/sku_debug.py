from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from app.orchestration.stock_sync.context import SyncContext
from app.orchestration.stock_sync.delta_calculator import compute_plan
from app.orchestration.stock_sync.mutation_applier import apply_plan, build_result
from app.orchestration.stock_sync.snapshot_loader import load_snapshot
from app.orchestration.stock_sync.variant_locator import locate_batch
from app.orchestration.stock_sync.visibility import resolve_visibility


logger = logging.getLogger(__name__)


def _elapsed(started: float) -> float:
    return round(time.perf_counter() - started, 3)


'''
Single-SKU diagnosis through the same plan as the chunk sync.
    - apply=False: report current vs target per variant, write nothing
    - apply=True : run the mutation applier on that plan and report the outcome
Missing in FINA / missing in Shopify come back as success=False with a reason.
UpstreamError propagates to the route.
'''
def debug_sku(sku: str, *, apply: bool = False, context: Optional[SyncContext] = None) -> Dict[str, Any]:
    started = time.perf_counter()
    target_sku = (sku or "").strip()
    owns_context = context is None
    ctx = context or SyncContext()

    try:
        snapshot = load_snapshot(ctx.fina, ctx.store_id)
        product = snapshot.find_by_sku(target_sku)
        if product is None:
            logger.info("stock_sync.debug.not_in_fina sku=%s", target_sku)
            return {
                "success": False,
                "error": "SKU not found in FINA",
                "message": f'SKU "{target_sku}" was not found in FINA products',
                "finaProductCount": snapshot.total,
                "processingTime": _elapsed(started),
            }

        visibility = resolve_visibility(product)
        variants = locate_batch(ctx.shopify, [target_sku]).get(target_sku, [])
        plan = compute_plan(
            product, visibility,
            snapshot.quantities, snapshot.prices_a, snapshot.prices_b,
            variants,
            channel_rule=ctx.channel_rule,
        )

        fina_product = {
            "id": product.id,
            "name": product.name,
            "code": product.sku,
            "rawQuantity": snapshot.quantities.get(product.id),
            "priceA": snapshot.prices_a.get(product.id),
            "priceB": snapshot.prices_b.get(product.id),
        }

        if plan.not_found:
            return {
                "success": False,
                "error": "SKU not found in Shopify",
                "message": f'SKU "{target_sku}" was not found in Shopify',
                "finaProduct": fina_product,
                "visibility": visibility.to_dict(),
                "processingTime": _elapsed(started),
            }

        outcome = None
        if apply and plan.needs_write:
            location_id = ctx.location_id() if plan.quantity_writes else ""
            outcome = apply_plan(ctx.shopify, plan, location_id)

        if apply:
            result = build_result(plan, outcome)
        else:
            result = None

        body: Dict[str, Any] = {
            "success": outcome is None or not outcome.errors,
            "message": _summary(target_sku, plan, outcome, apply),
            "data": {
                "sku": target_sku,
                "finaProduct": fina_product,
                "visibility": visibility.to_dict(),
                "computedQuantity": plan.computed_quantity,
                "computedPriceA": plan.computed_price_a,
                "computedPriceB": plan.computed_price_b,
                "variantCount": plan.variant_count,
                "variants": [t.to_dict() for t in plan.targets],
                "needsWrite": plan.needs_write,
                "applied": bool(apply),
                "outcome": outcome.to_dict() if outcome else None,
                "result": result.to_dict() if result else None,
            },
            "processingTime": _elapsed(started),
        }
        logger.info("stock_sync.debug.done sku=%s apply=%s needs_write=%s", target_sku, apply, plan.needs_write)
        return body
    finally:
        if owns_context:
            ctx.close()


def _summary(sku: str, plan, outcome, apply: bool) -> str:
    pending = len(plan.quantity_writes) + len(plan.price_writes)
    if not plan.needs_write:
        return f"{sku}: all {plan.variant_count} variant(s) already match"
    if not apply:
        return f"{sku}: {pending} pending write(s) across {plan.variant_count} variant(s)"
    return (
        f"{sku}: {outcome.quantity_updates} quantity and {outcome.price_updates} price update(s), "
        f"{len(outcome.errors)} error(s)"
    )
