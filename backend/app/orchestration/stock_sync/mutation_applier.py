"""
Shopify writes for one product plan.
   - quantity: one inventorySetQuantities per variant, sent right away
   - price: every variant of the product needing a new price goes into one
     productVariantsBulkUpdate call after all variants were evaluated
   - a failed call becomes a WriteError on the outcome; siblings still run
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List

from app.integrations.shopify.errors import ShopifyError
from app.integrations.shopify.payload_utils import extract_user_errors, format_price
from app.integrations.shopify.shopify_client import ShopifyClient
from app.orchestration.stock_sync.errors import WriteError
from app.orchestration.stock_sync.models import ChunkResult, ProductPlan, ResultStatus


logger = logging.getLogger(__name__)


@dataclass
class ApplyOutcome:
    quantity_updates: int = 0
    price_updates: int = 0
    errors: List[WriteError] = field(default_factory=list)

    @property
    def updated(self) -> int:
        return self.quantity_updates + self.price_updates

    def to_dict(self) -> Dict[str, object]:
        return {
            "quantityUpdates": self.quantity_updates,
            "priceUpdates": self.price_updates,
            "errors": [str(e) for e in self.errors],
        }


def _user_error_text(errors: List[dict]) -> str:
    return "; ".join(str(e.get("message") or e) for e in errors)


def set_quantity(shopify: ShopifyClient, inventory_item_id: str, quantity: int, location_id: str) -> None:
    """Raises WriteError on transport failure or userErrors."""
    if not inventory_item_id:
        raise WriteError("quantity", "variant has no inventory item")
    try:
        payload = shopify.inventory_set_quantities(inventory_item_id, location_id, quantity)
    except ShopifyError as e:
        raise WriteError("quantity", str(e)) from e
    user_errors = extract_user_errors(payload, "inventorySetQuantities")
    if user_errors:
        raise WriteError("quantity", _user_error_text(user_errors))


def set_prices_bulk(shopify: ShopifyClient, product_id: str, prices: List[Dict[str, object]]) -> None:
    """prices: [{"id": variant_gid, "price": Decimal}]; raises WriteError."""
    if not prices:
        return
    if not product_id:
        raise WriteError("price", "variant has no parent product")
    variants = [{"id": p["id"], "price": format_price(p["price"])} for p in prices]
    try:
        payload = shopify.product_variants_bulk_update(product_id, variants)
    except ShopifyError as e:
        raise WriteError("price", str(e)) from e
    user_errors = extract_user_errors(payload, "productVariantsBulkUpdate")
    if user_errors:
        raise WriteError("price", _user_error_text(user_errors))


def apply_plan(shopify: ShopifyClient, plan: ProductPlan, location_id: str) -> ApplyOutcome:
    outcome = ApplyOutcome()
    sku = plan.product.sku

    # variants sharing a parent product are priced together
    pending_prices: Dict[str, List[Dict[str, object]]] = {}

    for target in plan.mapped_targets:
        variant = target.variant
        if not target.quantity_matches:
            try:
                set_quantity(shopify, variant.inventory_item_id, target.target_quantity, location_id)
                outcome.quantity_updates += 1
            except WriteError as e:
                logger.warning("stock_sync.write.quantity_failed sku=%s variant=%s err=%s", sku, variant.id, e.detail)
                outcome.errors.append(e)

        if not target.price_matches:
            pending_prices.setdefault(variant.parent_product_id or "", []).append(
                {"id": variant.id, "price": Decimal(target.target_price)}
            )

    for product_id, prices in pending_prices.items():
        try:
            set_prices_bulk(shopify, product_id, prices)
            outcome.price_updates += len(prices)
        except WriteError as e:
            logger.warning("stock_sync.write.price_failed sku=%s product=%s variants=%d err=%s",
                sku, product_id, len(prices), e.detail)
            outcome.errors.append(e)

    return outcome


def build_result(plan: ProductPlan, outcome: ApplyOutcome | None = None) -> ChunkResult:
    """ChunkResult for a plan; outcome is None when nothing had to be written."""
    base = dict(
        sku=plan.product.sku,
        computed_quantity=plan.computed_quantity,
        computed_price_a=plan.computed_price_a,
        computed_price_b=plan.computed_price_b,
        variant_count=plan.variant_count,
    )
    if plan.not_found:
        return ChunkResult(status=ResultStatus.NOT_FOUND, message="Product not found in Shopify", **base)
    if outcome is None:
        return ChunkResult(
            status=ResultStatus.NO_CHANGE,
            message=f"All {plan.variant_count} variant(s) already match (qty & price)",
            **base,
        )
    if outcome.errors:
        detail = "; ".join(str(e) for e in outcome.errors)
        return ChunkResult(
            status=ResultStatus.ERROR,
            message=f"{len(outcome.errors)} error(s) updating {plan.variant_count} variant(s): {detail}",
            **base,
        )
    return ChunkResult(
        status=ResultStatus.UPDATED,
        message=(
            f"Updated {outcome.quantity_updates} quantity and {outcome.price_updates} price "
            f"write(s) across {plan.variant_count} variant(s)"
        ),
        **base,
    )
