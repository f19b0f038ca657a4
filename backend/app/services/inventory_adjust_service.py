from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from app.integrations.shopify.errors import ShopifyError
from app.integrations.shopify.payload_utils import extract_user_errors
from app.integrations.shopify.shopify_client import ShopifyClient
from app.orchestration.stock_sync.context import SyncContext
from app.orchestration.stock_sync.errors import UpstreamError
from app.orchestration.stock_sync.variant_locator import locate_batch


logger = logging.getLogger(__name__)

MODES = ("add", "subtract")


class InventoryAdjustError(Exception):
    """Carries the HTTP status the route should answer with."""

    def __init__(self, message: str, *, status_code: int = 400, details: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


'''
Manual add/subtract for one SKU
    1) first exact-SKU variant in Shopify (404 when none)
    2) variant must have a tracked inventory item (400 otherwise)
    3) delta = +q for add, -min(q, current) for subtract (stock never goes below 0)
    4) inventoryAdjustQuantities at the sync location; userErrors -> 400
'''
def adjust_inventory(
    sku: str,
    quantity: int,
    mode: str,
    *,
    shopify: Optional[ShopifyClient] = None,
    context: Optional[SyncContext] = None,
) -> Dict[str, Any]:

    sku = (sku or "").strip()
    if not sku:
        raise InventoryAdjustError("SKU is required")
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise InventoryAdjustError("Quantity must be a positive integer")
    if mode not in MODES:
        raise InventoryAdjustError(f'Invalid operation mode "{mode}", expected "add" or "subtract"')

    owns_context = context is None
    ctx = context or SyncContext(shopify=shopify)
    try:
        return _adjust(ctx, sku, quantity, mode)
    finally:
        if owns_context:
            ctx.close()


def _adjust(ctx: SyncContext, sku: str, quantity: int, mode: str) -> Dict[str, Any]:
    client = ctx.shopify

    try:
        variants = locate_batch(client, [sku]).get(sku, [])
    except UpstreamError as e:
        raise InventoryAdjustError(f"Variant lookup failed for SKU {sku}", status_code=502, details=str(e)) from e
    if not variants:
        raise InventoryAdjustError(f'Product with SKU "{sku}" not found', status_code=404)

    variant = variants[0]
    if not variant.inventory_item_id or variant.tracked is False:
        raise InventoryAdjustError(
            f'Inventory tracking is not enabled for product SKU "{sku}"',
            details="Enable 'Track quantity' on the product in Shopify admin",
        )

    try:
        location_id = ctx.location_id()
    except UpstreamError as e:
        raise InventoryAdjustError("Failed to resolve a Shopify location", details=str(e)) from e

    current = variant.current_quantity
    delta = quantity if mode == "add" else -min(quantity, max(current, 0))

    try:
        payload = client.inventory_adjust_quantities(variant.inventory_item_id, location_id, delta)
    except ShopifyError as e:
        raise InventoryAdjustError(f'Failed to update inventory for SKU "{sku}"', details=str(e)) from e

    user_errors = extract_user_errors(payload, "inventoryAdjustQuantities")
    if user_errors:
        raise InventoryAdjustError(
            f'Cannot update inventory for SKU "{sku}": ' + ", ".join(str(e.get("message")) for e in user_errors),
            details=user_errors,
        )

    logger.info("inventory.adjust.done sku=%s mode=%s delta=%d previous=%d", sku, mode, delta, current)
    return {
        "success": True,
        "message": f"Successfully {'added' if mode == 'add' else 'subtracted'} {abs(delta)} units for SKU: {sku}",
        "product": variant.product_title,
        "sku": variant.sku,
        "previousQuantity": current,
        "newQuantity": current + delta,
        "operation": mode,
        "quantityChanged": abs(delta),
        "locationId": location_id,
    }
