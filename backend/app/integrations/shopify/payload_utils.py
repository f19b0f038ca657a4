from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional


def normalize_shopify_price(value: Any) -> Decimal | None:
    """
    Convert a Shopify variant price to Decimal(0.01); None when it cannot be parsed.
    """
    if value is None:
        return None
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError, TypeError):
        return None


def normalize_variant_node(node: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    productVariants node -> flat dict used by the variant locator.
    Nodes without an id or sku are dropped (None).
    """
    if not isinstance(node, dict):
        return None
    variant_id = node.get("id")
    sku = node.get("sku")
    if not variant_id or not isinstance(sku, str) or not sku:
        return None

    product = node.get("product") or {}
    inventory_item = node.get("inventoryItem") or {}
    qty = node.get("inventoryQuantity")
    try:
        quantity = int(qty) if qty is not None else 0
    except (TypeError, ValueError):
        quantity = 0

    return {
        "id": variant_id,
        "sku": sku,
        "title": node.get("title") or "",
        "position": node.get("position"),
        "current_quantity": quantity,
        "current_price": normalize_shopify_price(node.get("price")) or Decimal("0.00"),
        "parent_product_id": product.get("id"),
        "product_title": product.get("title") or "",
        "inventory_item_id": inventory_item.get("id"),
        "tracked": inventory_item.get("tracked"),
    }


def extract_user_errors(payload: Dict[str, Any], root: str) -> List[Dict[str, Any]]:
    """data.<root>.userErrors as a list (empty when the mutation succeeded)."""
    node = ((payload or {}).get("data") or {}).get(root) or {}
    return list(node.get("userErrors") or [])


def format_price(value: Decimal) -> str:
    """Prices are written as strings with two decimals."""
    return str(Decimal(value).quantize(Decimal("0.01")))
