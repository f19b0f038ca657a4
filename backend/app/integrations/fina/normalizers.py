"""
Domain mapping (pure functions): FINA payload rows -> plain lookup structures
used by the snapshot loader.
"""
from __future__ import annotations
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


"""
FINA product -> normalized dict
    - input: one item of getProducts.products
    - output: {id, sku, name, attributes: [(field, value), ...]} with attribute order kept
"""
def normalize_fina_product(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    product_id = raw.get("id")
    if product_id is None:
        return None

    attributes: List[Tuple[str, Any]] = []
    add_fields = raw.get("add_fields")
    if not isinstance(add_fields, list):
        add_fields = []
    for entry in add_fields:
        if not isinstance(entry, dict):
            continue
        key = entry.get("field")
        if key is None:
            continue
        attributes.append((str(key), entry.get("value")))

    return {
        "id": product_id,
        "sku": str(raw.get("code") or "").strip(),
        "name": str(raw.get("name") or "").strip(),
        "attributes": attributes,
    }


def build_quantity_map(rows: Iterable[Dict[str, Any]]) -> Dict[Any, Decimal]:
    """store_rest rows -> {product_id: rest}; duplicates keep the last row."""
    out: Dict[Any, Decimal] = {}
    duplicates = 0
    for row in rows:
        pid = row.get("id")
        qty = to_decimal(row.get("rest"))
        if pid is None or qty is None:
            continue
        if pid in out:
            duplicates += 1
        out[pid] = qty
    if duplicates:
        logger.warning("FINA store_rest has duplicate product ids count=%d (last row wins)", duplicates)
    return out


def build_price_maps(
    rows: Iterable[Dict[str, Any]],
    price_id_a: int,
    price_id_b: int,
) -> Tuple[Dict[Any, Decimal], Dict[Any, Decimal]]:
    """prices rows -> (tier A map, tier B map); any other price_id is ignored."""
    prices_a: Dict[Any, Decimal] = {}
    prices_b: Dict[Any, Decimal] = {}
    for row in rows:
        pid = row.get("product_id")
        if pid is None:
            continue
        price = to_decimal(row.get("price"))
        if price is None:
            price = Decimal("0")
        try:
            tier = int(row.get("price_id"))
        except (TypeError, ValueError):
            continue
        if tier == price_id_a:
            prices_a[pid] = price
        elif tier == price_id_b:
            prices_b[pid] = price
    return prices_a, prices_b


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    return d
