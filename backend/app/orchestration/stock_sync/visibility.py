from __future__ import annotations

from typing import Any, Optional

from app.core.config import settings
from app.orchestration.stock_sync.models import ProductRecord, VisibilityFlags, VISIBLE


def _flag(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


"""
    Channel flags from the product's FINA add_fields.
    - first entry per key wins
    - key present with an empty/None value -> "" (hidden)
    - key absent -> "1" (visible)
"""
def resolve_visibility(
    product: ProductRecord,
    *,
    field_a: Optional[str] = None,
    field_b: Optional[str] = None,
) -> VisibilityFlags:
    key_a = field_a or settings.FINA_VISIBILITY_FIELD_A
    key_b = field_b or settings.FINA_VISIBILITY_FIELD_B

    found_a: Optional[str] = None
    found_b: Optional[str] = None
    for key, value in product.attributes:
        if found_a is None and key == key_a:
            found_a = _flag(value)
        elif found_b is None and key == key_b:
            found_b = _flag(value)
        if found_a is not None and found_b is not None:
            break

    return VisibilityFlags(
        channel_a=VISIBLE if found_a is None else found_a,
        channel_b=VISIBLE if found_b is None else found_b,
    )
