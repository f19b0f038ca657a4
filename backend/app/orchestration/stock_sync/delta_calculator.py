from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from app.core.config import settings
from app.orchestration.stock_sync.channels import Channel, ChannelRule, PositionalChannelRule
from app.orchestration.stock_sync.models import (
    ProductPlan, ProductRecord, TargetVariant, VariantTarget, VisibilityFlags, ZERO,
)


def floor_quantity(value: Any) -> int:
    """FINA stock can be fractional; Shopify only takes whole units. Negative stays negative."""
    if value is None:
        return 0
    return int(math.floor(Decimal(value)))


def price_matches(current: Decimal, target: Decimal, tolerance: Optional[Decimal] = None) -> bool:
    tol = settings.SYNC_PRICE_TOLERANCE if tolerance is None else tolerance
    return abs(Decimal(current) - Decimal(target)) <= tol


"""
Per-product plan:
    1) raw = floor(quantity of product.id, 0 when absent)
    2) channel per variant from the channel rule (UNMAPPED variants keep their values)
    3) visible channel -> (raw, tier price or 0); hidden channel -> (0, 0)
    4) match = exact quantity and price within tolerance
Reported values: quantity is raw when any channel is visible, prices are per visible tier.
"""
def compute_plan(
    product: ProductRecord,
    visibility: VisibilityFlags,
    quantities: Dict[Any, Decimal],
    prices_a: Dict[Any, Decimal],
    prices_b: Dict[Any, Decimal],
    variants: Sequence[TargetVariant],
    *,
    channel_rule: Optional[ChannelRule] = None,
    tolerance: Optional[Decimal] = None,
) -> ProductPlan:

    rule = channel_rule or PositionalChannelRule()
    raw_quantity = floor_quantity(quantities.get(product.id, 0))
    tier_prices = {Channel.A: prices_a, Channel.B: prices_b}

    targets = []
    channels = rule.assign(variants)
    for variant, channel in zip(variants, channels):
        if channel is Channel.UNMAPPED:
            targets.append(VariantTarget(
                variant=variant,
                channel=channel,
                target_quantity=variant.current_quantity,
                target_price=variant.current_price,
                quantity_matches=True,
                price_matches=True,
            ))
            continue

        if visibility.is_visible(channel):
            target_qty = raw_quantity
            target_price = Decimal(tier_prices[channel].get(product.id, ZERO))
        else:
            target_qty = 0
            target_price = ZERO

        targets.append(VariantTarget(
            variant=variant,
            channel=channel,
            target_quantity=target_qty,
            target_price=target_price,
            quantity_matches=variant.current_quantity == target_qty,
            price_matches=price_matches(variant.current_price, target_price, tolerance),
        ))

    return ProductPlan(
        product=product,
        visibility=visibility,
        computed_quantity=raw_quantity if visibility.any_visible else 0,
        computed_price_a=Decimal(prices_a.get(product.id, ZERO)) if visibility.is_visible(Channel.A) else ZERO,
        computed_price_b=Decimal(prices_b.get(product.id, ZERO)) if visibility.is_visible(Channel.B) else ZERO,
        targets=targets,
    )
