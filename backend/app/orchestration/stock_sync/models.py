"""
Value objects of one sync invocation. Everything here is rebuilt per chunk;
to_dict() gives the camelCase shape the HTTP layer returns.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from app.orchestration.stock_sync.channels import Channel


ZERO = Decimal("0")
VISIBLE = "1"


class ResultStatus(str, Enum):
    UPDATED = "updated"
    NO_CHANGE = "no_change"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class ProductRecord:
    id: Any
    sku: str
    name: str = ""
    attributes: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def from_normalized(cls, data: Dict[str, Any]) -> "ProductRecord":
        return cls(
            id=data["id"],
            sku=data.get("sku") or "",
            name=data.get("name") or "",
            attributes=tuple(data.get("attributes") or ()),
        )


@dataclass(frozen=True)
class VisibilityFlags:
    channel_a: str = VISIBLE
    channel_b: str = VISIBLE

    def is_visible(self, channel: Channel) -> bool:
        if channel is Channel.A:
            return self.channel_a == VISIBLE
        if channel is Channel.B:
            return self.channel_b == VISIBLE
        return False

    @property
    def any_visible(self) -> bool:
        return self.channel_a == VISIBLE or self.channel_b == VISIBLE

    def to_dict(self) -> Dict[str, str]:
        return {"channelA": self.channel_a, "channelB": self.channel_b}


@dataclass(frozen=True)
class TargetVariant:
    id: str
    sku: str
    current_quantity: int
    current_price: Decimal
    parent_product_id: Optional[str]
    inventory_item_id: Optional[str]
    title: str = ""
    position: Optional[int] = None
    tracked: Optional[bool] = None
    product_title: str = ""

    @classmethod
    def from_normalized(cls, data: Dict[str, Any]) -> "TargetVariant":
        return cls(
            id=data["id"],
            sku=data["sku"],
            current_quantity=int(data.get("current_quantity") or 0),
            current_price=data.get("current_price") or ZERO,
            parent_product_id=data.get("parent_product_id"),
            inventory_item_id=data.get("inventory_item_id"),
            title=data.get("title") or "",
            position=data.get("position"),
            tracked=data.get("tracked"),
            product_title=data.get("product_title") or "",
        )


@dataclass
class SourceSnapshot:
    products: List[ProductRecord]
    quantities: Dict[Any, Decimal]
    prices_a: Dict[Any, Decimal]
    prices_b: Dict[Any, Decimal]

    @property
    def total(self) -> int:
        return len(self.products)

    def find_by_sku(self, sku: str) -> Optional[ProductRecord]:
        for product in self.products:
            if product.sku == sku:
                return product
        return None


@dataclass(frozen=True)
class VariantTarget:
    """Current vs target values of one variant under its channel."""
    variant: TargetVariant
    channel: Channel
    target_quantity: int
    target_price: Decimal
    quantity_matches: bool
    price_matches: bool

    @property
    def mapped(self) -> bool:
        return self.channel is not Channel.UNMAPPED

    @property
    def matches(self) -> bool:
        return self.quantity_matches and self.price_matches

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variantId": self.variant.id,
            "title": self.variant.title,
            "channel": self.channel.value,
            "currentQuantity": self.variant.current_quantity,
            "targetQuantity": self.target_quantity,
            "currentPrice": self.variant.current_price,
            "targetPrice": self.target_price,
            "quantityMatches": self.quantity_matches,
            "priceMatches": self.price_matches,
        }


@dataclass
class ProductPlan:
    product: ProductRecord
    visibility: VisibilityFlags
    computed_quantity: int
    computed_price_a: Decimal
    computed_price_b: Decimal
    targets: List[VariantTarget] = field(default_factory=list)

    @property
    def variant_count(self) -> int:
        return len(self.targets)

    @property
    def not_found(self) -> bool:
        return not self.targets

    @property
    def mapped_targets(self) -> List[VariantTarget]:
        return [t for t in self.targets if t.mapped]

    @property
    def quantity_writes(self) -> List[VariantTarget]:
        return [t for t in self.mapped_targets if not t.quantity_matches]

    @property
    def price_writes(self) -> List[VariantTarget]:
        return [t for t in self.mapped_targets if not t.price_matches]

    @property
    def needs_write(self) -> bool:
        return any(not t.matches for t in self.mapped_targets)


@dataclass
class ChunkResult:
    status: ResultStatus
    sku: str
    computed_quantity: int = 0
    computed_price_a: Decimal = ZERO
    computed_price_b: Decimal = ZERO
    message: str = ""
    variant_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "sku": self.sku,
            "computedQuantity": self.computed_quantity,
            "computedPriceA": self.computed_price_a,
            "computedPriceB": self.computed_price_b,
            "message": self.message,
            "variantCount": self.variant_count,
        }


@dataclass
class ChunkCounters:
    updated: int = 0
    no_change: int = 0
    errors: int = 0
    not_found: int = 0
    processed: int = 0

    def add(self, result: ChunkResult) -> None:
        self.processed += 1
        if result.status is ResultStatus.UPDATED:
            self.updated += 1
        elif result.status is ResultStatus.NO_CHANGE:
            self.no_change += 1
        elif result.status is ResultStatus.NOT_FOUND:
            self.not_found += 1
        else:
            self.errors += 1

    def to_dict(self) -> Dict[str, int]:
        return {
            "updated": self.updated,
            "noChange": self.no_change,
            "errors": self.errors,
            "notFound": self.not_found,
            "processed": self.processed,
        }


@dataclass(frozen=True)
class SyncProgress:
    total_records: int
    processed_records: int
    current_chunk_index: int
    total_chunks: int
    next_offset: Optional[int]
    is_complete: bool

    @classmethod
    def compute(cls, offset: int, limit: int, total: int, chunk_size: int) -> "SyncProgress":
        is_complete = offset + limit >= total
        return cls(
            total_records=total,
            processed_records=min(offset + chunk_size, total),
            current_chunk_index=offset // limit + 1,
            total_chunks=math.ceil(total / limit) if total else 0,
            next_offset=None if is_complete else offset + limit,
            is_complete=is_complete,
        )


@dataclass
class ChunkResponse:
    success: bool
    is_complete: bool
    message: str = ""
    progress: Optional[SyncProgress] = None
    counters: ChunkCounters = field(default_factory=ChunkCounters)
    results: List[ChunkResult] = field(default_factory=list)
    processing_time: float = 0.0
    error: Optional[str] = None
    details: Optional[str] = None
    upstream_status: Optional[int] = None
    upstream_failure: bool = False
    internal_failure: bool = False

    @property
    def next_offset(self) -> Optional[int]:
        if not self.success or self.progress is None:
            return None
        return self.progress.next_offset

    def to_dict(self, preview: int = 50) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": self.success,
            "isComplete": self.is_complete,
            "message": self.message,
            "nextOffset": self.next_offset,
            "processingTime": round(self.processing_time, 3),
        }
        if not self.success:
            body["error"] = self.error
            if self.details is not None:
                body["details"] = self.details
            if self.upstream_status is not None:
                body["status"] = self.upstream_status
            return body

        progress = self.progress
        body.update({
            "totalRecords": progress.total_records if progress else 0,
            "processedRecords": progress.processed_records if progress else 0,
            "currentChunk": progress.current_chunk_index if progress else 0,
            "totalChunks": progress.total_chunks if progress else 0,
            "chunkResults": self.counters.to_dict(),
            "results": [r.to_dict() for r in self.results[:preview]],
        })
        return body
