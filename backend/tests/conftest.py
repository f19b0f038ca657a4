"""In-memory FINA / Shopify doubles shared by the unit tests."""

from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

import pytest

from app.core.config import settings
from app.integrations.fina.errors import FinaServerError
from app.integrations.shopify.errors import ShopifyHTTPError
from app.orchestration.stock_sync.channels import PositionalChannelRule
from app.orchestration.stock_sync.context import SyncContext


# ---------------- FINA ----------------
class _FakeHttp:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeFina:
    """Stands in for FinaOperationsAPI; counts every fetch."""

    def __init__(self, products=None, rests=None, prices=None, *, fail_on: Optional[str] = None) -> None:
        self.products = list(products or [])
        self.rests = list(rests or [])
        self.prices = list(prices or [])
        self.fail_on = fail_on
        self.calls: List[str] = []
        self.http = _FakeHttp()

    def _maybe_fail(self, name: str) -> None:
        if self.fail_on == name:
            raise FinaServerError(f"{name} exploded", status=500, body="boom")

    def fetch_products(self):
        self.calls.append("products")
        self._maybe_fail("products")
        return list(self.products)

    def fetch_store_rests(self, store_id):
        self.calls.append(f"rests:{store_id}")
        self._maybe_fail("rests")
        return list(self.rests)

    def fetch_product_prices(self):
        self.calls.append("prices")
        self._maybe_fail("prices")
        return list(self.prices)


def fina_product(pid, sku, *, a=None, b=None, name="") -> Dict[str, Any]:
    """getProducts row; a/b set the visibility add_fields when given."""
    add_fields = []
    if a is not None:
        add_fields.append({"field": settings.FINA_VISIBILITY_FIELD_A, "value": a})
    if b is not None:
        add_fields.append({"field": settings.FINA_VISIBILITY_FIELD_B, "value": b})
    return {"id": pid, "code": sku, "name": name or sku, "add_fields": add_fields}


# ---------------- Shopify ----------------
class FakeShopify:
    """
    Keeps variants in memory and applies writes to them, so a second sync
    sees the corrected state. Mirrors the ShopifyClient method surface.
    """

    def __init__(self, *, page_size: Optional[int] = None) -> None:
        self.variants: List[Dict[str, Any]] = []
        self.page_size = page_size
        self.queries: List[List[str]] = []
        self.location_calls = 0
        self.set_calls: List[Dict[str, Any]] = []
        self.adjust_calls: List[Dict[str, Any]] = []
        self.bulk_calls: List[Dict[str, Any]] = []
        self.fail_set_for: set = set()
        self.fail_bulk_for: set = set()
        self.user_errors_set_for: set = set()
        self.fail_query = False
        self.locations = [{"id": "gid://shopify/Location/1", "name": "Main", "isActive": True}]
        self._ids = itertools.count(1)

    # -- setup helpers --
    def add_variant(self, sku, *, qty=0, price="0.00", product_id="gid://shopify/Product/1",
                    title="", tracked=True, product_title="Product") -> Dict[str, Any]:
        n = next(self._ids)
        node = {
            "id": f"gid://shopify/ProductVariant/{n}",
            "sku": sku,
            "title": title,
            "position": n,
            "price": str(price),
            "inventoryQuantity": qty,
            "inventoryItem": {"id": f"gid://shopify/InventoryItem/{n}", "tracked": tracked},
            "product": {"id": product_id, "title": product_title},
        }
        self.variants.append(node)
        return node

    @property
    def write_count(self) -> int:
        return len(self.set_calls) + len(self.bulk_calls) + len(self.adjust_calls)

    @property
    def call_count(self) -> int:
        return len(self.queries) + self.location_calls + self.write_count

    # -- client surface --
    def query_variants_by_skus(self, skus, *, first=None, after=None):
        self.queries.append(list(skus))
        if self.fail_query:
            raise ShopifyHTTPError("search HTTP 503", status=503, body="unavailable")
        # search-engine style: prefix matches come back too
        hits = [v for v in self.variants if any(v["sku"].startswith(s) for s in skus)]
        size = self.page_size or first or 250
        start = int(after) if after else 0
        page = hits[start:start + size]
        has_next = start + size < len(hits)
        return {
            "edges": [{"node": dict(v)} for v in page],
            "pageInfo": {"hasNextPage": has_next, "endCursor": str(start + size) if has_next else None},
        }

    def first_location(self):
        self.location_calls += 1
        return self.locations[0] if self.locations else None

    def inventory_set_quantities(self, inventory_item_id, location_id, quantity):
        self.set_calls.append({"item": inventory_item_id, "location": location_id, "quantity": quantity})
        if inventory_item_id in self.fail_set_for:
            raise ShopifyHTTPError("inventorySetQuantities HTTP 500", status=500)
        if inventory_item_id in self.user_errors_set_for:
            return {"data": {"inventorySetQuantities": {"userErrors": [{"message": "not stocked at location"}]}}}
        for v in self.variants:
            if v["inventoryItem"]["id"] == inventory_item_id:
                v["inventoryQuantity"] = quantity
        return {"data": {"inventorySetQuantities": {"userErrors": []}}}

    def inventory_adjust_quantities(self, inventory_item_id, location_id, delta):
        self.adjust_calls.append({"item": inventory_item_id, "location": location_id, "delta": delta})
        for v in self.variants:
            if v["inventoryItem"]["id"] == inventory_item_id:
                v["inventoryQuantity"] += delta
        return {"data": {"inventoryAdjustQuantities": {"userErrors": []}}}

    def product_variants_bulk_update(self, product_id, variants):
        self.bulk_calls.append({"product": product_id, "variants": list(variants)})
        if product_id in self.fail_bulk_for:
            return {"data": {"productVariantsBulkUpdate": {"userErrors": [{"message": "price invalid"}]}}}
        by_id = {v["id"]: v for v in variants}
        for node in self.variants:
            if node["id"] in by_id:
                node["price"] = by_id[node["id"]]["price"]
        return {"data": {"productVariantsBulkUpdate": {"userErrors": []}}}


# ---------------- fixtures ----------------
@pytest.fixture
def fake_shopify() -> FakeShopify:
    return FakeShopify()


@pytest.fixture
def make_shopify():
    return FakeShopify


@pytest.fixture
def make_fina():
    return FakeFina


@pytest.fixture
def product_row():
    return fina_product


@pytest.fixture
def make_context():
    def _build(fina, shopify, **kwargs) -> SyncContext:
        kwargs.setdefault("channel_rule", PositionalChannelRule())
        return SyncContext(fina=fina, shopify=shopify, **kwargs)
    return _build



# ---------------- API ----------------
@pytest.fixture
def api_client(monkeypatch):
    """TestClient over the real app with the ops token guard switched off."""
    from fastapi.testclient import TestClient
    from app.main import app

    monkeypatch.setattr(settings, "OPS_API_TOKEN", None, raising=False)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
