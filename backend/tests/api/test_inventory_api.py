import pytest

from app.api.v1 import inventory as inventory_routes
from app.core.config import settings
from app.orchestration.stock_sync.channels import PositionalChannelRule
from app.orchestration.stock_sync.context import SyncContext
from app.services import inventory_adjust_service as service_module
from app.services.inventory_adjust_service import InventoryAdjustError, adjust_inventory


PREFIX = settings.API_PREFIX


# ---------------- service ----------------
def test_add_increases_stock(fake_shopify, make_context):
    node = fake_shopify.add_variant("SKU-1", qty=4, product_title="Desk")
    out = adjust_inventory("SKU-1", 3, "add", context=make_context(None, fake_shopify))

    assert out["success"] is True
    assert out["product"] == "Desk"
    assert (out["previousQuantity"], out["newQuantity"], out["quantityChanged"]) == (4, 7, 3)
    assert fake_shopify.adjust_calls == [
        {"item": node["inventoryItem"]["id"], "location": "gid://shopify/Location/1", "delta": 3}
    ]


def test_subtract_never_goes_below_zero(fake_shopify, make_context):
    fake_shopify.add_variant("SKU-1", qty=2)
    out = adjust_inventory("SKU-1", 5, "subtract", context=make_context(None, fake_shopify))

    assert out["newQuantity"] == 0
    assert out["quantityChanged"] == 2
    assert fake_shopify.adjust_calls[0]["delta"] == -2


def test_first_exact_variant_is_used(fake_shopify, make_context):
    fake_shopify.add_variant("SKU-10", qty=1)          # prefix neighbour
    exact = fake_shopify.add_variant("SKU-1", qty=1)
    fake_shopify.add_variant("SKU-1", qty=9)

    adjust_inventory("SKU-1", 1, "add", context=make_context(None, fake_shopify))
    assert fake_shopify.adjust_calls[0]["item"] == exact["inventoryItem"]["id"]


def test_unknown_sku_is_404(fake_shopify, make_context):
    with pytest.raises(InventoryAdjustError) as exc:
        adjust_inventory("NOPE", 1, "add", context=make_context(None, fake_shopify))
    assert exc.value.status_code == 404


def test_untracked_variant_is_rejected(fake_shopify, make_context):
    fake_shopify.add_variant("SKU-1", qty=1, tracked=False)
    with pytest.raises(InventoryAdjustError) as exc:
        adjust_inventory("SKU-1", 1, "add", context=make_context(None, fake_shopify))
    assert exc.value.status_code == 400
    assert fake_shopify.adjust_calls == []


def test_lookup_failure_is_502(fake_shopify, make_context):
    fake_shopify.fail_query = True
    with pytest.raises(InventoryAdjustError) as exc:
        adjust_inventory("SKU-1", 1, "add", context=make_context(None, fake_shopify))
    assert exc.value.status_code == 502


@pytest.mark.parametrize("sku, quantity, mode", [
    ("", 1, "add"),
    ("SKU-1", 0, "add"),
    ("SKU-1", -3, "subtract"),
    ("SKU-1", True, "add"),
    ("SKU-1", 1, "set"),
])
def test_bad_input_is_400_without_calls(sku, quantity, mode, fake_shopify, make_context):
    with pytest.raises(InventoryAdjustError) as exc:
        adjust_inventory(sku, quantity, mode, context=make_context(None, fake_shopify))
    assert exc.value.status_code == 400
    assert fake_shopify.call_count == 0


# ---------------- route ----------------
def test_route_returns_service_body(api_client, monkeypatch):
    monkeypatch.setattr(
        inventory_routes, "adjust_inventory",
        lambda sku, quantity, mode: {"success": True, "sku": sku, "newQuantity": quantity},
    )
    resp = api_client.post(f"{PREFIX}/inventory/adjust", json={"sku": "A", "quantity": 2, "mode": "add"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "sku": "A", "newQuantity": 2}


def test_route_maps_service_errors(api_client, monkeypatch):
    def _fail(sku, quantity, mode):
        raise InventoryAdjustError('Product with SKU "A" not found', status_code=404)

    monkeypatch.setattr(inventory_routes, "adjust_inventory", _fail)
    resp = api_client.post(f"{PREFIX}/inventory/adjust", json={"sku": "A", "quantity": 2})
    assert resp.status_code == 404
    assert resp.json()["detail"] == {"error": 'Product with SKU "A" not found'}


def test_route_rejects_empty_body_with_400(api_client):
    resp = api_client.post(f"{PREFIX}/inventory/adjust", json={})
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "SKU is required"


class _ClosingContext(SyncContext):
    def __init__(self, *args, closed, **kwargs):
        super().__init__(*args, **kwargs)
        self._closed = closed

    def close(self):
        self._closed.append(True)


@pytest.mark.parametrize("sku, expect_error", [("SKU-1", False), ("NOPE", True)])
def test_service_closes_the_context_it_created(sku, expect_error, fake_shopify, make_fina, monkeypatch):
    fake_shopify.add_variant("SKU-1", qty=1)
    closed = []
    monkeypatch.setattr(
        service_module, "SyncContext",
        lambda shopify=None: _ClosingContext(
            fina=make_fina(), shopify=shopify, channel_rule=PositionalChannelRule(), closed=closed,
        ),
    )

    if expect_error:
        with pytest.raises(InventoryAdjustError):
            adjust_inventory(sku, 1, "add", shopify=fake_shopify)
    else:
        adjust_inventory(sku, 1, "add", shopify=fake_shopify)
    assert closed == [True]


def test_service_leaves_a_given_context_open(fake_shopify, make_fina):
    fake_shopify.add_variant("SKU-1", qty=1)
    closed = []
    ctx = _ClosingContext(fina=make_fina(), shopify=fake_shopify, channel_rule=PositionalChannelRule(), closed=closed)

    adjust_inventory("SKU-1", 1, "add", context=ctx)
    assert closed == []
