import pytest

from app.orchestration.stock_sync.errors import UpstreamError
from app.orchestration.stock_sync.variant_locator import locate_batch


def test_exact_sku_match_only(fake_shopify):
    fake_shopify.add_variant("ABC", qty=1)
    fake_shopify.add_variant("ABC-2", qty=2)   # returned by the search, must be dropped

    found = locate_batch(fake_shopify, ["ABC"])
    assert list(found) == ["ABC"]
    assert [v.current_quantity for v in found["ABC"]] == [1]


def test_missing_sku_maps_to_empty_list(fake_shopify):
    fake_shopify.add_variant("ABC-2")
    assert locate_batch(fake_shopify, ["ABC"]) == {"ABC": []}


def test_batches_are_split_and_skus_deduplicated(fake_shopify):
    skus = [f"S{i:03d}" for i in range(7)] + ["S000", "", "  "]
    for s in skus[:7]:
        fake_shopify.add_variant(s)

    found = locate_batch(fake_shopify, skus, batch_size=3)
    assert len(fake_shopify.queries) == 3          # ceil(7 / 3)
    assert [len(q) for q in fake_shopify.queries] == [3, 3, 1]
    assert sorted(found) == sorted(skus[:7])
    assert all(len(v) == 1 for v in found.values())


def test_follows_pagination_and_keeps_order(make_shopify):
    shop = make_shopify(page_size=2)
    for qty in (1, 2, 3, 4, 5):
        shop.add_variant("MULTI", qty=qty)

    found = locate_batch(shop, ["MULTI"])
    assert [v.current_quantity for v in found["MULTI"]] == [1, 2, 3, 4, 5]
    assert len(shop.queries) == 3


def test_transport_failure_raises_upstream_error(fake_shopify):
    fake_shopify.fail_query = True
    with pytest.raises(UpstreamError) as exc:
        locate_batch(fake_shopify, ["ABC"])
    assert exc.value.source == "shopify"
    assert exc.value.status == 503


def test_empty_input_makes_no_calls(fake_shopify):
    assert locate_batch(fake_shopify, []) == {}
    assert fake_shopify.queries == []
