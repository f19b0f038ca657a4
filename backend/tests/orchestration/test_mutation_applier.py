from decimal import Decimal

from app.orchestration.stock_sync.delta_calculator import compute_plan
from app.orchestration.stock_sync.models import ProductRecord, ResultStatus, TargetVariant, VisibilityFlags
from app.orchestration.stock_sync.mutation_applier import apply_plan, build_result


LOCATION = "gid://shopify/Location/1"


def _variants(shop, *nodes):
    return [
        TargetVariant(
            id=n["id"], sku=n["sku"], current_quantity=n["inventoryQuantity"],
            current_price=Decimal(n["price"]), parent_product_id=n["product"]["id"],
            inventory_item_id=n["inventoryItem"]["id"],
        )
        for n in nodes
    ]


def _plan(shop, nodes, *, qty="3", price_a="10.00", price_b="8.00", vis=VisibilityFlags()):
    return compute_plan(
        ProductRecord(id=1, sku=nodes[0]["sku"]), vis,
        {1: Decimal(qty)}, {1: Decimal(price_a)}, {1: Decimal(price_b)},
        _variants(shop, *nodes),
    )


def test_two_price_changes_make_one_bulk_call(fake_shopify):
    n0 = fake_shopify.add_variant("SKU", qty=3, price="1.00")
    n1 = fake_shopify.add_variant("SKU", qty=3, price="2.00")

    outcome = apply_plan(fake_shopify, _plan(fake_shopify, [n0, n1]), LOCATION)

    assert fake_shopify.set_calls == []
    assert len(fake_shopify.bulk_calls) == 1
    call = fake_shopify.bulk_calls[0]
    assert call["product"] == "gid://shopify/Product/1"
    assert call["variants"] == [{"id": n0["id"], "price": "10.00"}, {"id": n1["id"], "price": "8.00"}]
    assert outcome.price_updates == 2 and not outcome.errors


def test_quantity_writes_go_per_variant_to_the_given_location(fake_shopify):
    n0 = fake_shopify.add_variant("SKU", qty=0, price="10.00")
    n1 = fake_shopify.add_variant("SKU", qty=1, price="8.00")

    outcome = apply_plan(fake_shopify, _plan(fake_shopify, [n0, n1]), LOCATION)

    assert [c["quantity"] for c in fake_shopify.set_calls] == [3, 3]
    assert {c["location"] for c in fake_shopify.set_calls} == {LOCATION}
    assert fake_shopify.bulk_calls == []
    assert outcome.quantity_updates == 2


def test_failed_quantity_write_does_not_stop_siblings(fake_shopify):
    n0 = fake_shopify.add_variant("SKU", qty=0, price="1.00")
    n1 = fake_shopify.add_variant("SKU", qty=0, price="8.00")
    fake_shopify.fail_set_for.add(n0["inventoryItem"]["id"])

    plan = _plan(fake_shopify, [n0, n1])
    outcome = apply_plan(fake_shopify, plan, LOCATION)

    assert len(fake_shopify.set_calls) == 2       # second variant still written
    assert len(fake_shopify.bulk_calls) == 1      # price still written
    assert outcome.quantity_updates == 1
    assert [e.kind for e in outcome.errors] == ["quantity"]
    assert build_result(plan, outcome).status is ResultStatus.ERROR


def test_user_errors_count_as_failures(fake_shopify):
    n0 = fake_shopify.add_variant("SKU", qty=0, price="10.00")
    fake_shopify.user_errors_set_for.add(n0["inventoryItem"]["id"])
    fake_shopify.fail_bulk_for.add("gid://shopify/Product/1")
    n0["price"] = "1.00"

    plan = _plan(fake_shopify, [n0])
    outcome = apply_plan(fake_shopify, plan, LOCATION)

    assert sorted(e.kind for e in outcome.errors) == ["price", "quantity"]
    assert "not stocked at location" in str(outcome.errors[0])
    result = build_result(plan, outcome)
    assert result.status is ResultStatus.ERROR
    assert "2 error(s)" in result.message


def test_variants_of_different_products_get_separate_bulk_calls(fake_shopify):
    n0 = fake_shopify.add_variant("SKU", qty=3, price="1.00", product_id="gid://shopify/Product/1")
    n1 = fake_shopify.add_variant("SKU", qty=3, price="1.00", product_id="gid://shopify/Product/2")

    apply_plan(fake_shopify, _plan(fake_shopify, [n0, n1]), LOCATION)
    assert sorted(c["product"] for c in fake_shopify.bulk_calls) == ["gid://shopify/Product/1", "gid://shopify/Product/2"]


def test_build_result_statuses(fake_shopify):
    n0 = fake_shopify.add_variant("SKU", qty=3, price="10.00")
    n1 = fake_shopify.add_variant("SKU", qty=3, price="8.00")
    matching = _plan(fake_shopify, [n0, n1])
    assert build_result(matching).status is ResultStatus.NO_CHANGE

    missing = compute_plan(ProductRecord(id=1, sku="NOPE"), VisibilityFlags(), {}, {}, {}, [])
    result = build_result(missing)
    assert result.status is ResultStatus.NOT_FOUND
    assert result.variant_count == 0
