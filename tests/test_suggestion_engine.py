# tests/test_suggestion_engine.py
from __future__ import annotations

from conftest import line

from Orders.constants.trendyol_constants import OrderStatus
from Orders.models.trendyol.trendyol_models import Order
from Routes.constants.constants import SuggestionKind
from Routes.processors.suggestion_engine import SuggestionKey, suggest_routes

_pk = iter(range(1, 10_000))


def _order(store_id, lines, status=OrderStatus.PENDING) -> Order:
    pk = next(_pk)
    return Order(
        pk=pk,
        shipmentPackageId=pk,
        orderNumber=f"O{pk}",
        api_account_id=store_id,
        status=status,
        lines=lines,
    )


def test_store_scenario_ranks_all_singles_then_single_bucket_then_mixed():
    o1 = _order(1, [line("X", 1)])
    o2 = _order(1, [line("X", 1)])
    o3 = _order(1, [line("X", 1), line("Y", 1)])

    suggestions = suggest_routes([o1, o2, o3], store_names={1: "Mağaza A"})

    assert [(s.kind, s.priority) for s in suggestions] == [
        (SuggestionKind.ALL_SINGLES, 100),
        (SuggestionKind.SINGLE_PRODUCT, 29),
        (SuggestionKind.MIXED, 5),
    ]

    all_singles, single, mixed = suggestions
    assert all_singles.order_ids == [o1.pk, o2.pk]
    assert single.order_ids == [o1.pk, o2.pk]
    assert single.key == SuggestionKey(1, SuggestionKind.SINGLE_PRODUCT, 1)
    assert mixed.order_ids == [o3.pk]
    assert mixed.key.quantity == 2

    assert single.id == "1-single_product-qty-1"
    assert all_singles.id == "1-all-singles"
    assert single.store_name == "Mağaza A"

    product = single.products[0]
    assert (product.barcode, product.order_count, product.total_quantity) == ("X", 2, 2)
    assert {p.barcode for p in mixed.products} == {"X", "Y"}


def test_bigger_single_bucket_wins_at_same_quantity():
    store_a = [_order(1, [line("A", 2)]) for _ in range(5)]
    store_b = [_order(2, [line("B", 2)]) for _ in range(3)]

    singles = [
        s for s in suggest_routes(store_a + store_b)
        if s.kind is SuggestionKind.SINGLE_PRODUCT
    ]

    assert [s.priority for s in singles] == [58, 38]
    assert singles[0].store_id == 1


def test_mixed_bucket_ranks_below_single_bucket_of_same_size():
    singles = [_order(1, [line("A", 9)]) for _ in range(3)]
    mixed = [_order(2, [line("A", 1), line("B", 1)]) for _ in range(3)]

    suggestions = [
        s for s in suggest_routes(singles + mixed)
        if s.kind is not SuggestionKind.ALL_SINGLES
    ]

    assert [s.kind for s in suggestions] == [SuggestionKind.SINGLE_PRODUCT, SuggestionKind.MIXED]
    assert suggestions[0].priority == 31
    assert suggestions[1].priority == 15


def test_all_singles_needs_at_least_two_single_orders():
    lone = suggest_routes([_order(1, [line("A", 1)]), _order(1, [line("A", 1), line("B", 3)])])
    assert SuggestionKind.ALL_SINGLES not in {s.kind for s in lone}

    pair = suggest_routes([_order(1, [line("A", 1)]), _order(1, [line("B", 4)])])
    umbrella = [s for s in pair if s.kind is SuggestionKind.ALL_SINGLES]
    assert len(umbrella) == 1
    assert umbrella[0].priority == 100
    assert umbrella[0].order_count == 2


def test_claimed_orders_are_not_suggested():
    free = _order(1, [line("A", 1)])
    collecting = _order(1, [line("A", 1)], status=OrderStatus.COLLECTING)
    packed = _order(1, [line("A", 1)], status=OrderStatus.PACKED)

    suggestions = suggest_routes([free, collecting, packed])

    assert len(suggestions) == 1
    assert suggestions[0].order_ids == [free.pk]


def test_quantity_sums_lines_and_repeated_barcode_is_still_single():
    order = _order(1, [line("A", 2), {"productBarcode": "A", "quantity": 3}])

    [suggestion] = suggest_routes([order])

    assert suggestion.kind is SuggestionKind.SINGLE_PRODUCT
    assert suggestion.key.quantity == 5
    assert suggestion.priority == 1 * 10 + (10 - 5)


def test_orders_without_barcoded_lines_are_ignored():
    assert suggest_routes([_order(1, []), _order(1, [{"productName": "barkodsuz"}])]) == []


def test_stores_are_never_mixed_in_one_suggestion():
    suggestions = suggest_routes([_order(1, [line("A", 1)]), _order(2, [line("A", 1)])])

    assert len(suggestions) == 2
    assert {s.store_id for s in suggestions} == {1, 2}
    assert all(s.order_count == 1 for s in suggestions)


def test_to_dict_uses_camel_case_keys():
    [suggestion] = suggest_routes([_order(None, [line("A", 1)])])

    payload = suggestion.to_dict()

    assert payload["id"] == "no-store-single_product-qty-1"
    assert payload["type"] == "single_product"
    assert payload["storeName"] == "Mağazasız"
    assert payload["orderCount"] == 1
    assert payload["products"][0]["totalQuantity"] == 1
