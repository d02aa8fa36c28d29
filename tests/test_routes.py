# tests/test_routes.py
from __future__ import annotations

import pytest
from conftest import line, load_order

from Feedback.processors.pipeline import NotFound, StateConflict, ValidationFailure
from Orders.constants.trendyol_constants import OrderStatus
from Routes.constants.constants import RouteStatus, SuggestionKind
from Routes.processors.pipeline import (
    cancel_route,
    create_route,
    finalize_route,
    get_route,
    get_route_suggestions,
    list_routes,
)


@pytest.fixture
def store(make_store):
    return make_store("Mağaza A")


def _statuses(db_name, *orders) -> list[OrderStatus]:
    return [load_order(db_name, o.pk).status for o in orders]


# -------------------------------------------------
# create
# -------------------------------------------------
def test_create_route_claims_unclaimed_orders(db_name, store, make_order):
    pending = make_order(store.pk, [line("A")])
    processing = make_order(store.pk, [line("A")], status=OrderStatus.PROCESSING)
    packed = make_order(store.pk, [line("A")], status=OrderStatus.PACKED)

    res = create_route("Sabah turu", "A ürünleri", [pending.pk, processing.pk, packed.pk], db_name=db_name)

    assert res.success, res.message
    route = res.data["route"]
    assert route.status is RouteStatus.COLLECTING
    assert route.labelPrintedAt is None
    assert sorted(o.pk for o in route.orders) == sorted([pending.pk, processing.pk, packed.pk])
    assert _statuses(db_name, pending, processing, packed) == [
        OrderStatus.COLLECTING, OrderStatus.COLLECTING, OrderStatus.PACKED,
    ]
    assert load_order(db_name, pending.pk).version == 2
    assert load_order(db_name, packed.pk).version == 1


def test_create_route_with_unknown_order_creates_nothing(db_name, store, make_order):
    order = make_order(store.pk, [line("A")])

    res = create_route("Rota", None, [order.pk, 9999], db_name=db_name)

    assert not res.success
    assert isinstance(res.error, ValidationFailure)
    assert res.error.data["missingOrderIds"] == [9999]
    assert list_routes(db_name=db_name).data["routes"] == []
    assert _statuses(db_name, order) == [OrderStatus.PENDING]


@pytest.mark.parametrize("name, ids", [("", [1]), ("   ", [1]), ("Rota", []), ("Rota", ["abc"])])
def test_create_route_rejects_bad_input(db_name, name, ids):
    res = create_route(name, None, ids, db_name=db_name)

    assert not res.success
    assert isinstance(res.error, ValidationFailure)


def test_create_route_rejects_stale_versions(db_name, store, make_order):
    first = make_order(store.pk, [line("A")])
    second = make_order(store.pk, [line("A")], version=3)

    res = create_route(
        "Rota", None, [first.pk, second.pk],
        expected_versions={first.pk: 1, second.pk: 2},
        db_name=db_name,
    )

    assert not res.success
    assert isinstance(res.error, StateConflict)
    assert res.error.data["staleOrderIds"] == [second.pk]
    assert list_routes(db_name=db_name).data["routes"] == []
    assert _statuses(db_name, first, second) == [OrderStatus.PENDING, OrderStatus.PENDING]


@pytest.mark.parametrize("versions", [{"abc": 1}, {"1": "iki"}, {"1": None}])
def test_create_route_rejects_malformed_versions(db_name, store, make_order, versions):
    order = make_order(store.pk, [line("A")])

    res = create_route("Rota", None, [order.pk], expected_versions=versions, db_name=db_name)

    assert not res.success
    assert isinstance(res.error, ValidationFailure)
    assert list_routes(db_name=db_name).data["routes"] == []
    assert _statuses(db_name, order) == [OrderStatus.PENDING]


# -------------------------------------------------
# finalize
# -------------------------------------------------
def test_finalize_packs_orders_and_returns_label(db_name, store, make_order):
    orders = [make_order(store.pk, [line("A", 2)]) for _ in range(3)]
    route = create_route("Rota", None, [o.pk for o in orders], db_name=db_name).data["route"]

    res = finalize_route(route.pk, db_name=db_name)

    assert res.success, res.message
    finalized = res.data["route"]
    assert finalized.status is RouteStatus.COMPLETED
    assert finalized.labelPrintedAt is not None
    assert _statuses(db_name, *orders) == [OrderStatus.PACKED] * 3

    label = res.data["label"]
    assert label["routeId"] == route.pk
    assert len(label["pages"]) == 1
    assert label["pages"][0][0]["prod1"] == "Ürün A"
    assert label["pages"][0][0]["qty1"] == 2


def test_finalize_twice_is_a_conflict_and_changes_nothing(db_name, store, make_order):
    order = make_order(store.pk, [line("A")])
    route = create_route("Rota", None, [order.pk], db_name=db_name).data["route"]
    first = finalize_route(route.pk, db_name=db_name).data["route"]

    res = finalize_route(route.pk, db_name=db_name)

    assert not res.success
    assert isinstance(res.error, StateConflict)
    after = get_route(route.pk, db_name=db_name).data["route"]
    assert after.status is RouteStatus.COMPLETED
    assert after.labelPrintedAt == first.labelPrintedAt
    assert load_order(db_name, order.pk).version == 3


def test_failing_label_renderer_leaves_route_untouched(db_name, store, make_order):
    order = make_order(store.pk, [line("A")])
    route = create_route("Rota", None, [order.pk], db_name=db_name).data["route"]

    def broken_renderer(route, orders):
        raise RuntimeError("yazıcı yok")

    res = finalize_route(route.pk, label_renderer=broken_renderer, db_name=db_name)

    assert not res.success
    assert get_route(route.pk, db_name=db_name).data["route"].status is RouteStatus.COLLECTING
    assert _statuses(db_name, order) == [OrderStatus.COLLECTING]


def test_finalize_cancelled_route_is_a_conflict(db_name, store, make_order):
    order = make_order(store.pk, [line("A")])
    route = create_route("Rota", None, [order.pk], db_name=db_name).data["route"]
    cancel_route(route.pk, db_name=db_name)

    res = finalize_route(route.pk, db_name=db_name)

    assert isinstance(res.error, StateConflict)


# -------------------------------------------------
# cancel
# -------------------------------------------------
def test_cancel_reverts_only_collecting_orders(db_name, store, make_order):
    pending = make_order(store.pk, [line("A")])
    packed = make_order(store.pk, [line("A")], status=OrderStatus.PACKED)
    route = create_route("Rota", None, [pending.pk, packed.pk], db_name=db_name).data["route"]

    res = cancel_route(route.pk, db_name=db_name)

    assert res.success, res.message
    assert res.data["route"].status is RouteStatus.CANCELLED
    assert res.data["revertedOrderIds"] == [pending.pk]
    assert _statuses(db_name, pending, packed) == [OrderStatus.PENDING, OrderStatus.PACKED]
    # rota satırı silinmez
    assert get_route(route.pk, db_name=db_name).success


def test_cancel_completed_route_is_a_conflict(db_name, store, make_order):
    order = make_order(store.pk, [line("A")])
    route = create_route("Rota", None, [order.pk], db_name=db_name).data["route"]
    finalize_route(route.pk, db_name=db_name)

    res = cancel_route(route.pk, db_name=db_name)

    assert isinstance(res.error, StateConflict)
    assert _statuses(db_name, order) == [OrderStatus.PACKED]


# -------------------------------------------------
# read
# -------------------------------------------------
def test_get_and_cancel_unknown_route(db_name):
    assert isinstance(get_route(404, db_name=db_name).error, NotFound)
    assert isinstance(cancel_route(404, db_name=db_name).error, NotFound)
    assert isinstance(finalize_route(404, db_name=db_name).error, NotFound)


def test_list_routes_filters_by_status_newest_first(db_name, store, make_order):
    ids = []
    for name in ("Bir", "İki", "Üç"):
        order = make_order(store.pk, [line("A")])
        ids.append(create_route(name, None, [order.pk], db_name=db_name).data["route"].pk)
    cancel_route(ids[1], db_name=db_name)

    everything = list_routes(db_name=db_name).data["routes"]
    assert [r.pk for r in everything] == list(reversed(ids))

    open_routes = list_routes(["collecting"], db_name=db_name).data["routes"]
    assert [r.name for r in open_routes] == ["Üç", "Bir"]
    assert all(len(r.orders) == 1 for r in open_routes)

    closed = list_routes({RouteStatus.CANCELLED, RouteStatus.COMPLETED}, db_name=db_name).data["routes"]
    assert [r.pk for r in closed] == [ids[1]]


def test_list_routes_rejects_unknown_status(db_name):
    res = list_routes(["ARCHIVED"], db_name=db_name)

    assert isinstance(res.error, ValidationFailure)


# -------------------------------------------------
# suggestions
# -------------------------------------------------
def test_route_suggestions_skip_orders_already_in_a_route(db_name, store, make_order):
    o1 = make_order(store.pk, [line("X")])
    o2 = make_order(store.pk, [line("X")])
    o3 = make_order(store.pk, [line("X"), line("Y")])

    res = get_route_suggestions(db_name=db_name)
    assert [s.priority for s in res.data["suggestions"]] == [100, 29, 5]
    assert res.data["suggestions"][0].store_name == "Mağaza A"

    create_route("Karışık", None, [o3.pk], db_name=db_name)

    res = get_route_suggestions(db_name=db_name)
    kinds = [s.kind for s in res.data["suggestions"]]
    assert SuggestionKind.MIXED not in kinds
    assert sorted(res.data["suggestions"][0].order_ids) == sorted([o1.pk, o2.pk])


def test_route_suggestion_filters_and_paging(db_name, store, make_order):
    for qty in (1, 2, 3):
        make_order(store.pk, [line("X", qty)])
    make_order(store.pk, [line("Y", 1), line("Z", 1)])

    singles = get_route_suggestions(kinds=["single_product"], db_name=db_name)
    assert {s.kind for s in singles.data["suggestions"]} == {SuggestionKind.SINGLE_PRODUCT}
    assert singles.data["meta"]["total"] == 3

    with_z = get_route_suggestions(barcodes=["Z"], db_name=db_name)
    assert [s.kind for s in with_z.data["suggestions"]] == [SuggestionKind.MIXED]

    page = get_route_suggestions(page=2, limit=2, db_name=db_name)
    assert page.data["meta"] == {"page": 2, "limit": 2, "total": 5, "totalPages": 3}
    assert len(page.data["suggestions"]) == 2


@pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": "x"}, {"kinds": ["huge"]}])
def test_route_suggestions_reject_bad_paging(db_name, kwargs):
    res = get_route_suggestions(db_name=db_name, **kwargs)

    assert isinstance(res.error, ValidationFailure)
