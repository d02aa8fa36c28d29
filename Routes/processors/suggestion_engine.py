# Routes/processors/suggestion_engine.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from Orders.services.custom_queries import is_route_eligible
from Orders.services.lines import iter_product_lines, line_barcode, line_product_name, line_quantity
from Routes.constants.constants import (
    ALL_SINGLES_MIN_ORDERS,
    ALL_SINGLES_PRIORITY,
    MIXED_ORDER_WEIGHT,
    NO_STORE_NAME,
    SINGLE_ORDER_WEIGHT,
    SINGLE_QUANTITY_BASE,
    SuggestionKind,
)


# -------------------------------------------------
# 🔑 Öneri anahtarı
# -------------------------------------------------
@dataclass(frozen=True)
class SuggestionKey:
    """
    Mağaza + tür + adet üçlüsü. Aynı mağazada aynı tür/adet için
    tek öneri olabilir; "tüm tekliler" önerisinde adet yoktur.
    """
    store_id: Optional[int]
    kind: SuggestionKind
    quantity: Optional[int] = None

    def __str__(self) -> str:
        store = self.store_id if self.store_id is not None else "no-store"
        if self.kind is SuggestionKind.ALL_SINGLES:
            return f"{store}-all-singles"
        return f"{store}-{self.kind.value}-qty-{self.quantity}"


@dataclass
class SuggestionProduct:
    barcode: str
    name: str
    order_count: int = 0
    total_quantity: int = 0


@dataclass
class RouteSuggestion:
    key: SuggestionKey
    name: str
    description: str
    store_name: str
    products: list[SuggestionProduct]
    orders: list = field(default_factory=list)
    priority: int = 0

    @property
    def id(self) -> str:
        return str(self.key)

    @property
    def kind(self) -> SuggestionKind:
        return self.key.kind

    @property
    def store_id(self) -> Optional[int]:
        return self.key.store_id

    @property
    def order_count(self) -> int:
        return len(self.orders)

    @property
    def total_quantity(self) -> int:
        return sum(p.total_quantity for p in self.products)

    @property
    def order_ids(self) -> list[int]:
        return [o.pk for o in self.orders]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.kind.value,
            "name": self.name,
            "description": self.description,
            "storeId": self.store_id,
            "storeName": self.store_name,
            "orderCount": self.order_count,
            "totalQuantity": self.total_quantity,
            "products": [
                {
                    "barcode": p.barcode,
                    "name": p.name,
                    "orderCount": p.order_count,
                    "totalQuantity": p.total_quantity,
                }
                for p in self.products
            ],
            "orderIds": self.order_ids,
            "priority": self.priority,
        }


# -------------------------------------------------
# 🧮 Sipariş profili
# -------------------------------------------------
@dataclass
class _OrderProfile:
    order: object
    # barkod → (ürün adı, bu siparişteki toplam adet)
    products: dict
    total_quantity: int

    @property
    def is_single_product(self) -> bool:
        return len(self.products) == 1


def _profile_order(order) -> Optional[_OrderProfile]:
    products: dict[str, list] = {}
    for line in iter_product_lines(order.lines):
        barcode = line_barcode(line)
        entry = products.setdefault(barcode, [line_product_name(line), 0])
        entry[1] += line_quantity(line)

    if not products:
        return None

    return _OrderProfile(
        order=order,
        products={b: (name, qty) for b, (name, qty) in products.items()},
        total_quantity=sum(qty for _, qty in products.values()),
    )


def _aggregate_products(profiles: list[_OrderProfile]) -> list[SuggestionProduct]:
    stats: dict[str, SuggestionProduct] = {}
    for profile in profiles:
        for barcode, (name, qty) in profile.products.items():
            product = stats.setdefault(barcode, SuggestionProduct(barcode=barcode, name=name))
            product.order_count += 1
            product.total_quantity += qty
    return list(stats.values())


def _build(
    key: SuggestionKey,
    store_name: str,
    profiles: list[_OrderProfile],
    priority: int,
) -> RouteSuggestion:
    products = _aggregate_products(profiles)
    product_names = ", ".join(p.name for p in products)

    if key.kind is SuggestionKind.SINGLE_PRODUCT:
        name = f"Tekli - {product_names} ({key.quantity} Adet)"
    elif key.kind is SuggestionKind.MIXED:
        name = f"Çoklu Ürün - {key.quantity} Adet"
    else:
        name = "Tüm Tekli Siparişler"

    return RouteSuggestion(
        key=key,
        name=name,
        description=f"{store_name} • {len(profiles)} sipariş • {product_names}",
        store_name=store_name,
        products=products,
        orders=[p.order for p in profiles],
        priority=priority,
    )


# -------------------------------------------------
# 💡 Öneri motoru
# -------------------------------------------------
def suggest_store_routes(
    store_id: Optional[int],
    store_name: str,
    orders: Iterable,
) -> list[RouteSuggestion]:
    """
    Tek mağazanın siparişleri için önerileri üretir (sırasız).
    Barkodlu satırı olmayan siparişler hesaba katılmaz.
    """
    singles: dict[int, list[_OrderProfile]] = {}
    mixed: dict[int, list[_OrderProfile]] = {}

    for order in orders:
        profile = _profile_order(order)
        if profile is None:
            continue
        buckets = singles if profile.is_single_product else mixed
        buckets.setdefault(profile.total_quantity, []).append(profile)

    suggestions: list[RouteSuggestion] = []

    for quantity in sorted(singles):
        bucket = singles[quantity]
        suggestions.append(_build(
            SuggestionKey(store_id, SuggestionKind.SINGLE_PRODUCT, quantity),
            store_name,
            bucket,
            priority=len(bucket) * SINGLE_ORDER_WEIGHT + (SINGLE_QUANTITY_BASE - quantity),
        ))

    for quantity in sorted(mixed):
        bucket = mixed[quantity]
        suggestions.append(_build(
            SuggestionKey(store_id, SuggestionKind.MIXED, quantity),
            store_name,
            bucket,
            priority=len(bucket) * MIXED_ORDER_WEIGHT,
        ))

    all_singles = [p for quantity in sorted(singles) for p in singles[quantity]]
    if len(all_singles) >= ALL_SINGLES_MIN_ORDERS:
        suggestions.append(_build(
            SuggestionKey(store_id, SuggestionKind.ALL_SINGLES),
            store_name,
            all_singles,
            priority=ALL_SINGLES_PRIORITY,
        ))

    return suggestions


def suggest_routes(orders: Iterable, store_names: Optional[dict] = None) -> list[RouteSuggestion]:
    """
    Rotaya alınmamış siparişlerden öncelik sırasına göre (yüksekten düşüğe)
    rota önerileri üretir.

    1. Uygun siparişler (is_route_eligible) mağazaya göre ayrılır.
    2. Tek ürünlü ve karışık siparişler toplam adede göre ayrı kovalara düşer.
    3. Tek ürünlü kova: orderCount*10 + (10 - adet), karışık kova: orderCount*5.
    4. Mağazada en az 2 tekli sipariş varsa hepsini kapsayan öneri, öncelik 100.
    """
    store_names = store_names or {}

    by_store: dict[Optional[int], list] = {}
    for order in orders:
        if not is_route_eligible(order):
            continue
        by_store.setdefault(getattr(order, "api_account_id", None), []).append(order)

    suggestions: list[RouteSuggestion] = []
    for store_id, store_orders in by_store.items():
        store_name = store_names.get(store_id) or NO_STORE_NAME
        suggestions.extend(suggest_store_routes(store_id, store_name, store_orders))

    suggestions.sort(key=lambda s: s.priority, reverse=True)
    return suggestions
