# Labels/processors/pipeline.py
from __future__ import annotations

import math
from typing import Any, Dict, List, Protocol

from Orders.services.lines import iter_product_lines, line_product_name, line_quantity

# Tanex 2736 düzeni: 24 etiket/sayfa, etiket başına 4 ürün satırı
LABELS_PER_PAGE = 24
MAX_ITEMS_PER_LABEL = 4


class LabelRenderer(Protocol):
    """
    Rota etiketini üreten dış bileşen (ZPL, docx, ...).
    Hata fırlatırsa rota ve siparişler değişmeden kalır.
    """

    def __call__(self, route, orders: list) -> Any: ...


def _order_to_labels(order, max_items_per_label: int) -> List[Dict[str, Any]]:
    """
    Bir siparişi bir ya da daha fazla etikete böler.
    Aynı siparişin etiketleri her zaman arka arkaya kalır.
    """
    address = order.shipmentAddress or {}
    items = [(line_product_name(line), line_quantity(line)) for line in iter_product_lines(order.lines)]
    chunks = [items[i:i + max_items_per_label] for i in range(0, len(items), max_items_per_label)] or [[]]

    labels = []
    for chunk in chunks:
        label = {
            "orderNumber": order.orderNumber,
            "name": order.customerFirstName or "",
            "surname": order.customerLastName or "",
            "address": address.get("fullAddress") or "",
            "cargoTrackingNumber": order.cargoTrackingNumber or "",
            "cargoProviderName": order.cargoProviderName or "",
        }
        for i, (prod, qty) in enumerate(chunk, start=1):
            label[f"prod{i}"] = prod
            label[f"qty{i}"] = qty
        labels.append(label)
    return labels


def build_route_label_payload(
        route,
        orders: list,
        labels_per_page: int = LABELS_PER_PAGE,
        max_items_per_label: int = MAX_ITEMS_PER_LABEL,
) -> dict:
    """
    Varsayılan etiket bileşeni: rotanın siparişlerinden sayfalara bölünmüş
    etiket payload'ı üretir. Şablona basma işi bu payload'ı alan tarafa aittir.
    """
    all_labels: List[Dict[str, Any]] = []
    for order in orders:
        all_labels.extend(_order_to_labels(order, max_items_per_label))

    page_count = math.ceil(len(all_labels) / labels_per_page) if all_labels else 0
    pages = [
        all_labels[i * labels_per_page:(i + 1) * labels_per_page]
        for i in range(page_count)
    ]

    return {
        "routeId": route.pk,
        "routeName": route.name,
        "labels_per_page": labels_per_page,
        "max_items_per_label": max_items_per_label,
        "pages": pages,
    }
