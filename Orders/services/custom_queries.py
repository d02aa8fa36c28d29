# Orders/services/custom_queries.py
from __future__ import annotations

from typing import Iterable, Optional

from sqlmodel import select

from Core.utils.model_utils import get_records
from Feedback.processors.pipeline import Result, ValidationFailure, map_error_to_message
from Orders.constants.trendyol_constants import CLAIMED_ORDER_STATUSES, OrderStatus
from Orders.models.trendyol.trendyol_models import Order
from settings import DB_NAME


# -------------------------------------------------
# ✅ Rotaya alınabilir sipariş kuralı (tek kaynak)
# -------------------------------------------------
def is_route_eligible(order) -> bool:
    """
    Sipariş bir rota tarafından sahiplenilmemişse (COLLECTING / PACKED değilse)
    hem öneri motoruna hem manuel filtreye girer.
    """
    return getattr(order, "status", None) not in CLAIMED_ORDER_STATUSES


def unclaimed_orders_stmt(store_pk: Optional[int] = None, status: Optional[OrderStatus] = None):
    """
    is_route_eligible'ın SQL karşılığı. Sadece sorgu nesnesini üretir,
    çalıştırma işini get_records yapar.
    """
    stmt = select(Order).where(Order.status.not_in(list(CLAIMED_ORDER_STATUSES)))

    if store_pk is not None:
        stmt = stmt.where(Order.api_account_id == store_pk)
    if status is not None:
        stmt = stmt.where(Order.status == status)

    return stmt.order_by(Order.orderDate.desc(), Order.pk)


# -------------------------------------------------
# 🧪 Filtre değerlerini doğrula
# -------------------------------------------------
def parse_status(status) -> Optional[OrderStatus]:
    if status in (None, ""):
        return None
    try:
        return OrderStatus(str(getattr(status, "value", status)).strip().upper())
    except ValueError:
        raise ValidationFailure(f"Geçersiz sipariş statüsü: {status}")


def parse_quantities(quantities: Optional[Iterable]) -> set[int]:
    """
    "2", 2, 2.0 → 2. Tam sayı olmayan ya da pozitif olmayan değer ValidationFailure.
    Tek değer ("12" ya da 12) tek elemanlı liste gibi okunur.
    """
    if quantities is None or quantities == "":
        return set()
    if isinstance(quantities, (str, int, float)):
        quantities = [quantities]
    try:
        items = iter(quantities)
    except TypeError:
        raise ValidationFailure(f"Geçersiz adet filtresi: {quantities!r}")

    parsed: set[int] = set()
    for raw in items:
        try:
            as_float = float(str(raw).strip())
        except (TypeError, ValueError):
            raise ValidationFailure(f"Geçersiz adet değeri: {raw}")
        if not as_float.is_integer() or as_float <= 0:
            raise ValidationFailure(f"Adet pozitif tam sayı olmalı: {raw}")
        parsed.add(int(as_float))
    return parsed


def parse_product_ids(product_ids: Optional[Iterable]) -> set[str]:
    if isinstance(product_ids, str):
        product_ids = [product_ids]
    return {str(p).strip() for p in product_ids or [] if p is not None and str(p).strip()}


# -------------------------------------------------
# 🔎 Manuel sipariş filtresi
# -------------------------------------------------
def order_matches_filters(order, product_ids: set[str], quantities: set[int]) -> bool:
    """
    Filtreler birbirleriyle VE, kendi kümeleri içinde VEYA ile bağlanır.
    """
    if product_ids and not product_ids.intersection(order.barcodes):
        return False
    if quantities and order.total_quantity not in quantities:
        return False
    return True


def filter_orders(
    product_ids: Optional[Iterable[str]] = None,
    quantities: Optional[Iterable] = None,
    store_pk: Optional[int] = None,
    status=None,
    db_name: str = DB_NAME,
) -> Result:
    """
    Rotaya eklenebilecek siparişleri filtreler.

    - product_ids verilirse: en az bir satır barkodu kümede olmalı
    - quantities verilirse: siparişin TOPLAM adedi kümedeki değerlerden biri olmalı
    - store_pk / status verilirse: birebir eşitlik

    Result.data = {"orders": [Order, ...]}
    """
    try:
        wanted_products = parse_product_ids(product_ids)
        wanted_quantities = parse_quantities(quantities)
        wanted_status = parse_status(status)

        res = get_records(
            db_name=db_name,
            custom_stmt=unclaimed_orders_stmt(store_pk=store_pk, status=wanted_status),
        )
        if not res.success:
            return res

        orders = [
            o for o in res.data.get("records", [])
            if is_route_eligible(o) and order_matches_filters(o, wanted_products, wanted_quantities)
        ]

        return Result.ok(
            f"{len(orders)} sipariş filtreye uydu.",
            close_dialog=False,
            data={"orders": orders},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)
