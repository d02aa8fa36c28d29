# Routes/processors/pipeline.py
from __future__ import annotations

import math
from typing import Iterable, Optional

from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from Account.processors.pipeline import get_company_names
from Core.utils.model_utils import get_engine, get_records
from Core.utils.time_utils import utc_now
from Feedback.processors.pipeline import (
    NotFound,
    Result,
    StateConflict,
    ValidationFailure,
    logger,
    map_error_to_message,
)
from Labels.processors.pipeline import build_route_label_payload
from Orders.constants.trendyol_constants import CLAIMED_ORDER_STATUSES, OrderStatus
from Orders.models.trendyol.trendyol_models import Order
from Orders.services.custom_queries import parse_product_ids, unclaimed_orders_stmt
from Routes.constants.constants import RouteStatus, SuggestionKind
from Routes.models import Route, RouteOrder
from Routes.processors.suggestion_engine import suggest_routes
from settings import DB_NAME


# -------------------------------------------------
# 🧩 Yardımcılar
# -------------------------------------------------
def _touch_order(order: Order, status: OrderStatus) -> None:
    order.status = status
    order.version = (order.version or 0) + 1
    order.updated_at = utc_now()


def _load_route(session: Session, route_pk: int) -> Route:
    route = session.exec(
        select(Route)
        .where(Route.pk == route_pk)
        .options(selectinload(Route.orders))
    ).first()
    if route is None:
        raise NotFound(f"Rota bulunamadı (id={route_pk}).")
    return route


def _ensure_not_terminal(route: Route, action: str) -> None:
    if route.is_terminal:
        raise StateConflict(
            f"{route.status.value} durumundaki rota için {action} yapılamaz.",
            data={"routeStatus": route.status.value},
        )


def _parse_order_ids(order_ids) -> list[int]:
    if not order_ids:
        raise ValidationFailure("Rota için en az bir sipariş seçilmeli.")

    parsed: list[int] = []
    for raw in order_ids:
        try:
            pk = int(raw)
        except (TypeError, ValueError):
            raise ValidationFailure(f"Geçersiz sipariş id: {raw}")
        if pk not in parsed:
            parsed.append(pk)
    return parsed


def _parse_expected_versions(expected_versions) -> dict[int, int]:
    parsed: dict[int, int] = {}
    for raw_pk, raw_version in (expected_versions or {}).items():
        try:
            parsed[int(raw_pk)] = int(raw_version)
        except (TypeError, ValueError):
            raise ValidationFailure(f"Geçersiz sipariş versiyonu: {raw_pk}={raw_version}")
    return parsed


def _parse_route_statuses(statuses) -> list[RouteStatus]:
    if isinstance(statuses, (str, RouteStatus)):
        statuses = [statuses]

    parsed = []
    for raw in statuses or []:
        try:
            parsed.append(RouteStatus(str(getattr(raw, "value", raw)).strip().upper()))
        except ValueError:
            raise ValidationFailure(f"Geçersiz rota statüsü: {raw}")
    return parsed


# -------------------------------------------------
# ➕ Create
# -------------------------------------------------
def create_route(
    name: str,
    description: Optional[str],
    order_ids: Iterable,
    expected_versions: Optional[dict] = None,
    db_name: str = DB_NAME,
) -> Result:
    """
    Seçilen siparişlerle COLLECTING statüsünde rota açar.

    - Bir id bile çözülemezse istek tamamen reddedilir (ValidationFailure).
    - expected_versions ({order_pk: version}) verilirse, okunduktan sonra
      değişmiş tek bir sipariş bile tüm isteği reddeder (StateConflict).
    - COLLECTING / PACKED olmayan üyeler COLLECTING'e çekilir.
    """
    try:
        name = (name or "").strip()
        if not name:
            raise ValidationFailure("Rota adı boş olamaz.")

        ids = _parse_order_ids(order_ids)
        versions = _parse_expected_versions(expected_versions)

        engine = get_engine(db_name)
        with Session(engine) as session:
            orders = session.exec(select(Order).where(Order.pk.in_(ids))).all()
            by_pk = {o.pk: o for o in orders}

            missing = [pk for pk in ids if pk not in by_pk]
            if missing:
                raise ValidationFailure(
                    f"Bazı siparişler bulunamadı: {', '.join(map(str, missing))}",
                    data={"missingOrderIds": missing},
                )

            if versions:
                stale = [
                    pk for pk, version in versions.items()
                    if pk in by_pk and by_pk[pk].version != version
                ]
                if stale:
                    raise StateConflict(
                        f"Okunduktan sonra değişen siparişler var: {', '.join(map(str, stale))}",
                        data={"staleOrderIds": stale},
                    )

            route = Route(name=name, description=description, status=RouteStatus.COLLECTING)
            session.add(route)
            session.flush()

            for pk in ids:
                order = by_pk[pk]
                session.add(RouteOrder(route_id=route.pk, order_id=pk))
                if order.status not in CLAIMED_ORDER_STATUSES:
                    _touch_order(order, OrderStatus.COLLECTING)
                    session.add(order)

            session.commit()
            route_pk = route.pk

        logger.info(f"[create_route] Rota #{route_pk} '{name}' {len(ids)} siparişle açıldı")
        return get_route(route_pk, db_name=db_name)

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


# -------------------------------------------------
# 🏷️ Finalize (etiket bas)
# -------------------------------------------------
def finalize_route(
    route_pk: int,
    label_renderer=build_route_label_payload,
    db_name: str = DB_NAME,
) -> Result:
    """
    Rota etiketini üretir; başarılıysa rota COMPLETED olur, labelPrintedAt
    damgalanır ve tüm siparişler PACKED'e geçer. İdempotent değildir:
    COMPLETED rota için tekrar çağrılırsa StateConflict.
    """
    try:
        engine = get_engine(db_name)
        with Session(engine) as session:
            route = _load_route(session, route_pk)
            _ensure_not_terminal(route, "etiket basımı")

            orders = list(route.orders)
            label = label_renderer(route, orders)

            now = utc_now()
            route.status = RouteStatus.COMPLETED
            route.labelPrintedAt = now
            route.updated_at = now
            session.add(route)

            for order in orders:
                _touch_order(order, OrderStatus.PACKED)
                session.add(order)

            session.commit()

        logger.info(f"[finalize_route] Rota #{route_pk} tamamlandı, {len(orders)} sipariş PACKED")

        res = get_route(route_pk, db_name=db_name)
        if not res.success:
            return res

        return Result.ok(
            f"Rota #{route_pk} etiketi basıldı.",
            close_dialog=False,
            data={"label": label, "route": res.data["route"]},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


# -------------------------------------------------
# ✖️ Cancel
# -------------------------------------------------
def cancel_route(route_pk: int, db_name: str = DB_NAME) -> Result:
    """
    Rotayı CANCELLED yapar. Sadece COLLECTING durumundaki üyeler PENDING'e
    geri döner; diğer statüdeki siparişlere dokunulmaz. Rota satırı silinmez.
    """
    try:
        engine = get_engine(db_name)
        with Session(engine) as session:
            route = _load_route(session, route_pk)
            _ensure_not_terminal(route, "iptal")

            reverted = []
            for order in route.orders:
                if order.status == OrderStatus.COLLECTING:
                    _touch_order(order, OrderStatus.PENDING)
                    session.add(order)
                    reverted.append(order.pk)

            route.status = RouteStatus.CANCELLED
            route.updated_at = utc_now()
            session.add(route)
            session.commit()

        res = get_route(route_pk, db_name=db_name)
        if not res.success:
            return res

        return Result.ok(
            f"Rota #{route_pk} iptal edildi, {len(reverted)} sipariş PENDING'e döndü.",
            close_dialog=False,
            data={"route": res.data["route"], "revertedOrderIds": reverted},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


# -------------------------------------------------
# 📦 Read
# -------------------------------------------------
def get_route(route_pk: int, db_name: str = DB_NAME) -> Result:
    """
    Rotayı siparişleriyle birlikte döner. Session kapandıktan sonra da
    route.orders okunabilir (selectinload).
    """
    try:
        engine = get_engine(db_name)
        with Session(engine) as session:
            route = _load_route(session, route_pk)

        return Result.ok(
            f"Rota #{route_pk} getirildi.",
            close_dialog=False,
            data={"route": route},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


def list_routes(statuses=None, db_name: str = DB_NAME) -> Result:
    """
    Rotaları yeniden eskiye listeler; statuses verilirse statüsü kümede olanlar.
    """
    try:
        wanted = _parse_route_statuses(statuses)

        stmt = select(Route).options(selectinload(Route.orders))
        if wanted:
            stmt = stmt.where(Route.status.in_(wanted))
        stmt = stmt.order_by(Route.created_at.desc(), Route.pk.desc())

        res = get_records(db_name=db_name, custom_stmt=stmt)
        if not res.success:
            return res

        routes = res.data.get("records", [])
        return Result.ok(
            f"{len(routes)} rota bulundu.",
            close_dialog=False,
            data={"routes": routes},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


# -------------------------------------------------
# 💡 Öneriler
# -------------------------------------------------
def get_route_suggestions(
    store_pk: Optional[int] = None,
    kinds=None,
    barcodes=None,
    page: int = 1,
    limit: int = 10,
    db_name: str = DB_NAME,
) -> Result:
    """
    Rotaya alınmamış siparişlerden öneri üretir, tür / barkod filtresi
    uygular ve sayfalar.

    Result.data = {"suggestions": [RouteSuggestion, ...],
                   "meta": {page, limit, total, totalPages}}
    """
    try:
        try:
            page, limit = int(page), int(limit)
        except (TypeError, ValueError):
            raise ValidationFailure("page / limit tam sayı olmalı.")
        if page < 1 or limit < 1:
            raise ValidationFailure("page ve limit en az 1 olmalı.")

        if isinstance(kinds, (str, SuggestionKind)):
            kinds = [kinds]
        try:
            wanted_kinds = {SuggestionKind(getattr(k, "value", k)) for k in kinds or []}
        except ValueError:
            raise ValidationFailure(f"Geçersiz öneri türü: {kinds}")

        wanted_barcodes = parse_product_ids(barcodes)

        res = get_records(db_name=db_name, custom_stmt=unclaimed_orders_stmt(store_pk=store_pk))
        if not res.success:
            return res

        orders = res.data.get("records", [])
        store_names = get_company_names({o.api_account_id for o in orders}, db_name=db_name)
        suggestions = suggest_routes(orders, store_names=store_names)

        if wanted_kinds:
            suggestions = [s for s in suggestions if s.kind in wanted_kinds]
        if wanted_barcodes:
            suggestions = [
                s for s in suggestions
                if any(p.barcode in wanted_barcodes for p in s.products)
            ]

        total = len(suggestions)
        start = (page - 1) * limit

        return Result.ok(
            f"{total} rota önerisi üretildi.",
            close_dialog=False,
            data={
                "suggestions": suggestions[start:start + limit],
                "meta": {
                    "page": page,
                    "limit": limit,
                    "total": total,
                    "totalPages": math.ceil(total / limit),
                },
            },
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)
