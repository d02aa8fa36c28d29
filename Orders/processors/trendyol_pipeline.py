from __future__ import annotations

import asyncio
from typing import Optional

from sqlmodel import Session, select

from Account.processors.pipeline import (
    get_company_by_pk,
    get_sync_eligible_companies,
    touch_last_used_at,
)
from Core.utils.model_utils import get_engine, get_records, clean_record
from Core.utils.time_utils import utc_now
from Feedback.processors.pipeline import (
    Result,
    ValidationFailure,
    logger,
    map_error_to_message,
)
from Orders.api.trendyol_api import TrendyolApi
from Orders.constants.trendyol_constants import (
    ORDER_NORMALIZER,
    REFRESHABLE_ORDER_STATUSES,
    TRENDYOL_CREATED_STATUS,
    OrderStatus,
    map_trendyol_status,
)
from Orders.models.trendyol.trendyol_models import Order
from Orders.services.lines import extract_barcodes
from Stock.processors.pipeline import get_existing_barcodes
from settings import DB_NAME, ORDER_PAGE_SIZE


# -------------------------------------------------
# 🧹 Normalize
# -------------------------------------------------
def normalize_order_data(trendyol_order: dict, api_account_id: int) -> dict:
    """
    Trendyol shipment package kaydını Order satırına çevirir.
    Paket seviyesindeki tutarlar (packageGrossAmount / packageTotalPrice)
    varsa sipariş seviyesindekilere tercih edilir.
    """
    remote_status = trendyol_order.get("shipmentPackageStatus") or trendyol_order.get("status")

    record = {
        "api_account_id": api_account_id,
        "orderNumber": trendyol_order.get("orderNumber"),
        "shipmentPackageId": trendyol_order.get("shipmentPackageId") or trendyol_order.get("id"),
        "trendyolCustomerId": trendyol_order.get("customerId"),
        "supplierId": trendyol_order.get("supplierId"),
        "trendyolStatus": remote_status,
        "status": map_trendyol_status(remote_status),
        "customerFirstName": trendyol_order.get("customerFirstName"),
        "customerLastName": trendyol_order.get("customerLastName"),
        "customerEmail": trendyol_order.get("customerEmail"),
        "orderDate": trendyol_order.get("orderDate"),
        "grossAmount": trendyol_order.get("packageGrossAmount") or trendyol_order.get("grossAmount"),
        "totalPrice": trendyol_order.get("packageTotalPrice") or trendyol_order.get("totalPrice"),
        "currencyCode": trendyol_order.get("currencyCode"),
        "cargoTrackingNumber": trendyol_order.get("cargoTrackingNumber"),
        "cargoProviderName": trendyol_order.get("cargoProviderName"),
        "cargoTrackingLink": trendyol_order.get("cargoTrackingLink"),
        "shipmentAddress": trendyol_order.get("shipmentAddress"),
        "invoiceAddress": trendyol_order.get("invoiceAddress"),
        "lines": trendyol_order.get("lines") or [],
        "packageHistories": trendyol_order.get("packageHistories") or [],
        "commercial": trendyol_order.get("commercial"),
        "micro": trendyol_order.get("micro"),
        "deliveryAddressType": trendyol_order.get("deliveryAddressType"),
        "lastModifiedDate": trendyol_order.get("lastModifiedDate"),
        "agreedDeliveryDate": trendyol_order.get("agreedDeliveryDate") or None,
    }

    if record["cargoTrackingNumber"] is not None:
        record["cargoTrackingNumber"] = str(record["cargoTrackingNumber"])

    cleaned = clean_record(Order, record, normalizer=ORDER_NORMALIZER)
    # normalizer str alanları strip'lerken enum'u düz str'e çeviriyor
    cleaned["status"] = map_trendyol_status(remote_status)
    return cleaned


# -------------------------------------------------
# 💾 Upsert (shipmentPackageId anahtarlı)
# -------------------------------------------------
def upsert_order(session: Session, order_data: dict) -> bool:
    """
    Siparişi shipmentPackageId ile bulur; varsa günceller, yoksa ekler.
    Dönen değer: True → yeni kayıt, False → güncelleme.

    Rota tarafından sahiplenilmiş (COLLECTING / PACKED) siparişlerin
    statüsü ezilmez; diğer tüm pazaryeri alanları güncellenir.
    """
    package_id = order_data["shipmentPackageId"]
    existing = session.exec(
        select(Order).where(Order.shipmentPackageId == package_id)
    ).first()

    if existing is None:
        session.add(Order(**order_data))
        return True

    for key, value in order_data.items():
        if key == "status" and existing.is_claimed:
            continue
        setattr(existing, key, value)

    existing.version = (existing.version or 0) + 1
    existing.updated_at = utc_now()
    session.add(existing)
    return False


def ingest_order(trendyol_order: dict, api_account_id: int, db_name: str = DB_NAME) -> Result:
    """
    Tek paketi içeri alır.

    Result.data["outcome"]:
        - "skipped" → en az bir barkod yerelde yok, hiçbir şey yazılmadı
                      (data["missingBarcodes"] eksik barkodları taşır)
        - "saved"   → yeni kayıt
        - "updated" → mevcut kayıt güncellendi
    """
    try:
        barcodes = extract_barcodes(trendyol_order.get("lines"))

        if barcodes:
            gate = get_existing_barcodes(barcodes, db_name=db_name)
            if not gate.success:
                return gate

            existing = gate.data.get("barcodes", set())
            missing = [b for b in barcodes if b not in existing]
            if missing:
                return Result.ok(
                    f"{trendyol_order.get('orderNumber')} atlandı, eksik barkod: {', '.join(missing)}",
                    close_dialog=False,
                    data={"outcome": "skipped", "missingBarcodes": missing},
                )

        order_data = normalize_order_data(trendyol_order, api_account_id)
        if not order_data.get("shipmentPackageId"):
            raise ValidationFailure(f"{trendyol_order.get('orderNumber')} için shipmentPackageId yok.")

        engine = get_engine(db_name)
        with Session(engine) as session:
            created = upsert_order(session, order_data)
            session.commit()

        return Result.ok(
            f"{order_data.get('orderNumber')} {'kaydedildi' if created else 'güncellendi'}.",
            close_dialog=False,
            data={"outcome": "saved" if created else "updated"},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


# -------------------------------------------------
# 🔄 Mağaza senkronu
# -------------------------------------------------
def _build_api(store, transport=None) -> TrendyolApi:
    return TrendyolApi(
        store.api_key,
        store.api_secret,
        store.account_id,
        proxy_url=store.proxy_url,
        transport=transport,
    )


def _resolve_sync_store(store_pk: int, db_name: str):
    res = get_company_by_pk(store_pk, db_name=db_name)
    if not res.success:
        return None, res

    store = res.data["record"]
    if not store.has_credentials:
        failure = ValidationFailure(
            f"{store.comp_name} için sellerId / API Key / API Secret eksik."
        )
        return None, Result.fail(failure.message, error=failure, close_dialog=False)

    return store, None


async def sync_store(
    store_pk: int,
    db_name: str = DB_NAME,
    transport=None,
    page_size: int = ORDER_PAGE_SIZE,
) -> Result:
    """
    Bir mağazanın "Created" paketlerini sayfa sayfa çekip kaydeder.

    - Sayfa çekilemezse hata sayılır ve bu mağaza için sayfalama DURUR.
    - Tek sipariş hatası sayfayı durdurmaz.

    Result.data = {saved, updated, skipped, errors, skippedOrders}
    """
    try:
        store, failed = _resolve_sync_store(store_pk, db_name)
        if failed is not None:
            return failed

        api = _build_api(store, transport=transport)

        page = 0
        total_pages = 1
        saved = updated = skipped = errors = 0
        skipped_orders: list[dict] = []

        while page < total_pages:
            res = await api.find_orders(status=TRENDYOL_CREATED_STATUS, page=page, size=page_size)
            if not res.success:
                errors += 1
                logger.error(f"[sync_store] {store.comp_name} sayfa {page} çekilemedi: {res.message}")
                break

            total_pages = res.data.get("totalPages", 0)

            for trendyol_order in res.data.get("content", []):
                # SQLite yazımı bloklayıcı, event loop'u tutmasın
                outcome = await asyncio.to_thread(ingest_order, trendyol_order, store.pk, db_name)
                if not outcome.success:
                    errors += 1
                    logger.error(
                        f"[sync_store] {trendyol_order.get('orderNumber')} kaydedilemedi: {outcome.message}"
                    )
                    continue

                kind = outcome.data.get("outcome")
                if kind == "skipped":
                    skipped += 1
                    skipped_orders.append({
                        "orderNumber": trendyol_order.get("orderNumber"),
                        "shipmentPackageId": trendyol_order.get("shipmentPackageId"),
                        "missingBarcodes": outcome.data.get("missingBarcodes", []),
                    })
                elif kind == "saved":
                    saved += 1
                else:
                    updated += 1

            page += 1

        touch_last_used_at(store.pk, db_name=db_name)

        return Result.ok(
            f"{store.comp_name}: {saved} yeni, {updated} güncellendi, "
            f"{skipped} atlandı, {errors} hata.",
            close_dialog=False,
            data={
                "saved": saved,
                "updated": updated,
                "skipped": skipped,
                "errors": errors,
                "skippedOrders": skipped_orders,
            },
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


async def sync_all_stores(db_name: str = DB_NAME, transport=None) -> Result:
    """
    Uygun tüm mağazalarda sync_store çalıştırır, sırayla.
    Bir mağazanın hatası sadece kendi sonucuna yazılır, diğerlerini durdurmaz.

    Result.data = {totalStores, results: [...]}
    """
    try:
        res = get_sync_eligible_companies(db_name=db_name)
        if not res.success:
            return res

        stores = res.data.get("records", [])
        results = []

        for store in stores:
            store_res = await sync_store(store.pk, db_name=db_name, transport=transport)
            entry = {"storeId": store.pk, "storeName": store.comp_name}

            if store_res.success:
                entry.update(store_res.data)
            else:
                entry.update({
                    "saved": 0,
                    "updated": 0,
                    "skipped": 0,
                    "errors": 1,
                    "skippedOrders": [],
                    "error": store_res.message,
                })

            results.append(entry)

        return Result.ok(
            f"{len(stores)} mağaza senkronlandı.",
            close_dialog=False,
            data={"totalStores": len(stores), "results": results},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


# -------------------------------------------------
# 🔁 Mevcut siparişleri tek tek tazele
# -------------------------------------------------
async def sync_existing_orders(
    store_pk: int,
    status=None,
    db_name: str = DB_NAME,
    transport=None,
) -> Result:
    """
    Mağazanın yereldeki siparişlerini paket id ile tek tek Trendyol'dan
    tazeler. status tek bir panel statüsü ya da statü listesi olabilir.

    Result.data = {total, updated, notFound, skipped, errors}
    """
    try:
        store, failed = _resolve_sync_store(store_pk, db_name)
        if failed is not None:
            return failed

        filters = {"api_account_id": store.pk}
        if isinstance(status, (list, tuple, set, frozenset)):
            filters["status"] = [OrderStatus(s) for s in status]
        elif status is not None:
            filters["status"] = OrderStatus(status)

        res_orders = get_records(model=Order, db_name=db_name, filters=filters)
        if not res_orders.success:
            return res_orders

        local_orders = res_orders.data.get("records", [])
        api = _build_api(store, transport=transport)

        updated = not_found = skipped = errors = 0

        for order in local_orders:
            res = await api.get_order_by_package_id(order.shipmentPackageId)
            if not res.success:
                errors += 1
                continue

            trendyol_order = res.data.get("order")
            if not trendyol_order:
                not_found += 1
                logger.warning(f"{order.orderNumber} (paket {order.shipmentPackageId}) Trendyol'da yok")
                continue

            outcome = await asyncio.to_thread(ingest_order, trendyol_order, store.pk, db_name)
            if not outcome.success:
                errors += 1
            elif outcome.data.get("outcome") == "skipped":
                skipped += 1
            else:
                updated += 1

        return Result.ok(
            f"{store.comp_name}: {updated}/{len(local_orders)} sipariş tazelendi.",
            close_dialog=False,
            data={
                "total": len(local_orders),
                "updated": updated,
                "notFound": not_found,
                "skipped": skipped,
                "errors": errors,
            },
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


async def sync_all_existing_orders(
    db_name: str = DB_NAME,
    transport=None,
    status=REFRESHABLE_ORDER_STATUSES,
) -> Result:
    """
    Uygun tüm mağazalarda teslim edilmemiş siparişleri tazeler, sırayla.
    Remote'ta "Created" durumundan çıkan (kargolanan, iptal edilen) paketler
    yerelde de güncellenir. Mağaza hatası diğerlerini durdurmaz.

    Result.data = {totalStores, results: [...]}
    """
    try:
        res = get_sync_eligible_companies(db_name=db_name)
        if not res.success:
            return res

        stores = res.data.get("records", [])
        results = []

        for store in stores:
            store_res = await sync_existing_orders(
                store.pk, status=status, db_name=db_name, transport=transport
            )
            entry = {"storeId": store.pk, "storeName": store.comp_name}

            if store_res.success:
                entry.update(store_res.data)
            else:
                entry.update({
                    "total": 0,
                    "updated": 0,
                    "notFound": 0,
                    "skipped": 0,
                    "errors": 1,
                    "error": store_res.message,
                })

            results.append(entry)

        totals = {
            key: sum(r[key] for r in results)
            for key in ("updated", "skipped", "notFound", "errors")
        }
        logger.info(
            f"[sync_all_existing_orders] {len(stores)} mağaza: {totals['updated']} güncellendi, "
            f"{totals['skipped']} atlandı, {totals['notFound']} bulunamadı, {totals['errors']} hata"
        )

        return Result.ok(
            f"{len(stores)} mağazada siparişler tazelendi.",
            close_dialog=False,
            data={"totalStores": len(stores), "results": results},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)
