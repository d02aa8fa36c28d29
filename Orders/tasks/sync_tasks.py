# Orders/tasks/sync_tasks.py
from __future__ import annotations

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from Core.threads.sync_lock import SyncLock, sync_lock
from Feedback.processors.pipeline import Result, logger, map_error_to_message
from Orders.processors.trendyol_pipeline import (
    sync_all_existing_orders,
    sync_all_stores,
    sync_store,
)
from settings import DB_NAME, REFRESH_CRON_MINUTE, SYNC_CRON_MINUTE


async def run_manual_sync(
    lock: SyncLock = sync_lock,
    store_pk: Optional[int] = None,
    db_name: str = DB_NAME,
    transport=None,
) -> Result:
    """
    Kullanıcının başlattığı senkron. Kilit tutulurken zamanlanmış senkron
    çalışmaz; kilit zaten tutuluyorsa istek StateConflict ile reddedilir.

    store_pk verilirse sadece o mağaza, yoksa tüm uygun mağazalar.
    """
    try:
        with lock.held():
            if store_pk is not None:
                return await sync_store(store_pk, db_name=db_name, transport=transport)
            return await sync_all_stores(db_name=db_name, transport=transport)

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


async def run_scheduled_sync(
    lock: SyncLock = sync_lock,
    db_name: str = DB_NAME,
    transport=None,
) -> Result:
    """
    Zamanlayıcının her tetiklemede çağırdığı iş.
    Manuel senkron sürüyorsa bu tur tamamen atlanır, kuyruğa alınmaz.
    """
    if lock.is_locked():
        logger.info("[scheduled_sync] Manuel senkron sürüyor, bu tur atlandı")
        return Result.ok(
            "Manuel senkron sürüyor, zamanlanmış senkron atlandı.",
            close_dialog=False,
            data={"skipped": True},
        )

    logger.info("[scheduled_sync] Zamanlanmış senkron başladı")
    res = await sync_all_stores(db_name=db_name, transport=transport)

    if res.success:
        logger.info(f"[scheduled_sync] {res.message}")
    else:
        logger.error(f"[scheduled_sync] Başarısız: {res.message}")

    return res


async def run_manual_refresh(
    lock: SyncLock = sync_lock,
    db_name: str = DB_NAME,
    transport=None,
) -> Result:
    """
    Teslim edilmemiş siparişleri elle tazeler; kilit kuralı run_manual_sync ile aynı.
    """
    try:
        with lock.held():
            return await sync_all_existing_orders(db_name=db_name, transport=transport)

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


async def run_scheduled_refresh(
    lock: SyncLock = sync_lock,
    db_name: str = DB_NAME,
    transport=None,
) -> Result:
    """
    Saatlik tazeleme işi. Manuel senkron sürüyorsa bu tur atlanır.
    """
    if lock.is_locked():
        logger.info("[scheduled_refresh] Manuel senkron sürüyor, bu tur atlandı")
        return Result.ok(
            "Manuel senkron sürüyor, zamanlanmış tazeleme atlandı.",
            close_dialog=False,
            data={"skipped": True},
        )

    logger.info("[scheduled_refresh] Teslim edilmemiş siparişlerin tazelenmesi başladı")
    res = await sync_all_existing_orders(db_name=db_name, transport=transport)

    if not res.success:
        logger.error(f"[scheduled_refresh] Başarısız: {res.message}")

    return res


def build_scheduler(
    lock: SyncLock = sync_lock,
    db_name: str = DB_NAME,
    minute: str = SYNC_CRON_MINUTE,
    refresh_minute: str = REFRESH_CRON_MINUTE,
) -> AsyncIOScheduler:
    """
    İki cron işi kurar: "Created" senkronu (varsayılan her dakika) ve
    teslim edilmemiş siparişlerin tazelenmesi (varsayılan saat başı).
    start() çağırmak çağıranın işi; çalışan bir event loop gerekir.
    """
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_scheduled_sync,
        "cron",
        minute=minute,
        kwargs={"lock": lock, "db_name": db_name},
        id="trendyol_order_sync",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(
        run_scheduled_refresh,
        "cron",
        minute=refresh_minute,
        kwargs={"lock": lock, "db_name": db_name},
        id="trendyol_order_refresh",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return scheduler
