# main.py
from __future__ import annotations

import asyncio
import sys

from Core.utils.model_utils import bootstrap_db
from Feedback.processors.pipeline import logger
from settings import DB_NAME

# Modeller metadata'ya dahil olsun diye import (create_all için şart)
from Account.models import ApiAccount  # noqa: F401
from Stock.models import Product  # noqa: F401
from Orders.models.trendyol.trendyol_models import Order  # noqa: F401
from Routes.models import Route, RouteOrder  # noqa: F401


def _bootstrap_db() -> None:
    """
    DB tablolarını hazırlar. Her modda ilk iş bu.
    """
    bootstrap_db(DB_NAME)


def _print_result(res) -> int:
    print(res.message)
    return 0 if res.success else 1


def _run_sync_all() -> int:
    from Orders.tasks.sync_tasks import run_manual_sync

    return _print_result(asyncio.run(run_manual_sync()))


def _run_sync_store(store_pk: int) -> int:
    from Orders.tasks.sync_tasks import run_manual_sync

    return _print_result(asyncio.run(run_manual_sync(store_pk=store_pk)))


def _run_refresh_existing() -> int:
    from Orders.tasks.sync_tasks import run_manual_refresh

    return _print_result(asyncio.run(run_manual_refresh()))


def _run_scheduler() -> int:
    """
    Zamanlayıcıyı başlatır ve Ctrl+C gelene kadar event loop'u açık tutar.
    """
    from Orders.tasks.sync_tasks import build_scheduler

    async def _serve():
        scheduler = build_scheduler()
        scheduler.start()
        logger.info("Zamanlayıcı başladı")
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.shutdown(wait=False)

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        logger.info("Zamanlayıcı durduruldu")
    return 0


def _cli_router(argv: list[str]) -> int | None:
    """
    Tanınan bir bayrak varsa çalıştırıp çıkış kodunu döner, yoksa None.
    """
    if "--sync-all" in argv:
        return _run_sync_all()

    if "--sync-store" in argv:
        idx = argv.index("--sync-store")
        try:
            store_pk = int(argv[idx + 1])
        except (IndexError, ValueError):
            print("Kullanım: --sync-store <mağaza id>")
            return 2
        return _run_sync_store(store_pk)

    if "--refresh-existing" in argv:
        return _run_refresh_existing()

    if "--scheduler" in argv:
        return _run_scheduler()

    return None


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    _bootstrap_db()

    code = _cli_router(argv)
    if code is not None:
        return code

    print("Kullanım: main.py [--sync-all | --sync-store <id> | --refresh-existing | --scheduler]")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
