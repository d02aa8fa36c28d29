from __future__ import annotations

from typing import Iterable

from sqlmodel import select

from Core.utils.model_utils import get_records
from Feedback.processors.pipeline import Result, map_error_to_message
from Stock.models import Product
from settings import DB_NAME


def get_existing_barcodes(barcodes: Iterable[str], db_name: str = DB_NAME) -> Result:
    """
    Verilen barkodlardan yerelde ürün kartı olanları döner.

    Result.data = {"barcodes": set[str]}
    Boş girdi için DB'ye gitmeden boş küme döner.
    """
    try:
        wanted = {str(b).strip() for b in barcodes or [] if b and str(b).strip()}
        if not wanted:
            return Result.ok("Kontrol edilecek barkod yok.", close_dialog=False, data={"barcodes": set()})

        stmt = select(Product.barcode).where(Product.barcode.in_(wanted))
        res = get_records(db_name=db_name, custom_stmt=stmt)
        if not res.success:
            return res

        existing = set(res.data.get("records", []))
        return Result.ok(
            f"{len(existing)}/{len(wanted)} barkod yerelde mevcut.",
            close_dialog=False,
            data={"barcodes": existing},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)
