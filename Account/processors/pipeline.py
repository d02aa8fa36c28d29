from __future__ import annotations

from Core.utils.time_utils import utc_now

from Account.models import ApiAccount
from Core.utils.model_utils import get_records, update_records
from Feedback.processors.pipeline import Result, NotFound, map_error_to_message
from settings import DB_NAME


# -------------------------------------------------
# 📦 Read
# -------------------------------------------------
def get_company_by_pk(pk: int, db_name: str = DB_NAME) -> Result:
    """
    Tek bir mağazayı pk ile getirir. Yoksa NotFound.
    """
    try:
        res = get_records(model=ApiAccount, db_name=db_name, filters={"pk": pk})
        if not res.success:
            return res

        records = res.data.get("records", [])
        if not records:
            raise NotFound(f"Mağaza bulunamadı (id={pk}).")

        return Result.ok(
            f"Mağaza bulundu: {records[0].comp_name}",
            close_dialog=False,
            data={"record": records[0]},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


def get_sync_eligible_companies(db_name: str = DB_NAME) -> Result:
    """
    Senkrona katılabilecek mağazaları getirir:
    sellerId + api key + api secret dolu ve is_active=True olanlar.
    Sıralama oluşturulma zamanına göre (eskiden yeniye).
    """
    try:
        res = get_records(model=ApiAccount, db_name=db_name)
        if not res.success:
            return res

        all_records = res.data.get("records", []) or []

        # ✅ sadece eksiksiz kimlikli aktifler
        records = sorted(
            (r for r in all_records if r.is_sync_eligible),
            key=lambda r: (r.created_at, r.pk),
        )

        return Result.ok(
            f"{len(records)} senkron edilebilir mağaza bulundu." if records else "Senkron edilebilir mağaza bulunmuyor.",
            close_dialog=False,
            data={"records": records},
        )
    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


def get_company_names(pks: set, db_name: str = DB_NAME) -> dict:
    """
    pk → mağaza adı sözlüğü. Okunamazsa boş döner (sadece görüntüleme amaçlı).
    """
    if not pks:
        return {}

    res = get_records(model=ApiAccount, db_name=db_name, filters={"pk": list(pks)})
    if not res.success:
        return {}

    return {r.pk: r.comp_name for r in res.data.get("records", [])}


# -------------------------------------------------
# ✏️ Update
# -------------------------------------------------
def touch_last_used_at(pk: int, db_name: str = DB_NAME) -> Result:
    """
    ApiAccount.last_used_at alanını şimdiki zamanla günceller.
    """
    return update_records(
        model=ApiAccount,
        filters={"pk": pk},
        update_data={"last_used_at": utc_now()},
        db_name=db_name,
    )
