# Core/utils/model_utils.py
from __future__ import annotations

import os
from pathlib import Path
from typing import (
    Type, Iterable, Callable, Optional, Any, Dict, Tuple
)

from sqlmodel import SQLModel, Session, select
from sqlmodel import create_engine

from sqlalchemy import Engine, event, text
from sqlalchemy.pool import NullPool
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from settings import DB_NAME, DEFAULT_DATABASE_DIR
from Feedback.processors.pipeline import Result, map_error_to_message


# ============================================================
# 🔌 ENGINE (process başına tek engine)
# ============================================================

_ENGINE_CACHE: Dict[str, Tuple[int, Engine]] = {}

_SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=DELETE;",
    "PRAGMA temp_store=MEMORY;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
    "PRAGMA busy_timeout=10000;",
)


def get_engine(db_name: str = DB_NAME) -> Engine:
    """
    db_name için engine döner; aynı process içinde önbellekten.
    Fork edilmiş process eski engine'i kullanmaz (pid kontrolü).
    """
    pid = os.getpid()

    cached = _ENGINE_CACHE.get(db_name)
    if cached is not None and cached[0] == pid:
        return cached[1]

    db_dir = Path(DEFAULT_DATABASE_DIR).resolve()
    db_dir.mkdir(parents=True, exist_ok=True)
    db_url = f"sqlite:///{(db_dir / db_name).resolve().as_posix()}"

    engine = create_engine(
        db_url,
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
        poolclass=NullPool,
        pool_pre_ping=True,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _):
        cur = dbapi_connection.cursor()
        for pragma in _SQLITE_PRAGMAS:
            cur.execute(pragma)
        cur.close()

    # bağlantı testi
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))

    _ENGINE_CACHE[db_name] = (pid, engine)
    return engine


def bootstrap_db(db_name: str = DB_NAME) -> Engine:
    """
    Tüm tabloları hazırlar. Modellerin import edilmiş olması şart
    (SQLModel.metadata ancak import edilen tabloları bilir).
    """
    engine = get_engine(db_name)
    SQLModel.metadata.create_all(engine)
    return engine


# ============================================================
# 🧩 HELPERS
# ============================================================

def batch_iter(seq: Iterable[Any], size: int = 500) -> Iterable[list[Any]]:
    buf: list[Any] = []
    for item in seq:
        buf.append(item)
        if len(buf) == size:
            yield buf
            buf = []
    if buf:
        yield buf


def get_model_columns(model: Type[SQLModel]) -> set[str]:
    return {c.name for c in model.__table__.c}


def apply_filters(stmt, model: Type[SQLModel], filters: Optional[dict]):
    """
    {kolon: değer} → WHERE. Liste / küme / tuple değerler IN olur.
    """
    for key, value in (filters or {}).items():
        column = getattr(model, key)
        if isinstance(value, (list, tuple, set, frozenset)):
            stmt = stmt.where(column.in_(list(value)))
        else:
            stmt = stmt.where(column == value)
    return stmt


# ============================================================
# 🧼 NORMALIZER
# ============================================================

def make_normalizer(
    *,
    coalesce_none: Optional[dict[str, Any]] = None,
    strip_strings: bool = True,
) -> Callable[[dict], dict]:
    """
    Ham kayıt için temizleyici üretir:
    string'leri kırpar, boş / None alanlara varsayılan basar.
    """

    def _norm(rec: dict) -> dict:
        r = dict(rec)

        if strip_strings:
            r = {k: v.strip() if isinstance(v, str) else v for k, v in r.items()}

        for k, fallback in (coalesce_none or {}).items():
            if r.get(k) in (None, ""):
                r[k] = fallback

        return r

    return _norm


def clean_record(
    model: Type[SQLModel],
    record: dict,
    *,
    normalizer: Optional[Callable[[dict], dict]] = None,
) -> dict:
    """
    Ham API kaydını modele yazılabilir hale getirir:
    normalize → modelde olmayan kolonları at.
    """
    r = normalizer(record) if normalizer else dict(record)
    cols = get_model_columns(model)
    return {k: v for k, v in r.items() if k in cols}


# ============================================================
# ➕ CREATE
# ============================================================

def create_records(
    model: Type[SQLModel],
    data_list: list[dict],
    db_name: str = DB_NAME,
    *,
    conflict_keys: Optional[list[str]] = None,
    mode: str = "ignore",  # ignore | plain
    normalizer: Optional[Callable[[dict], dict]] = None,
    chunk_size: int = 500,
) -> Result:
    """
    plain  → ORM ile ekler, data["pks"] yeni kayıtların pk'ları
    ignore → conflict_keys çakışan satırları sessizce atlar (SQLite ON CONFLICT DO NOTHING)
    """
    try:
        if mode not in ("ignore", "plain"):
            return Result.fail(f"Geçersiz mode='{mode}'", close_dialog=False)

        cleaned = [r for r in (clean_record(model, d, normalizer=normalizer) for d in data_list or []) if r]
        attempted = len(cleaned)
        if attempted == 0:
            return Result.ok(
                f"{model.__name__}: işlenecek kayıt yok.",
                close_dialog=False,
                data={"attempted": 0, "inserted": 0, "pks": []},
            )

        with Session(get_engine(db_name)) as session:
            if mode == "plain" or not conflict_keys:
                rows = [model(**r) for r in cleaned]
                session.add_all(rows)
                session.commit()
                pks = [row.pk for row in rows]
                inserted = attempted
            else:
                inserted = 0
                for chunk in batch_iter(cleaned, chunk_size):
                    stmt = (
                        sqlite_insert(model.__table__)
                        .values(chunk)
                        .on_conflict_do_nothing(index_elements=conflict_keys)
                    )
                    inserted += session.execute(stmt).rowcount or 0
                session.commit()
                pks = []

        return Result.ok(
            f"{model.__name__}: {inserted}/{attempted} kayıt eklendi.",
            close_dialog=False,
            data={"attempted": attempted, "inserted": inserted, "pks": pks},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


# ============================================================
# 📥 READ
# ============================================================

def get_records(
    model: Type[SQLModel] = None,
    db_engine: Engine = None,
    db_name: str = DB_NAME,
    filters: Optional[dict] = None,
    custom_stmt: Optional[Any] = None,
) -> Result:
    """
    custom_stmt verilirse olduğu gibi çalıştırılır (model / filters yok sayılır).
    Dönen kayıtlar session dışına çıkar; ilişkiler önceden yüklenmiş olmalı.
    """
    try:
        if custom_stmt is None:
            if model is None:
                return Result.fail("Model belirtilmedi.", close_dialog=False)
            custom_stmt = apply_filters(select(model), model, filters)

        with Session(db_engine or get_engine(db_name)) as session:
            records = session.exec(custom_stmt).all()

        return Result.ok(
            f"{len(records)} kayıt çekildi.",
            close_dialog=False,
            data={"records": records},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)


# ============================================================
# ✏️ UPDATE
# ============================================================

def update_records(
    model: Type[SQLModel],
    filters: dict,
    update_data: dict,
    db_name: str = DB_NAME,
    db_engine: Engine = None,
) -> Result:

    try:
        with Session(db_engine or get_engine(db_name)) as session:
            rows = session.exec(apply_filters(select(model), model, filters)).all()
            for row in rows:
                for k, v in update_data.items():
                    setattr(row, k, v)
                session.add(row)

            session.commit()

        return Result.ok(
            f"{len(rows)} kayıt güncellendi.",
            close_dialog=False,
            data={"affected": len(rows)},
        )

    except Exception as e:
        return Result.fail(map_error_to_message(e), error=e, close_dialog=False)
