# tests/conftest.py
from __future__ import annotations

import itertools
import json

import httpx
import pytest
from sqlmodel import Session

import Core.utils.model_utils as model_utils
from Core.utils.model_utils import bootstrap_db, create_records, get_engine

# create_all için tüm tablolar metadata'da olmalı
from Account.models import ApiAccount
from Stock.models import Product
from Orders.constants.trendyol_constants import OrderStatus
from Orders.models.trendyol.trendyol_models import Order
from Routes.models import Route, RouteOrder  # noqa: F401

TEST_DB = "test_orders.db"


# =========================================
# Her test için ayrı, geçici SQLite dosyası
# =========================================
@pytest.fixture
def db_name(tmp_path, monkeypatch) -> str:
    monkeypatch.setattr(model_utils, "DEFAULT_DATABASE_DIR", tmp_path)
    model_utils._ENGINE_CACHE.clear()
    bootstrap_db(TEST_DB)
    yield TEST_DB
    model_utils._ENGINE_CACHE.clear()


# =========================================
# Seed yardımcıları
# =========================================
def line(barcode: str, quantity: int = 1, name: str = None) -> dict:
    return {"barcode": barcode, "quantity": quantity, "productName": name or f"Ürün {barcode}"}


def trendyol_package(package_id: int, lines: list, status: str = "Created", order_number: str = None) -> dict:
    return {
        "id": package_id,
        "shipmentPackageId": package_id,
        "orderNumber": order_number or f"TY-{package_id}",
        "shipmentPackageStatus": status,
        "customerFirstName": "Ayşe",
        "customerLastName": "Yılmaz",
        "orderDate": 1_700_000_000_000 + package_id,
        "packageGrossAmount": 150.0,
        "packageTotalPrice": 120.0,
        "currencyCode": "TRY",
        "cargoTrackingNumber": 7300000000 + package_id,
        "cargoProviderName": "Trendyol Express",
        "shipmentAddress": {"fullAddress": "Kadıköy / İstanbul"},
        "lines": lines,
    }


@pytest.fixture
def make_store(db_name):
    counter = itertools.count(1)

    def _make(comp_name: str = None, **overrides) -> ApiAccount:
        n = next(counter)
        values = {
            "account_id": str(1000 + n),
            "comp_name": comp_name or f"Mağaza {n}",
            "api_key": "key",
            "api_secret": "secret",
        }
        values.update(overrides)
        res = create_records(ApiAccount, [values], db_name, mode="plain")
        assert res.success, res.message
        with Session(get_engine(db_name)) as session:
            return session.get(ApiAccount, res.data["pks"][0])

    return _make


@pytest.fixture
def make_products(db_name):
    def _make(*barcodes: str) -> None:
        res = create_records(
            Product,
            [{"barcode": b, "name": f"Ürün {b}"} for b in barcodes],
            db_name,
            conflict_keys=["barcode"],
            mode="ignore",
        )
        assert res.success, res.message

    return _make


@pytest.fixture
def make_order(db_name):
    counter = itertools.count(1)

    def _make(store_pk: int, lines: list, status: OrderStatus = OrderStatus.PENDING, **overrides) -> Order:
        n = next(counter)
        values = {
            "shipmentPackageId": 5_000_000 + n,
            "orderNumber": f"ORD-{n}",
            "api_account_id": store_pk,
            "status": status,
            "trendyolStatus": "Created",
            "orderDate": 1_700_000_000_000 + n,
            "lines": lines,
        }
        values.update(overrides)
        res = create_records(Order, [values], db_name, mode="plain")
        assert res.success, res.message
        return load_order(db_name, res.data["pks"][0])

    return _make


def load_order(db_name: str, pk: int) -> Order:
    with Session(get_engine(db_name)) as session:
        return session.get(Order, pk)


# =========================================
# Trendyol API taklidi (httpx.MockTransport)
# =========================================
class FakeTrendyol:
    """
    Sayfa listesi ya da paket id → paket sözlüğüyle cevap verir,
    gelen tüm istekleri saklar.
    """

    def __init__(self, pages=None, packages=None, fail_pages=None, fail_status: int = 500):
        self.pages = pages or []
        self.packages = packages or {}
        self.fail_pages = set(fail_pages or [])
        self.fail_status = fail_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params

        if "shipmentPackageIds" in params:
            package = self.packages.get(int(params["shipmentPackageIds"]))
            content = [package] if package else []
            return httpx.Response(200, json={"content": content, "page": 0, "totalPages": 1,
                                             "totalElements": len(content)})

        page = int(params.get("page", 0))
        if page in self.fail_pages:
            return httpx.Response(self.fail_status, json={"errors": ["boom"]})

        content = self.pages[page] if page < len(self.pages) else []
        return httpx.Response(200, content=json.dumps({
            "content": content,
            "page": page,
            "totalPages": len(self.pages),
            "totalElements": sum(len(p) for p in self.pages),
        }).encode("utf-8"), headers={"Content-Type": "application/json"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)
