# Routes/constants/constants.py
from __future__ import annotations

from enum import Enum


class RouteStatus(str, Enum):
    COLLECTING = "COLLECTING"
    # tanımlı ama hiçbir geçiş buraya götürmüyor
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_ROUTE_STATUSES = frozenset({RouteStatus.COMPLETED, RouteStatus.CANCELLED})


# -------------------------------------------------
# 💡 Rota önerisi türleri ve puanlama
# -------------------------------------------------
class SuggestionKind(str, Enum):
    SINGLE_PRODUCT = "single_product"
    MIXED = "mixed"
    ALL_SINGLES = "all_singles"


# tek ürünlü kova: orderCount * 10 + (10 - adet)
SINGLE_ORDER_WEIGHT = 10
SINGLE_QUANTITY_BASE = 10

# karışık kova: orderCount * 5
MIXED_ORDER_WEIGHT = 5

# mağazadaki tüm tekli siparişler (en az 2 tane gerekir)
ALL_SINGLES_PRIORITY = 100
ALL_SINGLES_MIN_ORDERS = 2

NO_STORE_NAME = "Mağazasız"
