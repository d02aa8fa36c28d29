# 📂 Orders/constants/trendyol_constants.py
from __future__ import annotations

from enum import Enum

from Core.utils.model_utils import make_normalizer


# -------------------------------------------------
# 🏷️ Panel içi sipariş statüleri
# -------------------------------------------------
class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COLLECTING = "COLLECTING"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


# Bir rota tarafından sahiplenilmiş statüler.
# Rota önerisi, manuel filtre ve ingestion aynı kümeyi kullanır.
CLAIMED_ORDER_STATUSES = frozenset({OrderStatus.COLLECTING, OrderStatus.PACKED})

# Saatlik tazelemeye girenler: teslim edilmemiş ve kapanmamış siparişler
REFRESHABLE_ORDER_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.COLLECTING,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
)


# -------------------------------------------------
# 📦 Trendyol API Sipariş Statüleri
# -------------------------------------------------
TRENDYOL_CREATED_STATUS = "Created"

TRENDYOL_STATUS_LIST = [
    "Awaiting",
    "Created",
    "Picking",
    "Invoiced",
    "Shipped",
    "AtCollectionPoint",
    "Cancelled",
    "UnPacked",
    "Delivered",
    "UnDelivered",
    "Returned",
    "UnSupplied",
]

# Sabit ve tam eşleme tablosu; listede olmayan her şey PENDING'e düşer
TRENDYOL_STATUS_MAP = {
    "Awaiting": OrderStatus.PENDING,
    "Created": OrderStatus.PENDING,
    "Picking": OrderStatus.PROCESSING,
    "Invoiced": OrderStatus.PROCESSING,
    "Shipped": OrderStatus.SHIPPED,
    "Delivered": OrderStatus.DELIVERED,
    "Cancelled": OrderStatus.CANCELLED,
    "UnSupplied": OrderStatus.CANCELLED,
    "Returned": OrderStatus.RETURNED,
    "UnDelivered": OrderStatus.PROCESSING,
    "AtCollectionPoint": OrderStatus.SHIPPED,
    "UnPacked": OrderStatus.PROCESSING,
}

DEFAULT_ORDER_STATUS = OrderStatus.PENDING


def map_trendyol_status(trendyol_status) -> OrderStatus:
    return TRENDYOL_STATUS_MAP.get(trendyol_status, DEFAULT_ORDER_STATUS)


# -------------------------------------------------
# 🔑 Sorgu sabitleri
# -------------------------------------------------
ORDER_BY_FIELD = "PackageLastModifiedDate"
ORDER_BY_DIRECTION = "DESC"

# -------------------------------------------------
# 🧹 Normalizer Tanımları
# -------------------------------------------------
ORDER_NORMALIZER = make_normalizer(
    coalesce_none={
        "trendyolStatus": "Unknown",
        "currencyCode": "TRY",
        "commercial": False,
        "micro": False,
    },
    strip_strings=True,
)
