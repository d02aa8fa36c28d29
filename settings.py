# settings.py
from __future__ import annotations

import os
from pathlib import Path

# settings.py'nin bulunduğu klasör (proje kökü)
BASE_DIR = Path(__file__).resolve().parent

# DATABASE
DB_NAME = os.getenv("SELLERPANEL_DB_NAME", "orders.db")

# ✅ PROJE İÇİ DB KLASÖRÜ (MUTLAK)
DEFAULT_DATABASE_DIR = Path(
    os.getenv("SELLERPANEL_DATABASE_DIR", str(BASE_DIR / "databases"))
).resolve()
DEFAULT_DATABASE_DIR.mkdir(parents=True, exist_ok=True)

# LOG
LOG_FILE = os.getenv("SELLERPANEL_LOG_FILE", "orderscout.log")


# ===============================
# Trendyol API Settings
# ===============================

TRENDYOL_API_URL = os.getenv(
    "TRENDYOL_API_URL",
    "https://apigw.trendyol.com/integration/order/sellers",
)
TRENDYOL_INTEGRATION_NAME = os.getenv("TRENDYOL_INTEGRATION_NAME", "SelfIntegration")

# saniye, tüm uzak çağrılar için sabit
REQUEST_TIMEOUT = float(os.getenv("TRENDYOL_REQUEST_TIMEOUT", "30"))

# Trendyol tek sayfada en fazla 200 paket döner
ORDER_PAGE_SIZE = int(os.getenv("TRENDYOL_ORDER_PAGE_SIZE", "200"))


# ===============================
# Scheduler Settings
# ===============================

# cron "minute" alanı, "*" → her dakika
SYNC_CRON_MINUTE = os.getenv("SELLERPANEL_SYNC_CRON_MINUTE", "*")

# teslim edilmemiş siparişlerin tazelenmesi, "0" → saat başı
REFRESH_CRON_MINUTE = os.getenv("SELLERPANEL_REFRESH_CRON_MINUTE", "0")
