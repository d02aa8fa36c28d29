from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """DB'ye yazılan tüm zaman damgaları için tek kaynak."""
    return datetime.now(timezone.utc)
