# Orders/services/lines.py
from __future__ import annotations

from typing import Any, Iterable, Optional


# Trendyol satırında barkod iki farklı anahtarla gelebiliyor
BARCODE_KEYS = ("barcode", "productBarcode")
UNKNOWN_PRODUCT_NAME = "Bilinmeyen Ürün"


def line_barcode(line: dict) -> Optional[str]:
    for key in BARCODE_KEYS:
        value = line.get(key)
        if value not in (None, ""):
            return str(value).strip() or None
    return None


def line_quantity(line: dict) -> int:
    """Adet yoksa ya da bozuksa satır 1 adet sayılır."""
    try:
        qty = int(line.get("quantity") or 0)
    except (TypeError, ValueError):
        qty = 0
    return qty if qty > 0 else 1


def line_product_name(line: dict) -> str:
    return line.get("productName") or line.get("name") or UNKNOWN_PRODUCT_NAME


def iter_product_lines(lines: Optional[Iterable[Any]]):
    """Sadece barkodu olan satırları dolaşır."""
    if not lines or not isinstance(lines, (list, tuple)):
        return
    for line in lines:
        if isinstance(line, dict) and line_barcode(line):
            yield line


def extract_barcodes(lines) -> list[str]:
    """
    Satırlardaki barkodları ilk görülme sırasıyla, tekrarsız döner.
    """
    seen: dict[str, None] = {}
    for line in iter_product_lines(lines):
        seen.setdefault(line_barcode(line), None)
    return list(seen)


def total_quantity(lines) -> int:
    return sum(line_quantity(line) for line in iter_product_lines(lines))
