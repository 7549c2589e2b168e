from __future__ import annotations

import csv
import io
import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..domain.models import Product, Supplier
from ..logging import get_logger
from .constants import DEFAULT_CATEGORY, DEFAULT_MIN_STOCK, NO_RIF


LOG = get_logger("inventory-csv")

EXPORT_HEADER = ["name", "quantity", "price", "min_stock", "category", "supplier", "last_updated"]

_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")
# Largest value an SQLite INTEGER column holds.
_MAX_INT = 2**63 - 1


@dataclass
class CsvRow:
    name: str
    quantity: int = 0
    price: float = 0.0
    min_stock: int = DEFAULT_MIN_STOCK
    category: str = DEFAULT_CATEGORY


def parse_leading_int(value: Optional[str], default: int) -> int:
    """Read the leading integer of a cell ("12 uds" -> 12); negatives and junk give `default`."""
    m = _INT_RE.match(value or "")
    if not m:
        return default
    parsed = int(m.group(1))
    return parsed if 0 <= parsed <= _MAX_INT else default


def parse_leading_float(value: Optional[str], default: float) -> float:
    m = _FLOAT_RE.match(value or "")
    if not m:
        return default
    parsed = float(m.group(1))
    return parsed if math.isfinite(parsed) and parsed >= 0 else default


def parse_csv_text(text: str) -> List[CsvRow]:
    """Parse `name,quantity,price,minStock,category` rows.

    The first line is a header and is skipped. Blank lines, rows with fewer
    than two columns and rows without a name are skipped; columns after the
    fifth are ignored. A minStock of 0 counts as missing and becomes the
    default threshold.
    """
    lines = (text or "").splitlines()[1:]
    rows: List[CsvRow] = []
    skipped = 0
    for cols in csv.reader(line for line in lines if line.strip()):
        if len(cols) < 2:
            skipped += 1
            continue
        cols = (list(cols) + [""] * 5)[:5]
        name = cols[0].strip()
        if not name:
            skipped += 1
            continue
        rows.append(
            CsvRow(
                name=name,
                quantity=parse_leading_int(cols[1], 0),
                price=parse_leading_float(cols[2], 0.0),
                min_stock=parse_leading_int(cols[3], DEFAULT_MIN_STOCK) or DEFAULT_MIN_STOCK,
                category=cols[4].strip() or DEFAULT_CATEGORY,
            )
        )
    if skipped:
        LOG.info("Skipped %d unusable CSV row(s)", skipped)
    return rows


def export_csv(products: Sequence[Product], suppliers: Sequence[Supplier] = ()) -> str:
    """Write the catalog in the import layout plus supplier and timestamp columns."""
    names: Dict[int, str] = {s.supplier_id: s.name for s in suppliers if s.supplier_id is not None}
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)
    for p in products:
        writer.writerow(
            [
                p.name,
                p.quantity,
                f"{p.price:.2f}",
                p.min_stock,
                p.category or DEFAULT_CATEGORY,
                names.get(p.supplier_id, NO_RIF) if p.supplier_id is not None else NO_RIF,
                p.last_updated or "",
            ]
        )
    return buf.getvalue()
