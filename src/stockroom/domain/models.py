from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import List, Optional


DEFAULT_CATEGORY = "General"
DEFAULT_MIN_STOCK = 10


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class Product:
    product_id: Optional[int]
    name: str
    quantity: int = 0
    min_stock: int = DEFAULT_MIN_STOCK
    price: float = 0.0             # canonical currency (USD)
    category: str = DEFAULT_CATEGORY
    last_updated: Optional[str] = None  # ISO-8601, UTC
    supplier_id: Optional[int] = None

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock


@dataclass
class Supplier:
    supplier_id: Optional[int]
    name: str
    rif: str                       # tax identifier, "N/A" when unknown
    first_seen: Optional[str] = None


@dataclass
class SupplierInfo:
    name: str
    rif: Optional[str] = None


@dataclass
class InvoiceItem:
    """One extracted invoice line.

    `quantity` is the total unit count; `original_quantity` and
    `detected_pack_size` only explain how it was derived.
    """

    product_name: str
    quantity: int
    price: float                   # unit price in the invoice currency
    category: Optional[str] = None
    original_quantity: Optional[int] = None
    detected_pack_size: Optional[int] = None
    confidence: Optional[float] = None

    @property
    def is_pack_conversion(self) -> bool:
        return bool(self.detected_pack_size and self.detected_pack_size > 1)

    def breakdown(self) -> Optional[str]:
        """Explain a pack expansion, e.g. "2 x 24 units = 48 total"."""
        if not self.is_pack_conversion or self.original_quantity is None:
            return None
        return f"{self.original_quantity} x {self.detected_pack_size} units = {self.quantity} total"

    def with_quantity(self, value: int) -> "InvoiceItem":
        """Return a copy with a manually edited total; negative edits are ignored."""
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return self
        return replace(self, quantity=value)


@dataclass
class InvoiceData:
    items: List[InvoiceItem] = field(default_factory=list)
    supplier: Optional[SupplierInfo] = None
    currency: Optional[str] = None


@dataclass
class ActivityLog:
    log_id: Optional[int]
    type: str                      # IN | OUT | ADJUSTMENT | IMPORT
    timestamp: str
    description: str
    amount: int
