from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..domain.currency import CANONICAL_CURRENCY, is_valid_rate, normalize_currency_code, to_canonical
from ..domain.matching import ProductMatcher, SubstringNameMatcher
from ..domain.models import InvoiceData, Product
from .constants import DEFAULT_MIN_STOCK, UNCATEGORIZED


@dataclass
class InvoiceLinePreview:
    """What confirming one scanned line would do to the catalog."""

    index: int
    product_name: str
    quantity: int
    matched_product_id: Optional[int]
    matched_name: Optional[str]
    current_stock: int
    new_stock: int
    min_stock: int
    will_be_low: bool
    breakdown: Optional[str] = None

    @property
    def is_new(self) -> bool:
        return self.matched_product_id is None


@dataclass
class InvoiceSummary:
    currency: str
    total: float
    category_totals: Dict[str, float] = field(default_factory=dict)
    canonical_total: Optional[float] = None


def preview_invoice(
    invoice: InvoiceData,
    catalog: Sequence[Product],
    matcher: Optional[ProductMatcher] = None,
) -> List[InvoiceLinePreview]:
    # Preview matches against the snapshot only; confirmation re-reads per item.
    m = matcher or SubstringNameMatcher()
    previews: List[InvoiceLinePreview] = []
    for idx, item in enumerate(invoice.items):
        match = m.find_match(item.product_name, catalog)
        current = match.quantity if match is not None else 0
        min_stock = match.min_stock if match is not None else DEFAULT_MIN_STOCK
        new_stock = current + item.quantity
        previews.append(
            InvoiceLinePreview(
                index=idx,
                product_name=item.product_name,
                quantity=item.quantity,
                matched_product_id=match.product_id if match is not None else None,
                matched_name=match.name if match is not None else None,
                current_stock=current,
                new_stock=new_stock,
                min_stock=min_stock,
                will_be_low=new_stock <= min_stock,
                breakdown=item.breakdown(),
            )
        )
    return previews


def summarize_invoice(invoice: InvoiceData, exchange_rate: Optional[float] = None) -> InvoiceSummary:
    """Estimate the invoice total in its own currency.

    Prices are per invoiced unit, so packs are priced on the quantity printed
    on the invoice rather than the expanded unit count.
    """
    currency = normalize_currency_code(invoice.currency or CANONICAL_CURRENCY)
    total = 0.0
    by_category: Dict[str, float] = {}
    for item in invoice.items:
        billed = item.original_quantity if item.original_quantity is not None else item.quantity
        line = billed * item.price
        total += line
        category = (item.category or "").strip() or UNCATEGORIZED
        by_category[category] = by_category.get(category, 0.0) + line

    canonical_total = None
    if currency != CANONICAL_CURRENCY and is_valid_rate(exchange_rate) and exchange_rate > 1:
        canonical_total = to_canonical(total, currency, exchange_rate)
    return InvoiceSummary(
        currency=currency,
        total=total,
        category_totals=by_category,
        canonical_total=canonical_total,
    )
