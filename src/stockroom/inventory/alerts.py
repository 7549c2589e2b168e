from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ..domain.models import Product


def low_stock_products(products: Sequence[Product]) -> List[Product]:
    return [p for p in products if p.is_low_stock]


def format_low_stock_alert(products: Sequence[Product]) -> Optional[Tuple[str, str]]:
    """Build (subject, body) for a low-stock notification, or None when nothing is low."""
    low = low_stock_products(products)
    if not low:
        return None
    subject = f"Low stock alert: {len(low)} products"
    lines = [f"• {p.name}: {p.quantity} units (Min: {p.min_stock})" for p in low]
    body = "The following products are at or below their minimum stock:\n\n" + "\n".join(lines)
    return subject, body
