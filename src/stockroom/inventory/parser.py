from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, List, Optional

from ..domain.currency import normalize_currency_code
from ..domain.models import InvoiceData, InvoiceItem, SupplierInfo
from ..errors import InvoiceValidationError, UnsupportedCurrencyError
from ..logging import get_logger


LOG = get_logger("inventory-parser")

# Invoices without a detected currency are assumed to be in bolívares.
DEFAULT_INVOICE_CURRENCY = "Bs"

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def _field(d: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return None


def _norm_s(s: Any) -> Optional[str]:
    return str(s).strip() if isinstance(s, str) and s.strip() else None


def _number(value: Any, label: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvoiceValidationError(f"{label} must be a number")
    num: Optional[float] = None
    if isinstance(value, (int, float)):
        try:
            num = float(value)
        except OverflowError:
            raise InvoiceValidationError(f"{label} is out of range")
    elif isinstance(value, str) and value.strip():
        try:
            num = float(value.strip().replace(",", "."))
        except ValueError:
            raise InvoiceValidationError(f"{label} must be a number, got {value!r}")
    if num is not None and not math.isfinite(num):
        raise InvoiceValidationError(f"{label} must be a finite number, got {value!r}")
    return num


def _count(value: Any, label: str) -> Optional[int]:
    num = _number(value, label)
    if num is None:
        return None
    if num < 0:
        raise InvoiceValidationError(f"{label} must be >= 0")
    return int(round(num))


def _parse_item(idx: int, it: Any) -> InvoiceItem:
    if not isinstance(it, dict):
        raise InvoiceValidationError(f"items[{idx}] must be an object")
    name = _norm_s(_field(it, "productName", "product_name")) or ""

    original = _count(_field(it, "originalQuantity", "original_quantity"), f"items[{idx}].originalQuantity")
    pack = _count(_field(it, "detectedPackSize", "detected_pack_size"), f"items[{idx}].detectedPackSize")
    if pack is not None and pack < 1:
        pack = 1
    qty = _count(_field(it, "quantity"), f"items[{idx}].quantity")

    if original is not None and pack is not None:
        derived = original * pack
        if qty is not None and qty != derived:
            LOG.warning(
                "items[%d] quantity %s disagrees with %s x %s; using %s",
                idx, qty, original, pack, derived,
            )
        qty = derived
    elif qty is None and original is not None:
        qty = original
    if qty is None:
        raise InvoiceValidationError(f"items[{idx}].quantity required")

    price = _number(_field(it, "price"), f"items[{idx}].price")
    if price is None:
        raise InvoiceValidationError(f"items[{idx}].price required")
    if price < 0:
        raise InvoiceValidationError(f"items[{idx}].price must be >= 0")

    confidence = _field(it, "confidence")
    try:
        confidence = float(confidence) if confidence is not None else None
    except (TypeError, ValueError):
        confidence = None

    return InvoiceItem(
        product_name=name,
        quantity=qty,
        price=price,
        category=_norm_s(_field(it, "category")),
        original_quantity=original,
        detected_pack_size=pack,
        confidence=confidence,
    )


def parse_invoice_payload(payload: Any, *, default_currency: str = DEFAULT_INVOICE_CURRENCY) -> InvoiceData:
    """Validate an extraction payload and turn it into `InvoiceData`.

    Expected input shape (extraction service output, camelCase or snake_case):
    - items: list of {productName, quantity, originalQuantity, detectedPackSize,
      price, category, confidence}
    - supplier: {name, rif} (optional)
    - currency: "USD" | "Bs" (optional, defaults to `default_currency`)
    """
    if not isinstance(payload, dict):
        raise InvoiceValidationError("Payload must be a JSON object")

    items_in = payload.get("items")
    if items_in is None:
        items_in = []
    if not isinstance(items_in, list):
        raise InvoiceValidationError("items must be a list")
    items: List[InvoiceItem] = [_parse_item(idx, it) for idx, it in enumerate(items_in)]

    supplier: Optional[SupplierInfo] = None
    sup = payload.get("supplier")
    if isinstance(sup, dict):
        sup_name = _norm_s(sup.get("name"))
        if sup_name:
            supplier = SupplierInfo(name=sup_name, rif=_norm_s(sup.get("rif")))

    raw_currency = _norm_s(payload.get("currency")) or default_currency
    try:
        currency = normalize_currency_code(raw_currency)
    except UnsupportedCurrencyError as exc:
        raise InvoiceValidationError(str(exc)) from exc

    LOG.debug("Parsed invoice payload with %d items (currency=%s)", len(items), currency)
    return InvoiceData(items=items, supplier=supplier, currency=currency)


def parse_invoice_json(text: str, **kwargs: Any) -> InvoiceData:
    """Parse raw extraction output, tolerating markdown code fences around the JSON."""
    cleaned = _FENCE_RE.sub("", text or "").strip()
    if not cleaned:
        return InvoiceData(items=[], supplier=None, currency=kwargs.get("default_currency", DEFAULT_INVOICE_CURRENCY))
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise InvoiceValidationError(f"Invoice payload is not valid JSON: {exc.msg}") from exc
    return parse_invoice_payload(payload, **kwargs)


def invoice_to_payload(invoice: InvoiceData) -> Dict[str, Any]:
    """Serialize `InvoiceData` back to the extraction payload shape."""
    return {
        "currency": invoice.currency,
        "supplier": (
            {"name": invoice.supplier.name, "rif": invoice.supplier.rif}
            if invoice.supplier is not None
            else None
        ),
        "items": [
            {
                "productName": it.product_name,
                "quantity": it.quantity,
                "originalQuantity": it.original_quantity,
                "detectedPackSize": it.detected_pack_size,
                "price": it.price,
                "category": it.category,
                "confidence": it.confidence,
            }
            for it in invoice.items
        ],
    }
