"""Pure domain logic: records, currency conversion and product-name matching."""

from .models import ActivityLog, InvoiceData, InvoiceItem, Product, Supplier, SupplierInfo
from .currency import (
    CANONICAL_CURRENCY,
    SECONDARY_CURRENCY,
    convert,
    from_canonical,
    is_valid_rate,
    normalize_currency_code,
    to_canonical,
)
from .matching import (
    EditDistanceMatcher,
    ExactNameMatcher,
    ProductMatcher,
    SubstringNameMatcher,
    find_match,
)

__all__ = [
    "ActivityLog",
    "InvoiceData",
    "InvoiceItem",
    "Product",
    "Supplier",
    "SupplierInfo",
    "CANONICAL_CURRENCY",
    "SECONDARY_CURRENCY",
    "convert",
    "from_canonical",
    "is_valid_rate",
    "normalize_currency_code",
    "to_canonical",
    "EditDistanceMatcher",
    "ExactNameMatcher",
    "ProductMatcher",
    "SubstringNameMatcher",
    "find_match",
]
