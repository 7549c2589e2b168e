from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence

from ..domain.matching import ExactNameMatcher, normalize_name
from ..domain.models import InvoiceItem, SupplierInfo
from ..logging import get_logger
from .stores import CatalogStore, SupplierStore


LOG = get_logger("inventory-aliases")

_EXACT = ExactNameMatcher()


def resolve_aliases(items: Sequence[InvoiceItem], catalog: CatalogStore) -> List[InvoiceItem]:
    """Rename extracted items to their catalog spelling when an exact match exists.

    Only exact (trimmed, case-insensitive) matches rewrite an item so two
    distinct products are never merged silently. When the catalog cannot be
    read the items come back untouched.
    """
    try:
        products = catalog.list_products()
    except Exception as exc:
        LOG.warning("Alias resolution skipped; catalog unavailable: %s", exc)
        return list(items)

    resolved: List[InvoiceItem] = []
    renamed = 0
    for item in items:
        match = _EXACT.find_match(item.product_name, products)
        if match is None:
            resolved.append(item)
            continue
        category = match.category if match.category else item.category
        resolved.append(replace(item, product_name=match.name, category=category))
        renamed += 1
    LOG.debug("Alias resolution matched %d of %d items", renamed, len(resolved))
    return resolved


def resolve_supplier_alias(
    supplier: Optional[SupplierInfo],
    suppliers: SupplierStore,
) -> Optional[SupplierInfo]:
    """Swap an invoice supplier for the stored record whose name contains it."""
    if supplier is None or not normalize_name(supplier.name):
        return supplier
    try:
        known = suppliers.list_suppliers()
    except Exception as exc:
        LOG.warning("Supplier alias lookup skipped; supplier store unavailable: %s", exc)
        return supplier
    needle = normalize_name(supplier.name)
    for candidate in known:
        if needle in normalize_name(candidate.name):
            return SupplierInfo(name=candidate.name, rif=candidate.rif)
    return supplier
