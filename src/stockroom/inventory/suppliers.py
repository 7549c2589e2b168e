from __future__ import annotations

from typing import Callable, Optional

from ..domain.matching import normalize_name
from ..domain.models import Supplier, utc_now_iso
from ..logging import get_logger
from .constants import NO_RIF
from .stores import SupplierStore


LOG = get_logger("inventory-suppliers")


def has_real_rif(rif: Optional[str]) -> bool:
    value = (rif or "").strip()
    return bool(value) and value.upper() != NO_RIF


def register_supplier(
    store: SupplierStore,
    name: str,
    rif: Optional[str],
    *,
    clock: Optional[Callable[[], str]] = None,
) -> Supplier:
    """Return the supplier for (name, rif), creating it only when none matches.

    A record matches on identical tax identifier or on case-insensitive name.
    Existing records are returned as stored, never updated.
    """
    clean_name = (name or "").strip()
    clean_rif = (rif or "").strip() or NO_RIF
    by_rif = has_real_rif(clean_rif)
    norm = normalize_name(clean_name)

    for existing in store.list_suppliers():
        if by_rif and existing.rif == clean_rif:
            LOG.debug("Supplier %r matched by RIF %s", clean_name, clean_rif)
            return existing
        if norm and normalize_name(existing.name) == norm:
            LOG.debug("Supplier %r matched by name", clean_name)
            return existing

    created = store.upsert_supplier(
        Supplier(
            supplier_id=None,
            name=clean_name,
            rif=clean_rif,
            first_seen=(clock or utc_now_iso)(),
        )
    )
    LOG.info("Registered new supplier %r (RIF %s) as id=%s", created.name, created.rif, created.supplier_id)
    return created
