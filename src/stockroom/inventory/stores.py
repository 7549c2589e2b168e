"""Collaborator interfaces the reconciliation engine talks to.

`InventoryDatabase` implements all three; tests substitute their own doubles.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from ..domain.models import Product, Supplier
from ..errors import StoreError


class CatalogStore(Protocol):
    def list_products(self) -> List[Product]:
        ...

    def get_product(self, product_id: int) -> Optional[Product]:
        ...

    def upsert_product(self, product: Product) -> Product:
        ...


class SupplierStore(Protocol):
    def list_suppliers(self) -> List[Supplier]:
        ...

    def upsert_supplier(self, supplier: Supplier) -> Supplier:
        ...


class ActivitySink(Protocol):
    def append(self, type: str, description: str, amount: int) -> None:
        ...


__all__ = ["ActivitySink", "CatalogStore", "StoreError", "SupplierStore"]
