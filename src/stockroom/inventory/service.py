from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..domain.currency import CANONICAL_CURRENCY, to_canonical
from ..domain.matching import ExactNameMatcher, ProductMatcher, normalize_name
from ..domain.models import ActivityLog, InvoiceData, InvoiceItem, Product, SupplierInfo, utc_now_iso
from ..errors import InvalidQuantityError, ProductNotFoundError
from ..logging import get_logger
from .activity import ActivityLogger
from .aliases import resolve_aliases, resolve_supplier_alias
from .constants import ACTIVITY_ADJUSTMENT, ACTIVITY_IMPORT, ACTIVITY_OUT
from .csv_io import CsvRow, parse_csv_text
from .db import InventoryDatabase
from .reconcile import StockReconciler


LOG = get_logger("inventory-service")


@dataclass
class ImportResult:
    added_count: int
    updated_count: int


@dataclass
class InventoryStats:
    total_items: int
    total_value: float
    low_stock_count: int


def parse_positive_int(value: Any) -> Optional[int]:
    """Return `value` as a positive int, or None for anything else (bools, 0, "abc", 2.5)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else None
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return None
        return parsed if parsed > 0 else None
    return None


class InventoryService:
    """Inventory operations over one explicitly passed store.

    The store must provide the catalog, supplier and activity interfaces
    (`InventoryDatabase` does).
    """

    def __init__(
        self,
        store: InventoryDatabase,
        *,
        matcher: Optional[ProductMatcher] = None,
        clock: Optional[Callable[[], str]] = None,
    ) -> None:
        self.store = store
        self.clock = clock or utc_now_iso
        self.activity = ActivityLogger(store)
        self.reconciler = StockReconciler(store, store, store, matcher=matcher, clock=self.clock)

    # --------------- Invoice ingestion ---------------
    def resolve_invoice(self, invoice: InvoiceData) -> InvoiceData:
        """Apply supplier and product aliases before the operator reviews the scan."""
        supplier = resolve_supplier_alias(invoice.supplier, self.store)
        items = resolve_aliases(invoice.items, self.store)
        return InvoiceData(items=items, supplier=supplier, currency=invoice.currency)

    def reconcile(
        self,
        items: Sequence[InvoiceItem],
        supplier_info: Optional[SupplierInfo] = None,
        invoice_currency: str = CANONICAL_CURRENCY,
        exchange_rate: Optional[float] = None,
    ) -> List[Product]:
        return self.reconciler.reconcile(items, supplier_info, invoice_currency, exchange_rate)

    def confirm_invoice(self, invoice: InvoiceData, exchange_rate: Optional[float] = None) -> List[Product]:
        return self.reconciler.reconcile_invoice(invoice, exchange_rate)

    # --------------- Manual edits ---------------
    def stock_out(self, product_id: int, amount: int) -> int:
        """Withdraw up to `amount` units; returns how many were actually removed."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidQuantityError(f"Stock-out amount must be a positive integer, got {amount!r}")
        product = self.store.get_product(product_id)
        if product is None:
            LOG.warning("Stock-out ignored; product %s not found", product_id)
            return 0
        new_quantity = max(0, product.quantity - amount)
        delta = product.quantity - new_quantity
        if delta == 0:
            return 0
        self.store.upsert_product(replace(product, quantity=new_quantity, last_updated=self.clock()))
        if delta < amount:
            LOG.info("Stock-out for %r truncated from %d to %d", product.name, amount, delta)
        self.activity.record(ACTIVITY_OUT, f"Manual stock out: {product.name}", delta)
        return delta

    def update_product_details(
        self,
        product_id: int,
        *,
        min_stock: Optional[int] = None,
        price: Optional[float] = None,
        quantity: Optional[int] = None,
        currency: str = CANONICAL_CURRENCY,
        exchange_rate: Optional[float] = None,
    ) -> Product:
        """Edit min stock, price (given in `currency`) or quantity of one product."""
        product = self.store.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(f"Product {product_id} not found")
        for label, value in (("min_stock", min_stock), ("quantity", quantity)):
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
                raise InvalidQuantityError(f"{label} must be a non-negative integer, got {value!r}")
        if price is not None and (
            isinstance(price, bool) or not isinstance(price, (int, float)) or not math.isfinite(price) or price < 0
        ):
            raise InvalidQuantityError(f"price must be a finite number >= 0, got {price!r}")

        updates: Dict[str, Any] = {"last_updated": self.clock()}
        if min_stock is not None:
            updates["min_stock"] = min_stock
        if price is not None:
            canonical = to_canonical(price, currency, exchange_rate)
            if not math.isfinite(canonical):
                raise InvalidQuantityError(f"price {price!r} {currency} is out of range")
            updates["price"] = canonical
        if quantity is not None:
            updates["quantity"] = quantity
        updated = self.store.upsert_product(replace(product, **updates))

        delta = updated.quantity - product.quantity
        if delta:
            self.activity.record(ACTIVITY_ADJUSTMENT, f"Manual adjustment: {product.name}", delta)
        return updated

    # --------------- CSV import ---------------
    def import_batch(self, rows: Sequence[CsvRow]) -> ImportResult:
        """Merge parsed CSV rows: quantities add up, prices only replace when positive."""
        matcher = ExactNameMatcher()
        snapshot: List[Product] = self.store.list_products()
        added = 0
        updated = 0
        for row in rows:
            now = self.clock()
            existing = matcher.find_match(row.name, snapshot)
            if existing is not None:
                saved = self.store.upsert_product(
                    replace(
                        existing,
                        quantity=existing.quantity + row.quantity,
                        price=row.price if row.price > 0 else existing.price,
                        last_updated=now,
                    )
                )
                snapshot[snapshot.index(existing)] = saved
                updated += 1
            else:
                saved = self.store.upsert_product(
                    Product(
                        product_id=None,
                        name=row.name,
                        quantity=row.quantity,
                        min_stock=row.min_stock,
                        price=row.price,
                        category=row.category,
                        last_updated=now,
                    )
                )
                snapshot.append(saved)
                added += 1

        self.activity.record(
            ACTIVITY_IMPORT,
            f"CSV import: {added} new, {updated} updated",
            added + updated,
        )
        LOG.info("CSV import finished: %d added, %d updated", added, updated)
        return ImportResult(added_count=added, updated_count=updated)

    def import_csv_text(self, text: str) -> ImportResult:
        return self.import_batch(parse_csv_text(text))

    # --------------- Queries ---------------
    def list_products(self) -> List[Product]:
        return self.store.list_products()

    def search_products(self, term: Optional[str] = None) -> List[Product]:
        """Filter by name, supplier name or category; low-stock products first."""
        products = self.store.list_products()
        needle = normalize_name(term)
        if needle:
            supplier_names = {s.supplier_id: normalize_name(s.name) for s in self.store.list_suppliers()}
            products = [
                p
                for p in products
                if needle in normalize_name(p.name)
                or needle in normalize_name(p.category)
                or (p.supplier_id is not None and needle in supplier_names.get(p.supplier_id, ""))
            ]
        return sorted(products, key=lambda p: 0 if p.is_low_stock else 1)

    def search_suppliers(self, term: Optional[str] = None):
        suppliers = self.store.list_suppliers()
        needle = normalize_name(term)
        if not needle:
            return suppliers
        return [s for s in suppliers if needle in normalize_name(s.name) or needle in normalize_name(s.rif)]

    def list_activity(self, limit: int = 50) -> List[ActivityLog]:
        return self.store.list_activity(limit)

    def get_stats(self) -> InventoryStats:
        try:
            products = self.store.list_products()
        except Exception as exc:
            LOG.warning("Stats unavailable; catalog could not be read: %s", exc)
            return InventoryStats(total_items=0, total_value=0.0, low_stock_count=0)
        return InventoryStats(
            total_items=sum(p.quantity for p in products),
            total_value=sum(p.quantity * p.price for p in products),
            low_stock_count=sum(1 for p in products if p.is_low_stock),
        )
