from __future__ import annotations

import math
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from ..domain.currency import CANONICAL_CURRENCY, is_valid_rate, needs_rate, normalize_currency_code, to_canonical
from ..domain.matching import ProductMatcher, SubstringNameMatcher
from ..domain.models import InvoiceData, InvoiceItem, Product, SupplierInfo, utc_now_iso
from ..errors import InvalidExchangeRateError, InvalidInvoiceItemError, ReconciliationAborted, StoreError
from ..logging import get_logger
from .activity import ActivityLogger
from .constants import ACTIVITY_IN, DEFAULT_CATEGORY, DEFAULT_MIN_STOCK, NO_RIF, UNKNOWN_PRODUCT_NAME
from .stores import ActivitySink, CatalogStore, SupplierStore
from .suppliers import register_supplier


LOG = get_logger("inventory-reconcile")


class StockReconciler:
    """Merge confirmed invoice lines into the catalog.

    Items are applied one at a time in invoice order. Each item re-reads the
    catalog, so repeated names within one invoice accumulate. A store failure
    stops the batch; items already written stay written.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        suppliers: SupplierStore,
        activity: ActivitySink,
        *,
        matcher: Optional[ProductMatcher] = None,
        clock: Optional[Callable[[], str]] = None,
    ) -> None:
        self.catalog = catalog
        self.suppliers = suppliers
        self.activity = ActivityLogger(activity)
        self.matcher = matcher or SubstringNameMatcher()
        self.clock = clock or utc_now_iso

    def reconcile_invoice(self, invoice: InvoiceData, exchange_rate: Optional[float] = None) -> List[Product]:
        return self.reconcile(
            invoice.items,
            invoice.supplier,
            invoice.currency or CANONICAL_CURRENCY,
            exchange_rate,
        )

    def reconcile(
        self,
        items: Sequence[InvoiceItem],
        supplier_info: Optional[SupplierInfo] = None,
        invoice_currency: str = CANONICAL_CURRENCY,
        exchange_rate: Optional[float] = None,
    ) -> List[Product]:
        currency = normalize_currency_code(invoice_currency)
        if needs_rate(currency) and not is_valid_rate(exchange_rate):
            raise InvalidExchangeRateError(
                f"An exchange rate is required to store {currency} prices, got {exchange_rate!r}"
            )
        self._validate_items(items)

        supplier_id: Optional[int] = None
        supplier_label = ""
        if supplier_info is not None and (supplier_info.name or "").strip():
            supplier = register_supplier(
                self.suppliers,
                supplier_info.name,
                supplier_info.rif or NO_RIF,
                clock=self.clock,
            )
            supplier_id = supplier.supplier_id
            supplier_label = supplier_info.name.strip()

        applied: List[int] = []
        for idx, item in enumerate(items):
            try:
                self._apply_item(item, currency, exchange_rate, supplier_id, supplier_label)
            except StoreError as exc:
                LOG.error(
                    "Reconciliation aborted at item %d (%r); %d item(s) already applied",
                    idx, item.product_name, len(applied),
                )
                raise ReconciliationAborted(
                    f"Stock update failed at item {idx + 1} of {len(items)}",
                    applied=applied,
                    failed_index=idx,
                ) from exc
            applied.append(idx)

        LOG.info(
            "Reconciled %d item(s) from %s invoice (supplier_id=%s)",
            len(applied), currency, supplier_id,
        )
        return self.catalog.list_products()

    @staticmethod
    def _validate_items(items: Sequence[InvoiceItem]) -> None:
        for idx, item in enumerate(items):
            if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity < 0:
                raise InvalidInvoiceItemError(f"Item {idx + 1} has an invalid quantity: {item.quantity!r}")
            if item.price is None or not math.isfinite(item.price) or item.price < 0:
                raise InvalidInvoiceItemError(f"Item {idx + 1} has an invalid price: {item.price!r}")

    def _apply_item(
        self,
        item: InvoiceItem,
        currency: str,
        exchange_rate: Optional[float],
        supplier_id: Optional[int],
        supplier_label: str,
    ) -> Product:
        name = (item.product_name or "").strip() or UNKNOWN_PRODUCT_NAME
        price = to_canonical(item.price, currency, exchange_rate)
        now = self.clock()

        existing = self.matcher.find_match(name, self.catalog.list_products())
        if existing is not None:
            updated = self.catalog.upsert_product(
                replace(
                    existing,
                    quantity=existing.quantity + item.quantity,
                    price=price,
                    last_updated=now,
                    supplier_id=supplier_id if supplier_id is not None else existing.supplier_id,
                )
            )
            LOG.info("Stock in: %r %d -> %d", updated.name, existing.quantity, updated.quantity)
            source = f"Invoice {supplier_label}" if supplier_label else "Invoice"
            self.activity.record(ACTIVITY_IN, f"{source}: {name}", item.quantity)
            return updated

        created = self.catalog.upsert_product(
            Product(
                product_id=None,
                name=name,
                quantity=item.quantity,
                min_stock=DEFAULT_MIN_STOCK,
                price=price,
                category=(item.category or "").strip() or DEFAULT_CATEGORY,
                last_updated=now,
                supplier_id=supplier_id,
            )
        )
        LOG.info("New product: %r quantity=%d (id=%s)", created.name, created.quantity, created.product_id)
        self.activity.record(ACTIVITY_IN, f"New ({supplier_label or 'Manual'}): {name}", item.quantity)
        return created
