from __future__ import annotations

from pathlib import Path

import pytest

from stockroom.domain.models import InvoiceData, InvoiceItem, Product, Supplier, SupplierInfo
from stockroom.errors import (
    InvalidExchangeRateError,
    InvalidInvoiceItemError,
    ReconciliationAborted,
    StoreError,
)
from stockroom.inventory.db import InventoryDatabase
from stockroom.inventory.reconcile import StockReconciler


def _make_db(root: Path) -> InventoryDatabase:
    (root / "README.md").write_text("marker", encoding="utf-8")
    return InventoryDatabase(root_dir=str(root))


def _reconciler(db: InventoryDatabase) -> StockReconciler:
    return StockReconciler(db, db, db, clock=lambda: "2024-05-01T10:00:00+00:00")


def test_new_product_created_with_defaults(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    catalog = _reconciler(db).reconcile([InvoiceItem(product_name="Queso Blanco", quantity=7, price=4.5)])

    assert len(catalog) == 1
    product = catalog[0]
    assert product.name == "Queso Blanco"
    assert product.quantity == 7
    assert product.min_stock == 10
    assert product.category == "General"
    assert product.price == pytest.approx(4.5)
    assert product.last_updated == "2024-05-01T10:00:00+00:00"

    log = db.list_activity()
    assert [(a.type, a.description, a.amount) for a in log] == [("IN", "New (Manual): Queso Blanco", 7)]


def test_existing_product_quantity_is_additive(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    db.upsert_product(Product(product_id=None, name="Harina Pan", quantity=5, price=1.0, min_stock=3))

    catalog = _reconciler(db).reconcile([InvoiceItem(product_name="harina pan", quantity=10, price=1.2)])

    assert len(catalog) == 1
    assert catalog[0].name == "Harina Pan"
    assert catalog[0].quantity == 15
    assert catalog[0].min_stock == 3
    assert catalog[0].price == pytest.approx(1.2)


def test_repeated_names_within_one_invoice_accumulate(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    items = [
        InvoiceItem(product_name="Arroz", quantity=4, price=1.0),
        InvoiceItem(product_name="arroz ", quantity=6, price=1.1),
    ]
    catalog = _reconciler(db).reconcile(items)
    assert [(p.name, p.quantity) for p in catalog] == [("Arroz", 10)]


def test_bolivar_prices_stored_in_usd(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    invoice = InvoiceData(
        items=[InvoiceItem(product_name="Aceite", quantity=2, price=73.0, category="Víveres")],
        supplier=SupplierInfo(name="Distribuidora Sol", rif="J-30000000-1"),
        currency="Bs",
    )
    catalog = _reconciler(db).reconcile_invoice(invoice, exchange_rate=36.5)

    assert catalog[0].price == pytest.approx(2.0)
    assert catalog[0].category == "Víveres"
    suppliers = db.list_suppliers()
    assert len(suppliers) == 1
    assert catalog[0].supplier_id == suppliers[0].supplier_id
    assert db.list_activity()[0].description == "New (Distribuidora Sol): Aceite"


def test_supplier_not_duplicated_across_invoices(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    reconciler = _reconciler(db)
    supplier = SupplierInfo(name="Distribuidora Sol", rif=None)
    reconciler.reconcile([InvoiceItem(product_name="Aceite", quantity=1, price=2.0)], supplier)
    reconciler.reconcile([InvoiceItem(product_name="Aceite", quantity=1, price=2.0)], supplier)

    suppliers = db.list_suppliers()
    assert len(suppliers) == 1
    assert suppliers[0].rif == "N/A"
    assert db.list_activity()[0].description == "Invoice Distribuidora Sol: Aceite"


def test_missing_rate_rejected_before_any_write(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    with pytest.raises(InvalidExchangeRateError):
        _reconciler(db).reconcile(
            [InvoiceItem(product_name="Aceite", quantity=2, price=73.0)],
            SupplierInfo(name="Distribuidora Sol"),
            invoice_currency="Bs",
            exchange_rate=None,
        )
    assert db.list_products() == []
    assert db.list_suppliers() == []


def test_negative_item_rejected_before_any_write(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    items = [
        InvoiceItem(product_name="Aceite", quantity=2, price=1.0),
        InvoiceItem(product_name="Arroz", quantity=-3, price=1.0),
    ]
    with pytest.raises(InvalidInvoiceItemError):
        _reconciler(db).reconcile(items)
    assert db.list_products() == []


def test_blank_name_becomes_unknown_product(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    catalog = _reconciler(db).reconcile([InvoiceItem(product_name="  ", quantity=1, price=1.0)])
    assert catalog[0].name == "Unknown product"


class _FlakyCatalog:
    """Wraps a real store and fails on the n-th upsert."""

    def __init__(self, db: InventoryDatabase, fail_on: int) -> None:
        self.db = db
        self.fail_on = fail_on
        self.calls = 0

    def list_products(self):
        return self.db.list_products()

    def get_product(self, product_id):
        return self.db.get_product(product_id)

    def upsert_product(self, product):
        self.calls += 1
        if self.calls == self.fail_on:
            raise StoreError("disk full")
        return self.db.upsert_product(product)


def test_store_failure_aborts_and_reports_applied(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    reconciler = StockReconciler(_FlakyCatalog(db, fail_on=2), db, db)
    items = [
        InvoiceItem(product_name="Aceite", quantity=1, price=1.0),
        InvoiceItem(product_name="Arroz", quantity=2, price=1.0),
        InvoiceItem(product_name="Queso", quantity=3, price=1.0),
    ]
    with pytest.raises(ReconciliationAborted) as excinfo:
        reconciler.reconcile(items)

    assert excinfo.value.applied == [0]
    assert excinfo.value.failed_index == 1
    assert isinstance(excinfo.value.__cause__, StoreError)
    assert [p.name for p in db.list_products()] == ["Aceite"]


class _BrokenSink:
    def append(self, type, description, amount):
        raise StoreError("activity table locked")


def test_activity_failure_does_not_abort(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    reconciler = StockReconciler(db, db, _BrokenSink())
    catalog = reconciler.reconcile(
        [
            InvoiceItem(product_name="Aceite", quantity=1, price=1.0),
            InvoiceItem(product_name="Arroz", quantity=2, price=1.0),
        ]
    )
    assert [p.quantity for p in catalog] == [1, 2]


@pytest.mark.parametrize("price", [float("nan"), float("inf"), -float("inf")])
def test_non_finite_price_rejected_before_any_write(tmp_path: Path, price: float) -> None:
    db = _make_db(tmp_path)
    items = [
        InvoiceItem(product_name="Arroz", quantity=1, price=1.0),
        InvoiceItem(product_name="Aceite", quantity=1, price=price),
    ]
    with pytest.raises(InvalidInvoiceItemError):
        _reconciler(db).reconcile(items)
    assert db.list_products() == []


def test_merge_takes_new_supplier_and_keeps_it_without_one(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    old = db.upsert_supplier(Supplier(supplier_id=None, name="Bodega Vieja", rif="J-1"))
    db.upsert_product(Product(product_id=None, name="Arroz", quantity=2, supplier_id=old.supplier_id))
    reconciler = _reconciler(db)

    [arroz] = reconciler.reconcile(
        [InvoiceItem(product_name="Arroz", quantity=3, price=1.0)],
        SupplierInfo(name="Distribuidora Sol", rif="J-2"),
    )
    sol = next(s for s in db.list_suppliers() if s.rif == "J-2")
    assert arroz.supplier_id == sol.supplier_id != old.supplier_id

    [arroz] = reconciler.reconcile([InvoiceItem(product_name="Arroz", quantity=1, price=1.0)], None)
    assert arroz.supplier_id == sol.supplier_id
    assert arroz.quantity == 6
