from __future__ import annotations

from pathlib import Path

from stockroom.domain.models import InvoiceItem, Product, Supplier, SupplierInfo
from stockroom.errors import StoreError
from stockroom.inventory.aliases import resolve_aliases, resolve_supplier_alias
from stockroom.inventory.db import InventoryDatabase
from stockroom.inventory.suppliers import has_real_rif, register_supplier


def _make_db(root: Path) -> InventoryDatabase:
    (root / "README.md").write_text("marker", encoding="utf-8")
    return InventoryDatabase(root_dir=str(root))


class _UnreadableStore:
    def list_products(self):
        raise StoreError("catalog offline")

    def list_suppliers(self):
        raise StoreError("catalog offline")


def test_aliases_rewrite_name_and_category(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    db.upsert_product(Product(product_id=None, name="Harina PAN", category="Harinas"))
    items = [
        InvoiceItem(product_name="harina pan", quantity=2, price=1.0, category="Otros"),
        InvoiceItem(product_name="Harina PAN 1kg", quantity=1, price=1.0, category="Otros"),
    ]

    resolved = resolve_aliases(items, db)

    assert (resolved[0].product_name, resolved[0].category) == ("Harina PAN", "Harinas")
    # Only exact matches are rewritten.
    assert resolved[1] == items[1]


def test_aliases_with_unreadable_catalog_return_input() -> None:
    items = [InvoiceItem(product_name="Arroz", quantity=1, price=1.0)]
    assert resolve_aliases(items, _UnreadableStore()) == items


def test_supplier_alias_uses_stored_record(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    db.upsert_supplier(Supplier(supplier_id=None, name="Distribuidora El Sol C.A.", rif="J-123"))

    resolved = resolve_supplier_alias(SupplierInfo(name="el sol"), db)
    assert resolved == SupplierInfo(name="Distribuidora El Sol C.A.", rif="J-123")

    unknown = SupplierInfo(name="Otro", rif="J-9")
    assert resolve_supplier_alias(unknown, db) is unknown
    assert resolve_supplier_alias(unknown, _UnreadableStore()) is unknown
    assert resolve_supplier_alias(None, db) is None


def test_register_supplier_is_idempotent(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    first = register_supplier(db, "Distribuidora Sol", "J-30000000-1")
    second = register_supplier(db, "Distribuidora Sol", "J-30000000-1")
    assert first.supplier_id == second.supplier_id
    assert len(db.list_suppliers()) == 1


def test_register_supplier_matches_by_rif_or_name(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    original = register_supplier(db, "Distribuidora Sol", "J-1")

    assert register_supplier(db, "DISTRIBUIDORA SOL C.A.", "J-1").supplier_id == original.supplier_id
    assert register_supplier(db, "  distribuidora sol ", "J-2").supplier_id == original.supplier_id
    assert register_supplier(db, "Lácteos Andinos", "J-3").supplier_id != original.supplier_id
    assert len(db.list_suppliers()) == 2


def test_placeholder_rif_never_matches(tmp_path: Path) -> None:
    db = _make_db(tmp_path)
    a = register_supplier(db, "Bodega A", "N/A")
    b = register_supplier(db, "Bodega B", "N/A")
    assert a.supplier_id != b.supplier_id
    assert not has_real_rif("N/A")
    assert not has_real_rif("  ")
    assert has_real_rif("J-1")
