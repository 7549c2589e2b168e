from __future__ import annotations

from stockroom.domain.models import Product, Supplier
from stockroom.inventory.csv_io import CsvRow, export_csv, parse_csv_text, parse_leading_float, parse_leading_int


def test_parse_rows_with_defaults() -> None:
    text = "\n".join(
        [
            "name,quantity,price,minStock,category",
            "Arroz,20,1.50,5,Alimentos",
            "Aceite,abc,-3,,",
            '"Queso, blanco",2,4.5,1,Lácteos,extra,columns',
            "",
            "  ,5,1,1,X",
            "solo",
        ]
    )
    rows = parse_csv_text(text)
    assert rows == [
        CsvRow(name="Arroz", quantity=20, price=1.5, min_stock=5, category="Alimentos"),
        CsvRow(name="Aceite", quantity=0, price=0.0, min_stock=10, category="General"),
        CsvRow(name="Queso, blanco", quantity=2, price=4.5, min_stock=1, category="Lácteos"),
    ]


def test_header_only_gives_no_rows() -> None:
    assert parse_csv_text("name,quantity") == []
    assert parse_csv_text("") == []


def test_leading_number_parsing() -> None:
    assert parse_leading_int("12 uds", 0) == 12
    assert parse_leading_int("0", 10) == 0
    assert parse_leading_int("-4", 10) == 10
    assert parse_leading_float("2.75$", 0.0) == 2.75
    assert parse_leading_float(".5", 0.0) == 0.5
    assert parse_leading_float("n/a", 1.0) == 1.0


def test_export_layout() -> None:
    products = [
        Product(product_id=1, name="Arroz", quantity=20, min_stock=5, price=1.5, category="Alimentos", last_updated="t1", supplier_id=7),
        Product(product_id=2, name="Sal", quantity=1, price=0.333, last_updated="t2"),
    ]
    text = export_csv(products, [Supplier(supplier_id=7, name="Distribuidora Sol", rif="J-1")])
    lines = text.splitlines()
    assert lines[0] == "name,quantity,price,min_stock,category,supplier,last_updated"
    assert lines[1] == "Arroz,20,1.50,5,Alimentos,Distribuidora Sol,t1"
    assert lines[2] == "Sal,1,0.33,10,General,N/A,t2"
    # The first five columns feed straight back into the importer.
    assert [r.name for r in parse_csv_text(text)] == ["Arroz", "Sal"]


def test_zero_min_stock_falls_back_to_default() -> None:
    [row] = parse_csv_text("h\nSal,3,1,0,Condimentos\n")
    assert row.min_stock == 10


def test_out_of_range_numbers_use_defaults() -> None:
    [row] = parse_csv_text("h\nSal," + "9" * 30 + "," + "9" * 400 + ",5\n")
    assert row.quantity == 0
    assert row.price == 0.0
    assert row.min_stock == 5
