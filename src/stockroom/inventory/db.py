from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, List, Optional

from ..domain.models import ActivityLog, Product, Supplier, utc_now_iso
from ..errors import StoreError
from ..logging import get_logger
from ..paths import find_project_root, var_dir
from .constants import ACTIVITY_TYPES, DEFAULT_CATEGORY, DEFAULT_MIN_STOCK, NO_RIF


LOG = get_logger("inventory-db")


DEFAULT_DB_FOLDER = "inventory"
DEFAULT_DB_FILENAME = "stock.sqlite3"

ACTIVITY_ENUM_SQL = ", ".join(f"'{value}'" for value in ACTIVITY_TYPES)


SCHEMA_SQL = f"""
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS suppliers (
  supplier_id  INTEGER PRIMARY KEY,
  name         TEXT NOT NULL,
  rif          TEXT NOT NULL DEFAULT '{NO_RIF}',
  first_seen   TEXT DEFAULT (datetime('now'))
);
-- One record per real tax identifier; the placeholder may repeat.
CREATE UNIQUE INDEX IF NOT EXISTS idx_suppliers_rif
  ON suppliers(rif) WHERE rif <> '{NO_RIF}' AND TRIM(rif) <> '';
CREATE INDEX IF NOT EXISTS idx_suppliers_name ON suppliers(LOWER(name));

CREATE TABLE IF NOT EXISTS products (
  product_id    INTEGER PRIMARY KEY,
  name          TEXT NOT NULL,
  quantity      INTEGER NOT NULL DEFAULT 0 CHECK(quantity >= 0),
  min_stock     INTEGER NOT NULL DEFAULT {DEFAULT_MIN_STOCK} CHECK(min_stock >= 0),
  price         REAL NOT NULL DEFAULT 0 CHECK(price >= 0),   -- canonical currency (USD)
  category      TEXT NOT NULL DEFAULT '{DEFAULT_CATEGORY}',
  last_updated  TEXT DEFAULT (datetime('now')),
  supplier_id   INTEGER REFERENCES suppliers(supplier_id) ON UPDATE CASCADE ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_products_name ON products(LOWER(name));

CREATE TABLE IF NOT EXISTS activity_logs (
  log_id       INTEGER PRIMARY KEY,
  type         TEXT NOT NULL CHECK(type IN ({ACTIVITY_ENUM_SQL})),
  logged_at    TEXT NOT NULL,
  description  TEXT NOT NULL,
  amount       INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_activity_logged_at ON activity_logs(logged_at);
"""


class InventoryDatabase:
    """SQLite-backed catalog, supplier and activity store.

    - Places the DB under `<repo-root>/var/inventory/stock.sqlite3` unless
      `db_path` is given.
    - Ensures schema on first use.
    - Opens one short-lived connection per operation; sqlite errors surface
      as `StoreError`.
    """

    def __init__(
        self,
        root_dir: Optional[str] = None,
        *,
        db_path: Optional[str] = None,
        timeout: float = 5.0,
    ) -> None:
        if db_path:
            self.db_path = os.path.abspath(db_path)
            folder = os.path.dirname(self.db_path)
        else:
            root = find_project_root(root_dir)
            folder = os.path.join(var_dir(root), DEFAULT_DB_FOLDER)
            self.db_path = os.path.join(folder, DEFAULT_DB_FILENAME)
        os.makedirs(folder, exist_ok=True)
        self.timeout = float(timeout)
        LOG.info(f"Inventory DB path: {self.db_path}")
        self._ensure_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open inventory database: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON;")
            yield conn
        except sqlite3.Error as exc:
            LOG.exception("Inventory database operation failed")
            raise StoreError(f"Inventory database error: {exc}") from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.OperationalError:
                # Non-fatal; continue with schema creation
                pass
            cur.executescript(SCHEMA_SQL)
            conn.commit()
            LOG.debug("Inventory DB schema ensured.")

    # --------------- Row mapping ---------------
    @staticmethod
    def _product(row: sqlite3.Row) -> Product:
        return Product(
            product_id=int(row["product_id"]),
            name=row["name"],
            quantity=int(row["quantity"]),
            min_stock=int(row["min_stock"]),
            price=float(row["price"]),
            category=row["category"],
            last_updated=row["last_updated"],
            supplier_id=row["supplier_id"],
        )

    @staticmethod
    def _supplier(row: sqlite3.Row) -> Supplier:
        return Supplier(
            supplier_id=int(row["supplier_id"]),
            name=row["name"],
            rif=row["rif"],
            first_seen=row["first_seen"],
        )

    # --------------- Catalog ---------------
    def list_products(self) -> List[Product]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM products ORDER BY product_id ASC;").fetchall()
        return [self._product(r) for r in rows]

    def get_product(self, product_id: int) -> Optional[Product]:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM products WHERE product_id = ?;", (int(product_id),)
            ).fetchone()
        return self._product(row) if row is not None else None

    def upsert_product(self, product: Product) -> Product:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO products (
                    product_id, name, quantity, min_stock, price, category, last_updated, supplier_id
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(product_id) DO UPDATE SET
                    name=excluded.name,
                    quantity=excluded.quantity,
                    min_stock=excluded.min_stock,
                    price=excluded.price,
                    category=excluded.category,
                    last_updated=excluded.last_updated,
                    supplier_id=excluded.supplier_id
                RETURNING *;
                """,
                (
                    product.product_id,
                    product.name,
                    int(product.quantity),
                    int(product.min_stock),
                    float(product.price),
                    product.category or DEFAULT_CATEGORY,
                    product.last_updated or utc_now_iso(),
                    product.supplier_id,
                ),
            )
            row = cur.fetchone()
            conn.commit()
        return self._product(row)

    # --------------- Suppliers ---------------
    def list_suppliers(self) -> List[Supplier]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM suppliers ORDER BY supplier_id ASC;").fetchall()
        return [self._supplier(r) for r in rows]

    def upsert_supplier(self, supplier: Supplier) -> Supplier:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO suppliers (supplier_id, name, rif, first_seen)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(supplier_id) DO UPDATE SET
                    name=excluded.name,
                    rif=excluded.rif
                RETURNING *;
                """,
                (
                    supplier.supplier_id,
                    supplier.name,
                    supplier.rif or NO_RIF,
                    supplier.first_seen or utc_now_iso(),
                ),
            )
            row = cur.fetchone()
            conn.commit()
        return self._supplier(row)

    # --------------- Activity ---------------
    def append(self, type: str, description: str, amount: int) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO activity_logs (type, logged_at, description, amount) VALUES (?, ?, ?, ?);",
                (type, utc_now_iso(), description, int(amount)),
            )
            conn.commit()

    def list_activity(self, limit: int = 50) -> List[ActivityLog]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM activity_logs ORDER BY log_id DESC LIMIT ?;", (int(limit),)
            ).fetchall()
        return [
            ActivityLog(
                log_id=int(r["log_id"]),
                type=r["type"],
                timestamp=r["logged_at"],
                description=r["description"],
                amount=int(r["amount"]),
            )
            for r in rows
        ]
