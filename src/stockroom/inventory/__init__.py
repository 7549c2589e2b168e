"""Inventory package: catalog store, invoice reconciliation and the JSON API.

Modules:
- db: SQLite store for products, suppliers and the activity log
- parser: extraction payload validation
- aliases: rename scanned items/suppliers to known catalog entries
- suppliers: supplier deduplication
- reconcile: merge confirmed invoice lines into the catalog
- service: stock-out, CSV import, edits, stats and search
- review: scan previews and totals shown before confirmation
- alerts: low-stock detection
- rates: exchange-rate source client
"""

from .db import InventoryDatabase
from .reconcile import StockReconciler
from .service import InventoryService
from .frontend.app import create_app

__all__ = [
    "InventoryDatabase",
    "StockReconciler",
    "InventoryService",
    "create_app",
]
