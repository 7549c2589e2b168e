"""
Stockroom – stock ledger and invoice reconciliation for a small retail shop.

Shared utilities (config, logging, paths) live at the top level; the
domain package holds the pure currency/matching logic and the inventory
package holds the stores, the reconciliation engine and its surfaces.
"""

__all__ = [
    "config",
    "logging",
    "paths",
]

__version__ = "0.1.0"
