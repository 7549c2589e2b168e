from __future__ import annotations

from typing import List, Optional


class StockroomError(Exception):
    pass


class StoreError(StockroomError):
    """A catalog, supplier or activity store could not be read or written."""


class ReconciliationAborted(StoreError):
    """A store failure stopped an invoice batch part-way through.

    Items listed in `applied` were committed before the failure and are not
    rolled back; retrying the whole invoice would add them a second time.
    """

    def __init__(self, message: str, *, applied: List[int], failed_index: Optional[int]) -> None:
        super().__init__(message)
        self.applied = list(applied)
        self.failed_index = failed_index


class CurrencyError(StockroomError, ValueError):
    pass


class InvalidExchangeRateError(CurrencyError):
    pass


class UnsupportedCurrencyError(CurrencyError):
    pass


class InvalidQuantityError(StockroomError, ValueError):
    pass


class InvalidInvoiceItemError(StockroomError, ValueError):
    pass


class InvoiceValidationError(StockroomError, ValueError):
    pass


class ProductNotFoundError(StockroomError, LookupError):
    pass
