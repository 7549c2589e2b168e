from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ..config import DEFAULT_RATE_TIMEOUT, DEFAULT_RATE_URL
from ..domain.currency import is_valid_rate
from ..logging import get_logger


@dataclass
class RateSnapshot:
    official: Optional[float]
    parallel: Optional[float]
    last_update: Optional[str] = None


def _monitor(entries: List[Dict[str, Any]], code: str, name: str) -> Optional[Dict[str, Any]]:
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if entry.get("codigo") == code or entry.get("nombre") == name:
            return entry
    return None


def _rate(entry: Optional[Dict[str, Any]]) -> Optional[float]:
    if entry is None:
        return None
    try:
        value = float(entry.get("promedio"))
    except (TypeError, ValueError):
        return None
    return value if is_valid_rate(value) else None


class ExchangeRateClient:
    """One-shot reader for the public Bs/USD monitor list.

    There is no polling or caching here; callers fetch when they need a rate
    and fall back to a manually entered one when this returns None.
    """

    def __init__(
        self,
        url: str = DEFAULT_RATE_URL,
        *,
        timeout: int = DEFAULT_RATE_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout = int(timeout)
        self.log = get_logger("rates-client")
        self.s = session or requests.Session()
        self.s.headers.update({"Accept": "application/json"})

    def get_rates(self) -> Optional[RateSnapshot]:
        try:
            r = self.s.get(self.url, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            self.log.warning(f"Exchange rate fetch failed: {e}")
            return None
        if not isinstance(data, list):
            self.log.warning(f"Unexpected exchange rate payload type: {type(data).__name__}")
            return None

        official = _monitor(data, "oficial", "Oficial")
        parallel = _monitor(data, "paralelo", "Paralelo")
        snapshot = RateSnapshot(
            official=_rate(official),
            parallel=_rate(parallel),
            last_update=(official or {}).get("fechaActualizacion"),
        )
        if snapshot.official is None and snapshot.parallel is None:
            self.log.warning("Exchange rate payload had no usable official or parallel rate")
            return None
        self.log.info(f"Exchange rates: official={snapshot.official} parallel={snapshot.parallel}")
        return snapshot
