from __future__ import annotations

from typing import Any, List

import pytest
import requests

from stockroom.inventory.rates import ExchangeRateClient, RateSnapshot


class _FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class _FakeSession:
    def __init__(self, response: Any) -> None:
        self.response = response
        self.headers: dict = {}
        self.calls: List[tuple] = []

    def get(self, url: str, timeout: int):
        self.calls.append((url, timeout))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


MONITORS = [
    {"codigo": "oficial", "nombre": "Oficial", "promedio": 36.52, "fechaActualizacion": "2024-05-01T12:00:00"},
    {"codigo": "paralelo", "nombre": "Paralelo", "promedio": 40.1},
    {"codigo": "bitcoin", "nombre": "Bitcoin", "promedio": 41.0},
]


def test_official_and_parallel_rates() -> None:
    session = _FakeSession(_FakeResponse(MONITORS))
    client = ExchangeRateClient("https://rates.example/v1/dolares", timeout=3, session=session)

    snapshot = client.get_rates()

    assert snapshot == RateSnapshot(official=36.52, parallel=40.1, last_update="2024-05-01T12:00:00")
    assert session.calls == [("https://rates.example/v1/dolares", 3)]


def test_monitor_found_by_display_name() -> None:
    session = _FakeSession(_FakeResponse([{"nombre": "Oficial", "promedio": "35.9"}]))
    snapshot = ExchangeRateClient(session=session).get_rates()
    assert snapshot.official == pytest.approx(35.9)
    assert snapshot.parallel is None


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("offline"),
        _FakeResponse(MONITORS, status_code=502),
        _FakeResponse(ValueError("not json")),
        _FakeResponse({"oficial": 36.5}),
        _FakeResponse([{"codigo": "oficial", "promedio": 0}, {"codigo": "paralelo", "promedio": None}]),
    ],
)
def test_failures_return_none(response) -> None:
    assert ExchangeRateClient(session=_FakeSession(response)).get_rates() is None
