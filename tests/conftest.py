from __future__ import annotations

from typing import Callable

import pytest

from shipping_rates.config import SheetsConfig, ShippingConfig
from shipping_rates.service import ShippingRateService


RULES_RANGE = "shipping_config!A2:H1000"
COUNTRIES_RANGE = "countries!A2:F1000"

VN_RULES = [
    ["VN", "", "", "standard", "0", "5", "30000", "TRUE"],
    ["VN", "HCMC", "D1", "standard", "0", "5", "20000", "TRUE"],
]

COUNTRY_ROWS = [
    ["VN", "Vietnam", "VND", "30000", "0.1", "500000"],
    ["US", "United States", "USD", "15", "0.08", "100"],
]


class StubTableSource:
    """In-memory TableSource keyed by range; counts fetches per range."""

    def __init__(self, tables: dict[str, list[list[str]]] | None = None, *, error: Exception | None = None):
        self.tables = tables or {}
        self.error = error
        self.calls: list[str] = []

    def fetch_range(self, range_a1: str) -> list[list[str]]:
        self.calls.append(range_a1)
        if self.error is not None:
            raise self.error
        return [list(row) for row in self.tables.get(range_a1, [])]

    def fetch_count(self, range_a1: str = RULES_RANGE) -> int:
        return self.calls.count(range_a1)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_service(clock: FakeClock) -> Callable[..., ShippingRateService]:
    def _make(
        rules: list[list[str]] | None = None,
        countries: list[list[str]] | None = None,
        *,
        source: StubTableSource | None = None,
        ttl_ms: int = 60_000,
        methods: tuple[str, ...] = ("standard", "express"),
        countries_range: str | None = COUNTRIES_RANGE,
    ) -> ShippingRateService:
        if source is None:
            tables = {RULES_RANGE: VN_RULES if rules is None else rules}
            if countries_range:
                tables[countries_range] = COUNTRY_ROWS if countries is None else countries
            source = StubTableSource(tables)
        return ShippingRateService(
            source=source,
            sheets=SheetsConfig(
                sheet_id="sheet-123",
                rules_range=RULES_RANGE,
                countries_range=countries_range,
                credentials_json=None,
                credentials_file=None,
            ),
            shipping=ShippingConfig(cache_ttl_ms=ttl_ms, currency="VND", supported_methods=methods),
            clock=clock,
        )

    return _make
