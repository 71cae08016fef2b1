"""
ShippingRateService - cached shipping rate resolution.

Loads the rate rules and country defaults from a TableSource, keeps them in
memory for a fixed TTL, and resolves the single applicable rule for a
shipment.

Usage:
    service = ShippingRateService.from_config(load_app_config(Path("config.toml")))
    match = service.get_price(
        PriceQuery(country="VN", province="HCMC", district="D1", weight=2.0, method="standard")
    )
"""

from __future__ import annotations

from dataclasses import replace
import logging
import threading
import time
from typing import Callable

from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError
import httplib2

from shipping_rates.config import AppConfig, SheetsConfig, ShippingConfig
from shipping_rates.errors import SheetFetchError, ShippingRatesError
from shipping_rates.matching import resolve_method, select_rule
from shipping_rates.models import CacheMeta, CacheSnapshot, CountryConfig, PriceMatch, PriceQuery, ShippingRule
from shipping_rates.parsers import first_row_of_range, parse_country_rows, parse_rule_rows
from shipping_rates.sheets import GoogleSheetsTableSource, TableSource


logger = logging.getLogger(__name__)


class ShippingRateService:
    """
    Owns the shipping rate cache.

    Staleness is checked lazily on access; there is no background refresh.
    Reloads are single-flight: callers that find the cache stale queue on one
    lock, and whoever gets it after a reload sees a new snapshot and skips the
    fetch.
    """

    def __init__(
        self,
        *,
        source: TableSource,
        sheets: SheetsConfig,
        shipping: ShippingConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._rules_range = sheets.rules_range
        self._countries_range = sheets.countries_range
        self._ttl_ms = int(shipping.cache_ttl_ms)
        self._currency = shipping.currency
        self._supported_methods = tuple(shipping.supported_methods)
        self._default_method = shipping.default_method
        self._clock = clock

        self._snapshot = CacheSnapshot()
        self._load_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: AppConfig, *, source: TableSource | None = None) -> ShippingRateService:
        return cls(
            source=source or GoogleSheetsTableSource.from_config(config.sheets),
            sheets=config.sheets,
            shipping=config.shipping,
        )

    # --- cache ---

    def _is_stale(self, snapshot: CacheSnapshot) -> bool:
        if not snapshot.rules or snapshot.loaded_at is None:
            return True
        age_ms = (self._clock() - snapshot.loaded_at) * 1000.0
        return age_ms > self._ttl_ms

    def ensure_loaded(self) -> CacheSnapshot:
        observed = self._snapshot
        if not self._is_stale(observed):
            return observed

        with self._load_lock:
            # A reload finished while we waited, even if it came back empty.
            snapshot = self._snapshot
            if snapshot is not observed or not self._is_stale(snapshot):
                return snapshot
            return self._load()

    def load_from_sheet(self) -> CacheSnapshot:
        """Forced reload, ignoring the TTL."""
        with self._load_lock:
            return self._load()

    def _load(self) -> CacheSnapshot:
        try:
            rule_rows = self._source.fetch_range(self._rules_range)
            country_rows = self._source.fetch_range(self._countries_range) if self._countries_range else []
        except ShippingRatesError:
            raise
        except (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError) as e:
            logger.exception("Failed to load shipping config from Google Sheets")
            raise SheetFetchError("Unable to load shipping configuration", range_a1=self._rules_range) from e

        rules = parse_rule_rows(rule_rows, first_row=first_row_of_range(self._rules_range))
        countries = parse_country_rows(country_rows, first_row=first_row_of_range(self._countries_range))

        snapshot = CacheSnapshot(rules=tuple(rules), country_configs=tuple(countries), loaded_at=self._clock())
        self._snapshot = snapshot

        logger.info("Loaded %d shipping rules from Google Sheet", len(rules))
        if self._countries_range:
            logger.info("Loaded %d country configs from Google Sheet", len(countries))
        return snapshot

    def get_cache_meta(self) -> CacheMeta:
        return self._snapshot.meta(ttl_ms=self._ttl_ms)

    # --- queries ---

    def get_price(self, query: PriceQuery) -> PriceMatch | None:
        snapshot = self.ensure_loaded()
        method = resolve_method(
            query.method,
            default_method=self._default_method,
            supported_methods=self._supported_methods,
        )
        return select_rule(snapshot.rules, replace(query, method=method))

    def get_all_rules(self) -> list[ShippingRule]:
        return list(self.ensure_loaded().rules)

    def get_country_configs(self) -> list[CountryConfig]:
        return list(self.ensure_loaded().country_configs)

    def get_currency(self) -> str:
        return self._currency

    def get_default_method(self) -> str:
        return self._default_method

    def get_supported_methods(self) -> list[str]:
        return list(self._supported_methods)
