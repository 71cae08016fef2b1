"""
Internal models for shipping rate resolution.

Both source tables (rate rules and country defaults) are parsed into these
records. They are independent siblings: nothing links a rule to a country
config beyond the country string.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass(frozen=True)
class ShippingRule:
    """
    One row of the rate table.

    Attributes:
        country: Destination country (e.g. "VN")
        province: Province; empty means "any province"
        district: District; empty means "any district"
        shipping_method: Method key (e.g. "standard", "express")
        min_weight: Inclusive lower bound, kg
        max_weight: Inclusive upper bound, kg
        price: Rate in major units of the configured currency
        active: Inactive rules are never matched
        row_index: 1-based source row, used as the last tie-break
    """
    country: str
    province: str
    district: str
    shipping_method: str
    min_weight: float
    max_weight: float
    price: float
    active: bool = True
    row_index: int = 0

    @property
    def weight_span(self) -> float:
        return self.max_weight - self.min_weight


@dataclass(frozen=True)
class CountryConfig:
    country_code: str
    label: str
    currency: str
    shipping_cost: float = 0.0
    tax_rate: float = 0.0
    free_shipping_threshold: float = 0.0
    row_index: int = 0


@dataclass(frozen=True)
class PriceQuery:
    country: str
    province: str
    district: str
    weight: float
    method: str | None = None


@dataclass(frozen=True)
class PriceMatch:
    price: float
    rule: ShippingRule


@dataclass(frozen=True)
class CacheMeta:
    last_loaded_at: datetime | None
    ttl_ms: int
    expires_at: datetime | None
    total_rules: int
    total_country_configs: int


@dataclass(frozen=True)
class CacheSnapshot:
    """Loaded tables plus load time (epoch seconds). Replaced wholesale on reload."""
    rules: tuple[ShippingRule, ...] = ()
    country_configs: tuple[CountryConfig, ...] = ()
    loaded_at: float | None = None

    def meta(self, *, ttl_ms: int) -> CacheMeta:
        last_loaded_at = None
        expires_at = None
        if self.loaded_at is not None:
            last_loaded_at = datetime.fromtimestamp(self.loaded_at, tz=timezone.utc)
            expires_at = last_loaded_at + timedelta(milliseconds=ttl_ms)
        return CacheMeta(
            last_loaded_at=last_loaded_at,
            ttl_ms=ttl_ms,
            expires_at=expires_at,
            total_rules=len(self.rules),
            total_country_configs=len(self.country_configs),
        )
