"""
Shipping rate resolution

Loads shipping rate rules and per-country defaults from a Google Sheet,
caches them with a TTL, and resolves the most specific rule for a shipment:
- Narrowest weight band wins
- Then district-specific, then province-specific rules
- Then the earliest row

Usage:
    from shipping_rates import ShippingRateService, PriceQuery

    service = ShippingRateService.from_config(load_app_config(Path("config.toml")))
    match = service.get_price(PriceQuery(country="VN", province="HCMC", district="D1", weight=2.0))
"""

from .config import AppConfig, load_app_config
from .errors import ShippingConfigError, ShippingRatesError, SheetFetchError, UnsupportedMethodError
from .models import CacheMeta, CountryConfig, PriceMatch, PriceQuery, ShippingRule
from .service import ShippingRateService

__all__ = [
    "AppConfig",
    "CacheMeta",
    "CountryConfig",
    "PriceMatch",
    "PriceQuery",
    "SheetFetchError",
    "ShippingConfigError",
    "ShippingRateService",
    "ShippingRatesError",
    "ShippingRule",
    "UnsupportedMethodError",
    "load_app_config",
]
