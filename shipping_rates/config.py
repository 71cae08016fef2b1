from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import tomllib
from typing import Mapping

from dotenv import load_dotenv

from shipping_rates.errors import ShippingConfigError


DEFAULT_RULES_RANGE = "shipping_config!A2:H1000"
DEFAULT_COUNTRIES_RANGE = "shipping_config!A2:F1000"
DEFAULT_CACHE_TTL_MS = 10 * 60 * 1000
DEFAULT_CURRENCY = "VND"
DEFAULT_METHODS = ("standard", "express")


@dataclass(frozen=True)
class SheetsConfig:
    sheet_id: str
    rules_range: str
    countries_range: str | None
    credentials_json: str | None
    credentials_file: str | None


@dataclass(frozen=True)
class ShippingConfig:
    cache_ttl_ms: int
    currency: str
    supported_methods: tuple[str, ...]

    @property
    def default_method(self) -> str:
        return self.supported_methods[0] if self.supported_methods else "standard"


@dataclass(frozen=True)
class AppConfig:
    sheets: SheetsConfig
    shipping: ShippingConfig
    log_level: str = "INFO"


def parse_methods(raw: str | list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    if raw is None:
        return ()
    items = raw.split(",") if isinstance(raw, str) else [str(x) for x in raw]
    return tuple(m.strip() for m in items if m.strip())


def load_app_config(config_path: Path | None = None) -> AppConfig:
    raw: dict = {}
    if config_path is not None:
        config_path = config_path.resolve()
        env_path = config_path.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
        if config_path.exists():
            with config_path.open("rb") as f:
                raw = tomllib.load(f)

    return build_app_config(raw=raw, env=os.environ)


def build_app_config(*, raw: dict, env: Mapping[str, str]) -> AppConfig:
    shipping_raw = raw.get("shipping", {})

    def pick(env_key: str, toml_key: str, default: str | None) -> str | None:
        value = env.get(env_key)
        if value is not None and value.strip():
            return value
        value = shipping_raw.get(toml_key)
        return default if value is None else str(value)

    # An explicitly blank countries range disables the country table.
    if "SHIPPING_COUNTRY_RANGE" in env:
        countries_range = env["SHIPPING_COUNTRY_RANGE"]
    else:
        countries_range = pick("SHIPPING_COUNTRY_RANGE", "countries_range", DEFAULT_COUNTRIES_RANGE) or ""

    methods = parse_methods(env.get("SHIPPING_METHODS"))
    if not methods:
        methods = parse_methods(shipping_raw.get("supported_methods"))
    if not methods:
        methods = DEFAULT_METHODS

    ttl_raw = pick("SHIPPING_CACHE_TTL_MS", "cache_ttl_ms", None)
    try:
        cache_ttl_ms = int(float(ttl_raw)) if ttl_raw not in (None, "") else DEFAULT_CACHE_TTL_MS
    except (ValueError, OverflowError) as e:
        raise ShippingConfigError(f"Invalid cache TTL: {ttl_raw!r}") from e

    return AppConfig(
        sheets=SheetsConfig(
            sheet_id=(pick("GOOGLE_SHEETS_ID", "sheet_id", "") or "").strip(),
            rules_range=pick("GOOGLE_SHEETS_RANGE", "rules_range", DEFAULT_RULES_RANGE) or DEFAULT_RULES_RANGE,
            countries_range=countries_range.strip() or None,
            credentials_json=env.get("GOOGLE_SHEETS_SECRET_KEY") or None,
            credentials_file=env.get("GOOGLE_APPLICATION_CREDENTIALS") or None,
        ),
        shipping=ShippingConfig(
            cache_ttl_ms=cache_ttl_ms,
            currency=pick("SHIPPING_CURRENCY", "currency", DEFAULT_CURRENCY) or DEFAULT_CURRENCY,
            supported_methods=methods,
        ),
        log_level=str(env.get("LOG_LEVEL") or raw.get("logging", {}).get("level", "INFO")).upper(),
    )
