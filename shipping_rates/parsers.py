"""
Row parsers for the two shipping tables.

Rows come from the Sheets API as lists of cell strings with trailing empty
cells omitted. A malformed row is logged and dropped; it never fails the
whole load.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Sequence

import pandas as pd

from shipping_rates.models import CountryConfig, ShippingRule


logger = logging.getLogger(__name__)

# Default ranges start at A2 (row 1 holds headers).
FIRST_DATA_ROW = 2

RULE_COLUMNS = ["country", "province", "district", "method", "min_weight", "max_weight", "price", "active"]
COUNTRY_COLUMNS = ["country_code", "label", "currency", "shipping_cost", "tax_rate", "free_shipping_threshold"]


def _cell(row: Sequence[Any], idx: int) -> str:
    if idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx]).strip()


def _to_number(raw: str) -> float:
    if not raw:
        return math.nan
    value = pd.to_numeric(raw, errors="coerce")
    return float(value) if not pd.isna(value) else math.nan


def parse_rule_row(row: Sequence[Any], row_index: int) -> ShippingRule | None:
    country, province, district, method, min_raw, max_raw, price_raw, active_raw = (
        _cell(row, i) for i in range(len(RULE_COLUMNS))
    )

    if not country or not method or not min_raw or not max_raw or not price_raw:
        return None

    min_weight = _to_number(min_raw)
    max_weight = _to_number(max_raw)
    price = _to_number(price_raw)

    if math.isnan(min_weight) or math.isnan(max_weight) or math.isnan(price):
        logger.warning(
            "Skipping row %d: invalid numeric values (%s, %s, %s)", row_index, min_raw, max_raw, price_raw
        )
        return None

    if min_weight > max_weight:
        logger.warning("Skipping row %d: min weight %s exceeds max weight %s", row_index, min_raw, max_raw)
        return None

    return ShippingRule(
        country=country,
        province=province,
        district=district,
        shipping_method=method,
        min_weight=min_weight,
        max_weight=max_weight,
        price=price,
        active=active_raw.lower() != "false",
        row_index=row_index,
    )


def parse_country_row(row: Sequence[Any], row_index: int) -> CountryConfig | None:
    country_code, label, currency = _cell(row, 0), _cell(row, 1), _cell(row, 2)

    if not country_code or not label or not currency:
        logger.warning(
            "Skipping country row %d: missing required fields (%s, %s, %s)",
            row_index,
            country_code,
            label,
            currency,
        )
        return None

    def number_or_zero(idx: int) -> float:
        value = _to_number(_cell(row, idx))
        return 0.0 if math.isnan(value) else value

    return CountryConfig(
        country_code=country_code,
        label=label,
        currency=currency,
        shipping_cost=number_or_zero(3),
        tax_rate=number_or_zero(4),
        free_shipping_threshold=number_or_zero(5),
        row_index=row_index,
    )


def parse_rule_rows(rows: Iterable[Sequence[Any]], *, first_row: int = FIRST_DATA_ROW) -> list[ShippingRule]:
    parsed = (parse_rule_row(row, idx + first_row) for idx, row in enumerate(rows))
    return [rule for rule in parsed if rule is not None]


def parse_country_rows(rows: Iterable[Sequence[Any]], *, first_row: int = FIRST_DATA_ROW) -> list[CountryConfig]:
    parsed = (parse_country_row(row, idx + first_row) for idx, row in enumerate(rows))
    return [cfg for cfg in parsed if cfg is not None]


def first_row_of_range(range_a1: str | None) -> int:
    """Sheet row number of the first cell in an A1 range ("Tab!A2:H1000" -> 2)."""
    if not range_a1:
        return FIRST_DATA_ROW
    cells = range_a1.rsplit("!", 1)[-1]
    start = cells.split(":", 1)[0]
    digits = "".join(ch for ch in start if ch.isdigit())
    return int(digits) if digits else 1
