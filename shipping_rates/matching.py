from __future__ import annotations

from typing import Iterable

from shipping_rates.errors import UnsupportedMethodError
from shipping_rates.models import PriceMatch, PriceQuery, ShippingRule


def normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def resolve_method(method: str | None, *, default_method: str, supported_methods: Iterable[str]) -> str:
    """Apply the default method and reject anything outside the supported list."""
    requested = method if method is not None and method.strip() else default_method
    supported = list(supported_methods)
    if supported and normalize(requested) not in {normalize(m) for m in supported}:
        raise UnsupportedMethodError(requested, supported)
    return requested


def rule_matches(rule: ShippingRule, query: PriceQuery) -> bool:
    if not rule.active:
        return False
    if normalize(rule.country) != normalize(query.country):
        return False
    # Empty province / district on a rule is a wildcard.
    if rule.province and normalize(rule.province) != normalize(query.province):
        return False
    if rule.district and normalize(rule.district) != normalize(query.district):
        return False
    if normalize(rule.shipping_method) != normalize(query.method):
        return False
    return rule.min_weight <= query.weight <= rule.max_weight


def specificity_key(rule: ShippingRule) -> tuple[float, int, int, int]:
    """Sort key: narrow weight band, then named district, then named province, then row order."""
    return (
        rule.weight_span,
        0 if rule.district else 1,
        0 if rule.province else 1,
        rule.row_index,
    )


def select_rule(rules: Iterable[ShippingRule], query: PriceQuery) -> PriceMatch | None:
    candidates = [rule for rule in rules if rule_matches(rule, query)]
    if not candidates:
        return None
    best = min(candidates, key=specificity_key)
    return PriceMatch(price=best.price, rule=best)
