# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from .rules import rule
from .util import as_ml, clamp, parse_num, round_half_up

PERIODS = (6, 12, 24)


@dataclass
class CalcResult:
    value: Optional[float]
    formula: Optional[str] = None


def parse_period(x: Any) -> int:
    """6 | 12 | 24; anything else falls back to 24h."""
    v = parse_num(x)
    if v is None:
        return 24
    p = int(v)
    return p if p in PERIODS and p == v else 24


def period_factor(period_hours: int) -> float:
    return 24.0 / period_hours


def scale_to_24h(value_ml: float, period_hours: int) -> int:
    """Period total -> 24h equivalent. Apply once per aggregated total, not per field."""
    return round_half_up(value_ml * period_factor(period_hours))


def parse_volume(x: Any, rules: Optional[Dict[str, Any]] = None) -> Optional[float]:
    return clamp(parse_num(x), rule(rules, "volume", "min_ml"), rule(rules, "volume", "max_ml"))


def parse_weight(x: Any, rules: Optional[Dict[str, Any]] = None) -> Optional[float]:
    """kg in (0, max]; otherwise None (not clamped)."""
    v = parse_num(x)
    if v is None:
        return None
    if v <= 0 or v > rule(rules, "weight", "max_kg"):
        return None
    return v


def parse_temperature(x: Any, rules: Optional[Dict[str, Any]] = None) -> float:
    v = parse_num(x)
    if v is None:
        return rule(rules, "temperature", "default_c")
    return clamp(v, rule(rules, "temperature", "min_c"), rule(rules, "temperature", "max_c"))  # type: ignore[return-value]


def parse_spo2(x: Any, rules: Optional[Dict[str, Any]] = None) -> Optional[float]:
    return clamp(parse_num(x), rule(rules, "spo2", "min_pct"), rule(rules, "spo2", "max_pct"))


def parse_fio2(x: Any, rules: Optional[Dict[str, Any]] = None) -> Optional[float]:
    return clamp(parse_num(x), rule(rules, "fio2", "min_pct"), rule(rules, "fio2", "max_pct"))


def sum_ml(values: Iterable[Optional[float]]) -> int:
    return round_half_up(sum(as_ml(v) for v in values))


def calc_perspiration(
    weight_kg: Optional[float],
    fever: bool = False,
    temp_c: float = 37.0,
    fever_persistent: bool = False,
    antipyretic: bool = False,
    vent_active: bool = False,
    humidified: bool = False,
    skin_factor: float = 0.0,
    rules: Optional[Dict[str, Any]] = None,
) -> CalcResult:
    """
    Insensible loss in mL/24h: weight · 10 · factor.
    Always defined on a 24h basis; never period-scaled.
    """
    if weight_kg is None:
        return CalcResult(None)

    base = weight_kg * rule(rules, "perspiration", "base_ml_per_kg")
    factor = 1.0
    terms = []

    if fever:
        delta = max(0.0, temp_c - rule(rules, "perspiration", "reference_temp_c"))
        f = 1 + rule(rules, "perspiration", "per_degree") * delta
        factor *= f
        terms.append(f"{f:.2f} (febbre)")
        if fever_persistent:
            key = "persistent_fever_antipyretic" if antipyretic else "persistent_fever"
            f = 1 + rule(rules, "perspiration", key)
            factor *= f
            terms.append(f"{f:.2f} (febbre >24h)")

    if vent_active:
        f = rule(rules, "perspiration", "humidified" if humidified else "not_humidified")
        factor *= f
        terms.append(f"{f:.2f} (ventilazione)")

    if skin_factor > 0:
        factor *= 1 + skin_factor
        terms.append(f"{1 + skin_factor:.2f} (cute)")

    value = round_half_up(base * factor)
    formula = f"{weight_kg:g} kg · {rule(rules, 'perspiration', 'base_ml_per_kg'):g} mL/kg"
    if terms:
        formula += " · " + " · ".join(terms)
    return CalcResult(value, formula=f"{formula} = {value} mL/24h")


def calc_balance(in_24h: float, out_24h: float, perspiration_24h: Optional[float] = None, ect_24h: float = 0) -> int:
    """IN − (OUT + perspiratio + ECT); absent perspiration counts as 0."""
    p = perspiration_24h if perspiration_24h is not None else 0
    return round_half_up(in_24h - (out_24h + p + ect_24h))


def calc_weight_delta(weight_kg: Optional[float], dry_weight_kg: Optional[float]) -> Optional[float]:
    """Current minus dry weight, one decimal."""
    if weight_kg is None or dry_weight_kg is None:
        return None
    return round_half_up((weight_kg - dry_weight_kg) * 10) / 10
