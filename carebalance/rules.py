# -*- coding: utf-8 -*-
"""
rules.py

Soglie e coefficienti del calcolo (bilancio, perspiratio, SpO₂, alert).

- DEFAULT_RULES è sempre completo: il motore funziona anche senza YAML.
- rules.yaml (accanto a questo modulo, oppure il file indicato da
  $CAREBALANCE_RULES) viene fuso sopra i default; chiavi mancanti restano
  ai valori di default.

Nota: i coefficienti clinici vanno validati dal reparto prima dell'uso.
"""

from __future__ import annotations

import copy
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .version import RULES_SCHEMA_VERSION

logger = logging.getLogger(__name__)

RULES_PATH = Path(__file__).resolve().parent / "rules.yaml"
RULES_ENV = "CAREBALANCE_RULES"


DEFAULT_RULES: dict = {
    "schema_version": RULES_SCHEMA_VERSION,
    # Volumi per singola voce (mL nel periodo)
    "volume": {
        "min_ml": 0,
        "max_ml": 50000,
    },
    # Peso valido solo in (0, max_kg]
    "weight": {
        "max_kg": 300,
    },
    "temperature": {
        "min_c": 34,
        "max_c": 42,
        "default_c": 37.0,
        "high_fever_c": 39.5,
    },
    # Fasce SpO₂: limiti superiori stretti (<85, <88, <92, <96, resto)
    "spo2": {
        "min_pct": 50,
        "max_pct": 100,
        "critical_lt": 85,
        "severe_lt": 88,
        "borderline_lt": 92,
        "optimal_lt": 96,
    },
    "fio2": {
        "min_pct": 21,
        "max_pct": 100,
    },
    # Perspiratio: 10 mL/kg/24h, poi fattori moltiplicativi
    "perspiration": {
        "base_ml_per_kg": 10,
        "reference_temp_c": 37.0,
        "per_degree": 0.10,
        "persistent_fever": 0.05,
        "persistent_fever_antipyretic": 0.02,
        "humidified": 0.90,
        "not_humidified": 1.10,
    },
    "skin": {
        "moderate": 0.15,
        "severe": 0.30,
    },
}


def deep_merge_dict(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursive merge:
    - dict + dict -> merge
    - otherwise patch wins
    """
    out = copy.deepcopy(base)
    for k, v in patch.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_merge_dict(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        obj = yaml.safe_load(f) or {}
    return obj


def check_rules(obj: Dict[str, Any]) -> List[str]:
    """Structural problems of a rules mapping (empty list = ok)."""
    errors: List[str] = []
    if not isinstance(obj, dict):
        return [f"expected a mapping, got {type(obj).__name__}"]

    ver = obj.get("schema_version")
    if ver != RULES_SCHEMA_VERSION:
        errors.append(f"schema_version expected {RULES_SCHEMA_VERSION}, found {ver}")

    for section, values in obj.items():
        if section == "schema_version":
            continue
        defaults = DEFAULT_RULES.get(section)
        if defaults is None:
            errors.append(f"[{section}] unknown section")
            continue
        if not isinstance(values, dict):
            errors.append(f"[{section}] expected a mapping")
            continue
        for key, v in values.items():
            if key not in defaults:
                errors.append(f"[{section}] unknown key '{key}'")
            elif isinstance(v, bool) or not isinstance(v, (int, float)):
                errors.append(f"[{section}] '{key}' must be numeric, got {v!r}")

    spo2 = obj.get("spo2") or {}
    if isinstance(spo2, dict):
        merged = {**DEFAULT_RULES["spo2"], **spo2}
        cuts = [merged[k] for k in ("critical_lt", "severe_lt", "borderline_lt", "optimal_lt")]
        if all(isinstance(c, (int, float)) for c in cuts) and cuts != sorted(cuts):
            errors.append("[spo2] band thresholds must be ascending")
    return errors


def load_rules(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    DEFAULT_RULES merged with the YAML file at `path` (default: $CAREBALANCE_RULES
    or the packaged rules.yaml). A missing file yields the defaults.
    Raises ValueError for unreadable YAML or any problem found by check_rules.
    """
    if path is None:
        env = os.environ.get(RULES_ENV)
        path = Path(env) if env else RULES_PATH
    try:
        obj = load_yaml(Path(path))
    except yaml.YAMLError as e:
        raise ValueError(f"{path}: {e}") from e
    if not obj:
        logger.debug("no rules file at %s, using defaults", path)
        return copy.deepcopy(DEFAULT_RULES)
    # Bad config fails here once, never later inside rule()
    errors = check_rules(obj)
    if errors:
        raise ValueError(f"{path}: " + "; ".join(errors))
    logger.debug("rules loaded from %s", path)
    return deep_merge_dict(DEFAULT_RULES, obj)


@lru_cache(maxsize=1)
def get_rules() -> Dict[str, Any]:
    """Process-wide rules, loaded once. Callers must not mutate the result."""
    return load_rules()


def rule(rules: Optional[Dict[str, Any]], section: str, key: str) -> float:
    """Single numeric rule with fallback to DEFAULT_RULES."""
    sec = (rules or {}).get(section) or {}
    v = sec.get(key)
    if v is None:
        v = DEFAULT_RULES[section][key]
    return float(v)
