# -*- coding: utf-8 -*-
from __future__ import annotations

import math
import re
from typing import Any, Optional, Sequence

NA = "n/d"

_WS_RE = re.compile(r"\s+")
_NON_NUMERIC_RE = re.compile(r"[^0-9,.\-]")


def parse_num(x: Any) -> Optional[float]:
    """
    Locale-tolerant conversion. Accepts "94", "94%", "94,0 %", "500 ml", "1.200,5".
    If both '.' and ',' are present, '.' is a thousands separator and ',' the decimal one.
    Returns None for empty/invalid/non-finite input.
    """
    if x is None:
        return None
    if isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        v = float(x)
        if math.isnan(v) or math.isinf(v):
            return None
        return v
    raw = str(x).strip()
    if not raw:
        return None
    cleaned = _NON_NUMERIC_RE.sub("", _WS_RE.sub("", raw).replace("%", ""))
    if not cleaned:
        return None
    if "." in cleaned and "," in cleaned:
        normalized = cleaned.replace(".", "").replace(",", ".", 1)
    else:
        normalized = cleaned.replace(",", ".", 1)
    try:
        v = float(normalized)
    except ValueError:
        return None
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def clamp(v: Optional[float], lo: float, hi: float) -> Optional[float]:
    if v is None:
        return None
    return max(lo, min(hi, v))


def round_half_up(v: float) -> int:
    # Math.round semantics: .5 goes towards +inf
    return int(math.floor(v + 0.5))


def as_ml(v: Optional[float]) -> float:
    """Absent counts as 0 mL inside sums only."""
    if v is None:
        return 0.0
    return v


def is_intish(v: float, tol: float = 1e-6) -> bool:
    return abs(v - round(v)) < tol


def fmt_num(v: Optional[float], decimals: int = 1) -> str:
    if v is None:
        return NA
    if isinstance(v, float) and (math.isnan(v) or math.isinf(v)):
        return NA
    if is_intish(v):
        return str(int(round(v)))
    return f"{v:.{decimals}f}".rstrip("0").rstrip(".")


def fmt_unit(v: Optional[float], unit: str, decimals: int = 1) -> str:
    if v is None:
        return NA
    if isinstance(v, float) and (math.isnan(v) or math.isinf(v)):
        return NA
    return f"{fmt_num(v, decimals)} {unit}"


def fmt_signed(v: Optional[float], unit: str = "", decimals: int = 1) -> str:
    """'+1.5 kg' / '-0.4 kg'; positive values get an explicit sign."""
    if v is None:
        return NA
    sign = "+" if v > 0 else ""
    txt = f"{sign}{fmt_num(v, decimals)}"
    return f"{txt} {unit}" if unit else txt


def fmt_yes_no(flag: Any) -> str:
    return "sì" if flag else "no"


def join_nonempty(parts: Sequence[str], sep: str = " | ") -> str:
    return sep.join([p for p in parts if p and str(p).strip()])
