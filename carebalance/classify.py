# -*- coding: utf-8 -*-
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from .rules import rule


class _UiEnum(Enum):
    """Enum keyed by the form's string value; unknown values map to the first variant."""

    @classmethod
    def coerce(cls, value: Any):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip()) if value is not None else next(iter(cls))
        except ValueError:
            return next(iter(cls))


class VentMode(_UiEnum):
    NONE = "none"
    O2 = "o2"
    HFNO = "hfno"
    NIV_CPAP = "niv_cpap"
    NIV_BIPAP = "niv_bipap"
    IMV = "imv"


class ECTMode(_UiEnum):
    NONE = "none"
    IHD = "iHD"
    CRRT = "CRRT"
    SCUF = "SCUF"
    DP = "DP"
    ECMO = "ECMO"
    CPB = "CPB"
    OTHER = "other"


class SkinLoss(_UiEnum):
    NONE = "none"
    MODERATE = "moderate"
    SEVERE = "severe"


class SpO2Band(Enum):
    CRITICAL = "<85"
    SEVERE = "85-88"
    BORDERLINE = "88-92"
    OPTIMAL = "92-96"
    HIGH = "96-100"


VENT_MODE_LABELS: Dict[VentMode, str] = {
    VentMode.NONE: "Nessuna",
    VentMode.O2: "Ossigenoterapia (basso flusso)",
    VentMode.HFNO: "HFNO / Alti flussi",
    VentMode.NIV_CPAP: "NIV — CPAP",
    VentMode.NIV_BIPAP: "NIV — BiPAP/PSV",
    VentMode.IMV: "Ventilazione invasiva (IMV)",
}

ECT_MODE_LABELS: Dict[ECTMode, str] = {
    ECTMode.NONE: "Nessuna",
    ECTMode.IHD: "Emodialisi intermittente (IHD)",
    ECTMode.CRRT: "CRRT",
    ECTMode.SCUF: "SCUF / Ultrafiltrazione",
    ECTMode.DP: "Dialisi peritoneale (DP)",
    ECTMode.ECMO: "ECMO",
    ECTMode.CPB: "CEC / CPB (circolazione extracorporea)",
    ECTMode.OTHER: "Altro",
}

SKIN_LABELS: Dict[SkinLoss, str] = {
    SkinLoss.NONE: "Nessuna",
    SkinLoss.MODERATE: "Moderata (ferite/medicazioni estese)",
    SkinLoss.SEVERE: "Severa (ustioni/open abdomen/ampia esposizione)",
}

SPO2_BAND_LABELS: Dict[SpO2Band, str] = {
    SpO2Band.CRITICAL: "<85%",
    SpO2Band.SEVERE: "85–88%",
    SpO2Band.BORDERLINE: "88–92%",
    SpO2Band.OPTIMAL: "92–96%",
    SpO2Band.HIGH: "96–100%",
}

SPO2_BAND_ALERTS: Dict[SpO2Band, str] = {
    SpO2Band.CRITICAL: "🚨 SpO₂ <85%: ipossiemia critica.",
    SpO2Band.SEVERE: "⚠️ SpO₂ 85–88%: ipossiemia severa.",
    SpO2Band.BORDERLINE: "⚠️ SpO₂ 88–92%: borderline (valuta contesto clinico).",
    SpO2Band.OPTIMAL: "✅ SpO₂ 92–96%: range ottimale nella maggioranza dei pazienti.",
    SpO2Band.HIGH: "ℹ️ SpO₂ 96–100%: alto; se appropriato valutare riduzione FiO₂ per evitare iperossia.",
}

SPO2_MISSING_TEXT = "Inserisci SpO₂ per classificazione (<85, 85–88, 88–92, 92–96, 96–100)."


def spo2_band(spo2: Optional[float], rules: Optional[Dict[str, Any]] = None) -> Optional[SpO2Band]:
    """
    Strict upper bounds:
      <85 | [85,88) | [88,92) | [92,96) | [96,100]
    """
    if spo2 is None:
        return None
    if spo2 < rule(rules, "spo2", "critical_lt"):
        return SpO2Band.CRITICAL
    if spo2 < rule(rules, "spo2", "severe_lt"):
        return SpO2Band.SEVERE
    if spo2 < rule(rules, "spo2", "borderline_lt"):
        return SpO2Band.BORDERLINE
    if spo2 < rule(rules, "spo2", "optimal_lt"):
        return SpO2Band.OPTIMAL
    return SpO2Band.HIGH


def spo2_band_label(band: Optional[SpO2Band]) -> str:
    if band is None:
        return "n/d"
    return SPO2_BAND_LABELS[band]


def spo2_alert_text(spo2: Optional[float], rules: Optional[Dict[str, Any]] = None) -> str:
    band = spo2_band(spo2, rules)
    if band is None:
        return SPO2_MISSING_TEXT
    return SPO2_BAND_ALERTS[band]


def skin_factor(s: Any, rules: Optional[Dict[str, Any]] = None) -> float:
    mode = SkinLoss.coerce(s)
    if mode is SkinLoss.MODERATE:
        return rule(rules, "skin", "moderate")
    if mode is SkinLoss.SEVERE:
        return rule(rules, "skin", "severe")
    return 0.0


def vent_mode_label(v: Any) -> str:
    return VENT_MODE_LABELS[VentMode.coerce(v)]


def ect_mode_label(m: Any) -> str:
    return ECT_MODE_LABELS[ECTMode.coerce(m)]


def skin_label(s: Any) -> str:
    return SKIN_LABELS[SkinLoss.coerce(s)]
