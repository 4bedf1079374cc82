# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .rules import rule

DIURESIS_MISSING = "⚠️ Diuresi non inserita: se il paziente non è anurico, compila la diuresi (mL nel periodo)."
SWEAT_MISSING = "⚠️ Sudorazione profusa: inserisci una stima dei mL nel periodo."
SWEAT_ZERO = "⚠️ Sudorazione profusa: valore = 0 (verifica)."
ECT_MISSING = "⚠️ ECT attiva: inserisci la rimozione netta (nel periodo selezionato)."
ECT_ZERO = "⚠️ ECT attiva: rimozione netta = 0 (verifica che sia corretto)."
HIGH_FEVER = "⚠️ Febbre elevata (≥{threshold:.1f}°C): aumentato rischio di disidratazione"


@dataclass(frozen=True)
class AlertReport:
    """Advisories only; none of them blocks the calculation."""

    diuresis: Optional[str] = None
    sweating: Optional[str] = None
    ect: Optional[str] = None
    fever: Optional[str] = None

    @property
    def messages(self) -> List[str]:
        return [m for m in (self.diuresis, self.sweating, self.ect, self.fever) if m]

    def to_markdown(self) -> str:
        if not self.messages:
            return "—"
        lines: List[str] = ["### Avvisi"]
        for m in self.messages:
            lines.append(f"- {m}")
        return "\n".join(lines)


def diuresis_alert(diuresis: Optional[float], anuria: bool) -> Optional[str]:
    if anuria:
        return None
    if diuresis is None:
        return DIURESIS_MISSING
    return None


def sweating_alert(profuse_sweating: bool, sweat: Optional[float]) -> Optional[str]:
    if not profuse_sweating:
        return None
    if sweat is None:
        return SWEAT_MISSING
    if sweat == 0:
        return SWEAT_ZERO
    return None


def ect_alert(ect_active: bool, net_removal: Optional[float]) -> Optional[str]:
    if not ect_active:
        return None
    if net_removal is None:
        return ECT_MISSING
    if net_removal == 0:
        return ECT_ZERO
    return None


def fever_alert(fever: bool, temp_c: float, rules: Optional[Dict[str, Any]] = None) -> Optional[str]:
    threshold = rule(rules, "temperature", "high_fever_c")
    if fever and temp_c >= threshold:
        return HIGH_FEVER.format(threshold=threshold)
    return None


def evaluate_alerts(data: Dict[str, Any], rules: Optional[Dict[str, Any]] = None) -> AlertReport:
    """
    data expects parsed values (None = not entered):
      diuresis, anuria, profuse_sweating, sweat, ect_active, ect_net_removal, fever, temp_c
    """
    return AlertReport(
        diuresis=diuresis_alert(data.get("diuresis"), bool(data.get("anuria"))),
        sweating=sweating_alert(bool(data.get("profuse_sweating")), data.get("sweat")),
        ect=ect_alert(bool(data.get("ect_active")), data.get("ect_net_removal")),
        fever=fever_alert(bool(data.get("fever")), float(data.get("temp_c") or 37.0), rules),
    )
