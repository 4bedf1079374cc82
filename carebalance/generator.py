# -*- coding: utf-8 -*-
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .alerts import AlertReport, evaluate_alerts
from .calcs import (
    CalcResult,
    calc_balance,
    calc_perspiration,
    calc_weight_delta,
    parse_fio2,
    parse_period,
    parse_spo2,
    parse_temperature,
    parse_volume,
    parse_weight,
    scale_to_24h,
    sum_ml,
)
from .classify import (
    ECTMode,
    SkinLoss,
    SpO2Band,
    VentMode,
    ect_mode_label,
    skin_factor,
    skin_label,
    spo2_alert_text,
    spo2_band,
    spo2_band_label,
    vent_mode_label,
)
from .rules import get_rules
from .util import NA, fmt_num, fmt_signed, fmt_unit, fmt_yes_no, join_nonempty
from .version import APP_NAME

logger = logging.getLogger(__name__)


# (field_id, label in the note)
IN_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("in_oral", "orale"),
    ("in_iv", "EV"),
    ("in_enteral", "enterale"),
    ("in_flush", "flush/irrigazioni"),
    ("in_other", "altro"),
)

OUT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("out_diuresis", "diuresi"),
    ("out_drains", "drenaggi"),
    ("out_vomit", "vomito/ristagno gastrico"),
    ("out_aspirate", "aspirati"),
)

# Only summed (and shown) for surgical patients
SURGICAL_OUT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("out_stool_stoma", "feci/diarrea/stomia"),
    ("out_bleeding", "sanguinamenti/perdite"),
    ("out_fistula", "fistola/output enterico"),
)

OUT_OTHER_FIELD = ("out_other", "altre OUT")
SWEAT_FIELD = ("out_sweat", "sudorazione")

DEFAULT_UI: Dict[str, Any] = {
    "period_hours": 24,
    "weight_kg": "",
    "chronic_dialysis": False,
    "dry_weight_kg": "",
    "spo2": "",
    "fever": False,
    "temp_c": "37.0",
    "fever_persistent_24h": False,
    "antipyretic": False,
    "vent_mode": VentMode.NONE.value,
    "fio2": "",
    "humidification": False,
    "skin_loss": SkinLoss.NONE.value,
    "anuria": False,
    "surgical": False,
    "in_oral": "",
    "in_iv": "",
    "in_enteral": "",
    "in_flush": "",
    "in_other": "",
    "out_diuresis": "",
    "out_drains": "",
    "out_vomit": "",
    "out_aspirate": "",
    "out_other": "",
    "out_stool_stoma": "",
    "out_bleeding": "",
    "out_fistula": "",
    "profuse_sweating": False,
    "out_sweat": "",
    "ect_mode": ECTMode.NONE.value,
    "ect_net_removal": "",
}


@dataclass
class Computed:
    period_hours: int

    # Patient
    weight: Optional[float]
    chronic_dialysis: bool
    dry_weight: Optional[float]
    weight_delta: Optional[float]
    anuria: bool
    surgical: bool
    skin_loss: SkinLoss

    # Temperature / oxygenation
    fever: bool
    temp_c: float
    fever_persistent: bool
    antipyretic: bool
    spo2: Optional[float]
    spo2_band: Optional[SpO2Band]
    spo2_alert: str
    vent_mode: VentMode
    vent_active: bool
    fio2: Optional[float]
    humidification: bool

    # IN / OUT (period values, None = not entered)
    in_items: Dict[str, Optional[float]]
    out_items: Dict[str, Optional[float]]
    profuse_sweating: bool
    sweat: Optional[float]
    in_period: int
    out_period: int
    in_24h: int
    out_24h: int

    # ECT
    ect_mode: ECTMode
    ect_active: bool
    ect_net_removal: Optional[float]
    ect_24h: int

    # Derived
    perspiration: CalcResult
    clinical_balance: int
    total_balance: int
    total_balance_ect: int

    alerts: AlertReport


def compute_all(ui: Dict[str, Any], rules: Optional[Dict[str, Any]] = None) -> Computed:
    """Full recomputation from one input snapshot. Pure: `ui` is not modified."""
    rules = rules or get_rules()

    period = parse_period(ui.get("period_hours"))

    # Patient basics
    weight = parse_weight(ui.get("weight_kg"), rules)
    chronic_dialysis = bool(ui.get("chronic_dialysis"))
    dry_weight = parse_weight(ui.get("dry_weight_kg"), rules) if chronic_dialysis else None
    weight_delta = calc_weight_delta(weight, dry_weight) if chronic_dialysis else None
    skin = SkinLoss.coerce(ui.get("skin_loss"))

    # Temperature
    fever = bool(ui.get("fever"))
    temp_c = parse_temperature(ui.get("temp_c"), rules)
    fever_persistent = bool(ui.get("fever_persistent_24h"))
    antipyretic = bool(ui.get("antipyretic"))

    # Ventilation / SpO₂
    vent_mode = VentMode.coerce(ui.get("vent_mode"))
    vent_active = vent_mode is not VentMode.NONE
    fio2 = parse_fio2(ui.get("fio2"), rules) if vent_active else None
    humidification = bool(ui.get("humidification"))
    spo2 = parse_spo2(ui.get("spo2"), rules)
    band = spo2_band(spo2, rules)

    # IN
    in_items = {fid: parse_volume(ui.get(fid), rules) for fid, _ in IN_FIELDS}
    in_period = sum_ml(in_items.values())

    # OUT (perspiration excluded)
    surgical = bool(ui.get("surgical"))
    out_fields = OUT_FIELDS + (SURGICAL_OUT_FIELDS if surgical else ()) + (OUT_OTHER_FIELD,)
    out_items = {fid: parse_volume(ui.get(fid), rules) for fid, _ in out_fields}
    profuse_sweating = bool(ui.get("profuse_sweating"))
    sweat = parse_volume(ui.get(SWEAT_FIELD[0]), rules) if profuse_sweating else None
    out_period = sum_ml(list(out_items.values()) + [sweat])

    in_24h = scale_to_24h(in_period, period)
    out_24h = scale_to_24h(out_period, period)

    # ECT: scaled like an OUT item, but kept outside out_24h
    ect_mode = ECTMode.coerce(ui.get("ect_mode"))
    ect_active = ect_mode is not ECTMode.NONE
    ect_net = parse_volume(ui.get("ect_net_removal"), rules)
    ect_24h = scale_to_24h(sum_ml([ect_net]), period) if ect_active else 0

    # Perspiration (24h basis)
    persp = calc_perspiration(
        weight,
        fever=fever,
        temp_c=temp_c,
        fever_persistent=fever_persistent,
        antipyretic=antipyretic,
        vent_active=vent_active,
        humidified=humidification,
        skin_factor=skin_factor(skin, rules),
        rules=rules,
    )

    clinical = calc_balance(in_24h, out_24h)
    total = calc_balance(in_24h, out_24h, persp.value)
    total_ect = calc_balance(in_24h, out_24h, persp.value, ect_24h)

    alerts = evaluate_alerts({
        "diuresis": out_items.get("out_diuresis"),
        "anuria": bool(ui.get("anuria")),
        "profuse_sweating": profuse_sweating,
        "sweat": sweat,
        "ect_active": ect_active,
        "ect_net_removal": ect_net,
        "fever": fever,
        "temp_c": temp_c,
    }, rules)

    logger.debug("balance %sh: in24=%s out24=%s persp=%s ect24=%s", period, in_24h, out_24h, persp.value, ect_24h)

    return Computed(
        period_hours=period,
        weight=weight,
        chronic_dialysis=chronic_dialysis,
        dry_weight=dry_weight,
        weight_delta=weight_delta,
        anuria=bool(ui.get("anuria")),
        surgical=surgical,
        skin_loss=skin,
        fever=fever,
        temp_c=temp_c,
        fever_persistent=fever_persistent,
        antipyretic=antipyretic,
        spo2=spo2,
        spo2_band=band,
        spo2_alert=spo2_alert_text(spo2, rules),
        vent_mode=vent_mode,
        vent_active=vent_active,
        fio2=fio2,
        humidification=humidification,
        in_items=in_items,
        out_items=out_items,
        profuse_sweating=profuse_sweating,
        sweat=sweat,
        in_period=in_period,
        out_period=out_period,
        in_24h=in_24h,
        out_24h=out_24h,
        ect_mode=ect_mode,
        ect_active=ect_active,
        ect_net_removal=ect_net,
        ect_24h=ect_24h,
        perspiration=persp,
        clinical_balance=clinical,
        total_balance=total,
        total_balance_ect=total_ect,
        alerts=alerts,
    )


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------

def default_ui() -> Dict[str, Any]:
    """Snapshot after 'Reset'."""
    return copy.deepcopy(DEFAULT_UI)


def set_surgical(ui: Dict[str, Any], on: bool) -> Dict[str, Any]:
    """
    New snapshot with the surgical flag set. Switching it off clears the
    surgical-only OUT fields so old values cannot re-enter a later sum.
    """
    out = dict(ui)
    out["surgical"] = bool(on)
    if not on:
        for fid, _ in SURGICAL_OUT_FIELDS:
            out[fid] = ""
    return out


# field_id -> flag field that unlocks it
DEPENDENT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("dry_weight_kg", "chronic_dialysis"),
    ("fio2", "vent_mode"),
    ("humidification", "vent_mode"),
    ("fever_persistent_24h", "fever"),
    ("antipyretic", "fever"),
)


def enabled_fields(ui: Dict[str, Any]) -> Dict[str, bool]:
    """Editable state of the fields that only matter while their flag is on."""
    flags = {
        "chronic_dialysis": bool(ui.get("chronic_dialysis")),
        "vent_mode": VentMode.coerce(ui.get("vent_mode")) is not VentMode.NONE,
        "fever": bool(ui.get("fever")),
    }
    return {fid: flags[flag] for fid, flag in DEPENDENT_FIELDS}


COPY_OK = "Nota copiata ✅"
COPY_FAILED = "Copia non riuscita: seleziona la nota e copia manualmente."


def copy_note(text: str, writer: Callable[[str], Any]) -> str:
    """
    Hands the note to an external clipboard writer. Never raises; the
    returned message is shown to the user. No retry.
    """
    try:
        ok = writer(text)
    except Exception:
        logger.warning("clipboard write failed", exc_info=True)
        return COPY_FAILED
    if ok is False:
        return COPY_FAILED
    return COPY_OK


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

# Entered values are echoed as parsed, not re-rounded
ENTERED_DECIMALS = 2


def _ml(v: Optional[float]) -> str:
    return fmt_num(v, ENTERED_DECIMALS)


def _items_sentence(labels: Tuple[Tuple[str, str], ...], items: Dict[str, Optional[float]]) -> str:
    return ", ".join(f"{label} {_ml(items.get(fid))}" for fid, label in labels)


def _period_text(period: int) -> str:
    return "24h" if period == 24 else f"{period}h (scalato a 24h)"


def _temperature_text(comp: Computed) -> str:
    if not comp.fever:
        return "afebbrile"
    txt = f"{comp.temp_c:.1f}°C"
    if comp.fever_persistent:
        txt += " (persistente >24h)"
    if comp.antipyretic:
        txt += " — antipiretico"
    return txt


def _vent_text(comp: Computed) -> str:
    if not comp.vent_active:
        return "nessuna"
    return join_nonempty([
        vent_mode_label(comp.vent_mode),
        f"FiO₂ {fmt_num(comp.fio2, ENTERED_DECIMALS)}%" if comp.fio2 is not None else "",
        f"umidificazione {fmt_yes_no(comp.humidification)}",
    ], sep=", ")


def _dialysis_text(comp: Computed) -> str:
    if not comp.chronic_dialysis:
        return "Dialisi cronica: no."
    return (
        f"Dialisi cronica: sì. Peso secco: {fmt_unit(comp.dry_weight, 'kg', ENTERED_DECIMALS)}. "
        f"Δ peso (attuale–secco): {fmt_signed(comp.weight_delta, 'kg')}."
    )


def _sweat_text(comp: Computed) -> str:
    if not comp.profuse_sweating:
        return "Sudorazione profusa: no."
    return f"Sudorazione profusa: sì (OUT nel periodo {_ml(comp.sweat)} mL/{comp.period_hours}h)."


def _ect_text(comp: Computed) -> str:
    if not comp.ect_active:
        return "nessuno"
    txt = f"{ect_mode_label(comp.ect_mode)} — rimozione netta (24h) {comp.ect_24h} mL"
    if comp.alerts.ect:
        txt += " (attenzione: dato mancante/zero)"
    return txt


def _out_sentence(comp: Computed) -> str:
    labels = OUT_FIELDS + (SURGICAL_OUT_FIELDS if comp.surgical else ())
    txt = _items_sentence(labels, comp.out_items)
    if comp.profuse_sweating:
        txt += f", {SWEAT_FIELD[1]} {_ml(comp.sweat)}"
    txt += f", {OUT_OTHER_FIELD[1]} {_ml(comp.out_items.get(OUT_OTHER_FIELD[0]))}"
    return txt


class CareBalanceReportGenerator:
    def __init__(self, rules: Optional[Dict[str, Any]] = None):
        self.rules = rules or get_rules()

    def generate_all(self, ui: Dict[str, Any]) -> Tuple[str, str, str]:
        """
        Returns:
          note_txt, summary_md, alerts_md
        """
        comp = compute_all(ui, self.rules)
        return self.compose_note(comp), self.summary_markdown(comp), comp.alerts.to_markdown()

    def compose_note(self, comp: Computed) -> str:
        """Nursing note; line order is fixed. Missing values are written as 'n/d'."""
        p = comp.period_hours
        spo2_txt = f"{fmt_num(comp.spo2, ENTERED_DECIMALS)}%" if comp.spo2 is not None else NA

        lines: List[str] = [
            f"{APP_NAME} — Nota infermieristica (bozza)",
            f"Periodo di rilevazione: {_period_text(p)}. (Perspiratio stimata sempre su 24h)",
            f"Peso attuale: {fmt_unit(comp.weight, 'kg', ENTERED_DECIMALS)}.",
            _dialysis_text(comp),
            f"Anuria: {fmt_yes_no(comp.anuria)}.",
            f"Cute/ustioni/ferite estese: {skin_label(comp.skin_loss)}.",
            _sweat_text(comp),
            f"Paziente chirurgico: {fmt_yes_no(comp.surgical)}.",
            f"Temperatura: {_temperature_text(comp)}.",
            f"SpO₂: {spo2_txt} (fascia {spo2_band_label(comp.spo2_band)}).",
            f"Ventilazione: {_vent_text(comp)}.",
            "",
            f"IN nel periodo (mL/{p}h): {_items_sentence(IN_FIELDS, comp.in_items)}.",
            f"IN totale (24h): {comp.in_24h} mL.",
            "",
            f"OUT nel periodo (mL/{p}h) escl. perspiratio: {_out_sentence(comp)}.",
            f"OUT totale (24h, escl. perspiratio): {comp.out_24h} mL.",
            "",
            f"Perspiratio stimata (24h): {fmt_unit(comp.perspiration.value, 'mL')}.",
            f"Bilancio clinico (24h, IN–OUT): {comp.clinical_balance} mL.",
            f"Bilancio totale (24h, IN–OUT–perspiratio): {comp.total_balance} mL.",
            "",
            f"ECT separato: {_ect_text(comp)}.",
            f"Bilancio totale + ECT (24h, IN–OUT–perspiratio–ECT): {comp.total_balance_ect} mL.",
            "Nota: sudorazione profusa è OUT clinico (non insensibile).",
            "Nota: IN/OUT clinici sono indipendenti dalla rimozione extracorporea; ECT va documentato separatamente.",
        ]
        return "\n".join(lines)

    def summary_markdown(self, comp: Computed) -> str:
        # Compact dashboard next to the form
        lines: List[str] = ["### Riepilogo (24h)"]
        lines.append(f"- **IN**: {comp.in_24h} mL | **OUT** (escl. perspiratio): {comp.out_24h} mL")
        persp = fmt_unit(comp.perspiration.value, "mL")
        if comp.perspiration.formula:
            persp += f" ({comp.perspiration.formula})"
        elif comp.weight is None:
            persp += " (peso non valido: inserisci 1–300 kg)"
        lines.append(f"- **Perspiratio**: {persp}")
        lines.append(f"- **Bilancio clinico**: {fmt_signed(comp.clinical_balance, 'mL')}")
        lines.append(f"- **Bilancio totale**: {fmt_signed(comp.total_balance, 'mL')}")
        if comp.ect_active:
            lines.append(f"- **ECT** ({ect_mode_label(comp.ect_mode)}): {comp.ect_24h} mL")
        lines.append(f"- **Bilancio totale + ECT**: {fmt_signed(comp.total_balance_ect, 'mL')}")
        if comp.spo2_band is not None:
            lines.append(f"- **SpO₂**: fascia {spo2_band_label(comp.spo2_band)} — {comp.spo2_alert}")
        else:
            lines.append(f"- **SpO₂**: {comp.spo2_alert}")
        if comp.chronic_dialysis:
            if comp.weight_delta is None:
                lines.append("- **Dialisi cronica**: inserisci il peso secco per calcolare il differenziale.")
            else:
                lines.append(f"- **Dialisi cronica**: Δ peso (attuale–secco) {fmt_signed(comp.weight_delta, 'kg')}")
        return "\n".join(lines)
