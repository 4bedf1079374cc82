# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

import gradio as gr

from .classify import ECT_MODE_LABELS, SKIN_LABELS, VENT_MODE_LABELS
from .generator import (
    DEPENDENT_FIELDS,
    IN_FIELDS,
    OUT_FIELDS,
    OUT_OTHER_FIELD,
    SURGICAL_OUT_FIELDS,
    SWEAT_FIELD,
    CareBalanceReportGenerator,
    copy_note,
    default_ui,
    enabled_fields,
    set_surgical,
)
from .version import APP_NAME, APP_VERSION

logger = logging.getLogger(__name__)

CSS = """
.cb-container { max-width: 1100px; margin: 0 auto; }
#toolbar_top {
    position: sticky;
    top: 8px;
    z-index: 50;
    background: rgba(255,255,255,0.92);
    backdrop-filter: blur(8px);
    padding: 10px 10px;
    border: 1px solid rgba(0,0,0,0.08);
    border-radius: 12px;
}
.section-card {
    border: 1px solid rgba(0,0,0,0.08);
    border-radius: 12px;
    padding: 12px;
    background: white;
}
.small-note { font-size: 12px; opacity: 0.75; }
"""

# Runs in the browser; returns the inputs for the Python callback (text, ok).
COPY_JS = """
async (text, ok) => {
    try {
        await navigator.clipboard.writeText(text || "");
        return [text, true];
    } catch (e) {
        return [text, false];
    }
}
"""

PERIOD_CHOICES = [("6 ore", 6), ("12 ore", 12), ("24 ore", 24)]


def _choices(labels: Dict[Any, str]) -> List[Tuple[str, str]]:
    return [(label, mode.value) for mode, label in labels.items()]


def build_demo() -> gr.Blocks:
    generator = CareBalanceReportGenerator()

    # --- UI registry: ensures mapping is always consistent ---
    field_components: List[Tuple[str, Any]] = []

    def reg(field_id: str, comp: Any) -> Any:
        field_components.append((field_id, comp))
        return comp

    def volume_box(field_id: str, label: str) -> Any:
        return reg(field_id, gr.Textbox(label=f"{label} (mL nel periodo)", placeholder="es. 250"))

    with gr.Blocks(css=CSS, title=f"{APP_NAME} v{APP_VERSION}") as demo:
        gr.HTML(
            f"<div class='cb-container'><h2 style='margin-bottom:0'>{APP_NAME} — Nuovo calcolo "
            f"<span style='opacity:0.6;font-size:14px'>v{APP_VERSION}</span></h2>"
            "<div class='small-note'>Bilancio idrico con scaling a 24h + perspiratio (stima) + ECT separato. "
            "Supporto decisionale, non sostituisce la valutazione clinica.</div></div>"
        )

        with gr.Row(elem_id="toolbar_top"):
            btn_reset = gr.Button("Reset", variant="secondary")
            btn_copy = gr.Button("Copia nota", variant="primary")
            copy_md = gr.Markdown("")
            copy_ok = gr.Checkbox(value=False, visible=False)

        error_md = gr.Markdown("", visible=False)

        with gr.Row():
            with gr.Column(scale=3):
                gr.Markdown("### Periodo")
                reg("period_hours", gr.Dropdown(PERIOD_CHOICES, value=24, label="Periodo di rilevazione"))
                gr.Markdown(
                    "Inserisci i volumi misurati nel periodo selezionato: vengono **scalati automaticamente a 24h**. "
                    "La **perspiratio è sempre stimata su 24h**.",
                    elem_classes=["small-note"],
                )

                gr.Markdown("### Dati base")
                with gr.Row():
                    reg("weight_kg", gr.Textbox(label="Peso attuale (kg)", placeholder="es. 70 oppure 72,5"))
                    reg("spo2", gr.Textbox(label="SpO₂ attuale (%)", placeholder="es. 94 oppure 94%"))
                with gr.Row():
                    dialysis = reg("chronic_dialysis", gr.Checkbox(label="Dialisi cronica (peso secco)"))
                    reg("dry_weight_kg", gr.Textbox(label="Peso secco (kg)", placeholder="es. 68,0", interactive=False))
                with gr.Row():
                    reg("anuria", gr.Checkbox(label="Anuria"))
                    reg("skin_loss", gr.Dropdown(_choices(SKIN_LABELS), value="none", label="Cute / ustioni / ferite estese"))
                    surgical = reg("surgical", gr.Checkbox(label="Paziente chirurgico (mostra voci extra)"))

                gr.Markdown("### Ventilazione")
                with gr.Row():
                    vent_mode = reg("vent_mode", gr.Dropdown(_choices(VENT_MODE_LABELS), value="none", label="Modalità"))
                    reg("fio2", gr.Textbox(label="FiO₂ (%)", placeholder="es. 35", interactive=False))
                    reg("humidification", gr.Checkbox(label="Umidificazione", interactive=False))

                gr.Markdown("### Temperatura")
                with gr.Row():
                    fever = reg("fever", gr.Checkbox(label="Febbre"))
                    reg("temp_c", gr.Dropdown(
                        ["37.0", "37.5", "38.0", "38.5", "39.0", "39.5", "40.0", "41.0"],
                        value="37.0",
                        label="Temp (°C)",
                    ))
                    reg("fever_persistent_24h", gr.Checkbox(label="Febbre persistente >24h", interactive=False))
                    reg("antipyretic", gr.Checkbox(label="Antipiretico", interactive=False))

                gr.Markdown("### IN")
                with gr.Row():
                    for fid, label in IN_FIELDS:
                        volume_box(fid, label.capitalize())

                gr.Markdown("### OUT (escl. perspiratio)")
                with gr.Row():
                    for fid, label in OUT_FIELDS + (OUT_OTHER_FIELD,):
                        volume_box(fid, label.capitalize())
                with gr.Group(visible=False) as grp_surgical:
                    with gr.Row():
                        surgical_boxes = [volume_box(fid, label.capitalize()) for fid, label in SURGICAL_OUT_FIELDS]
                with gr.Row():
                    reg("profuse_sweating", gr.Checkbox(label="Sudorazione profusa (OUT clinico)"))
                    volume_box(SWEAT_FIELD[0], SWEAT_FIELD[1].capitalize())

                gr.Markdown("### ECT separato")
                with gr.Row():
                    reg("ect_mode", gr.Dropdown(_choices(ECT_MODE_LABELS), value="none", label="Terapia extracorporea"))
                    reg("ect_net_removal", gr.Textbox(label="Rimozione netta (mL nel periodo)"))

            with gr.Column(scale=2):
                summary_md = gr.Markdown("—", elem_classes=["section-card"])
                alerts_md = gr.Markdown("—", elem_classes=["section-card"])
                note_box = gr.Textbox(label="Nota clinica", lines=28, interactive=False)

        input_components = [c for _, c in field_components]
        field_ids = [fid for fid, _ in field_components]

        def _ui_get_raw(*vals) -> Dict[str, Any]:
            return {fid: v for fid, v in zip(field_ids, vals)}

        def _recompute(*vals):
            try:
                ui = _ui_get_raw(*vals)
                note, summary, alerts = generator.generate_all(ui)
                return note, summary, alerts, gr.update(visible=False, value="")
            except Exception:
                logger.exception("recompute failed")
                return "", "—", "—", gr.update(visible=True, value="### Errore\nCalcolo non riuscito: vedi log.")

        def _toggle_surgical(on: bool):
            cleared = set_surgical({}, on)
            return [gr.update(visible=bool(on))] + [
                gr.update(value=cleared[fid]) if not on else gr.update() for fid, _ in SURGICAL_OUT_FIELDS
            ]

        field_by_id = dict(field_components)
        dependent_components = [field_by_id[fid] for fid, _ in DEPENDENT_FIELDS]

        def _sync_enabled(*vals):
            enabled = enabled_fields(_ui_get_raw(*vals))
            return [gr.update(interactive=enabled[fid]) for fid, _ in DEPENDENT_FIELDS]

        def _reset():
            ui = default_ui()
            return [ui.get(fid) for fid in field_ids] + [gr.update(visible=False), ""]

        def _copy_feedback(text: str, ok: bool) -> str:
            return copy_note(text, lambda _t: bool(ok))

        outputs = [note_box, summary_md, alerts_md, error_md]
        for comp in input_components:
            comp.change(_recompute, inputs=input_components, outputs=outputs)

        for flag in (dialysis, vent_mode, fever):
            flag.change(_sync_enabled, inputs=input_components, outputs=dependent_components)
        surgical.change(_toggle_surgical, inputs=[surgical], outputs=[grp_surgical] + surgical_boxes)
        btn_reset.click(_reset, outputs=input_components + [grp_surgical, copy_md]).then(
            _recompute, inputs=input_components, outputs=outputs
        ).then(_sync_enabled, inputs=input_components, outputs=dependent_components)
        btn_copy.click(_copy_feedback, inputs=[note_box, copy_ok], outputs=[copy_md], js=COPY_JS)
        demo.load(_recompute, inputs=input_components, outputs=outputs)

    return demo
