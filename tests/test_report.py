import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from carebalance.generator import (
    COPY_FAILED,
    COPY_OK,
    CareBalanceReportGenerator,
    compute_all,
    copy_note,
    default_ui,
)


def _ui(**kw):
    ui = default_ui()
    ui.update(kw)
    return ui


def _note(**kw):
    gen = CareBalanceReportGenerator()
    return gen.compose_note(compute_all(_ui(**kw), gen.rules))


def test_note_structure_is_fixed():
    lines = _note().split("\n")
    assert len(lines) == 26
    assert lines[0] == "CareBalance-N — Nota infermieristica (bozza)"
    assert lines[1].startswith("Periodo di rilevazione: 24h.")
    assert lines[11] == "" and lines[14] == "" and lines[17] == "" and lines[21] == ""
    assert lines[12].startswith("IN nel periodo")
    assert lines[15].startswith("OUT nel periodo")
    assert lines[18].startswith("Perspiratio stimata")
    assert lines[22].startswith("ECT separato")
    assert lines[-2] == "Nota: sudorazione profusa è OUT clinico (non insensibile)."
    assert lines[-1].startswith("Nota: IN/OUT clinici sono indipendenti")


def test_note_values():
    note = _note(
        period_hours=12,
        weight_kg="70",
        in_oral="200",
        in_iv="400",
        out_diuresis="300",
        out_drains="50",
    )
    assert "Periodo di rilevazione: 12h (scalato a 24h). (Perspiratio stimata sempre su 24h)" in note
    assert "Peso attuale: 70 kg." in note
    assert "IN nel periodo (mL/12h): orale 200, EV 400, enterale n/d, flush/irrigazioni n/d, altro n/d." in note
    assert "IN totale (24h): 1200 mL." in note
    assert "OUT totale (24h, escl. perspiratio): 700 mL." in note
    assert "Perspiratio stimata (24h): 700 mL." in note
    assert "Bilancio clinico (24h, IN–OUT): 500 mL." in note
    assert "Bilancio totale (24h, IN–OUT–perspiratio): -200 mL." in note
    assert "ECT separato: nessuno." in note
    assert "Bilancio totale + ECT (24h, IN–OUT–perspiratio–ECT): -200 mL." in note


def test_missing_values_render_as_nd_not_zero():
    note = _note()
    assert "Peso attuale: n/d." in note
    assert "Perspiratio stimata (24h): n/d." in note
    assert "SpO₂: n/d (fascia n/d)." in note
    assert "diuresi n/d" in note
    assert "diuresi 0" not in note


def test_measured_zero_renders_as_zero():
    note = _note(out_diuresis="0")
    assert "diuresi 0," in note


def test_entered_values_keep_their_decimals():
    note = _note(weight_kg="72,55", in_oral="250,75", spo2="93,5")
    assert "Peso attuale: 72.55 kg." in note
    assert "orale 250.75," in note
    assert "SpO₂: 93.5% (fascia 92–96%)." in note
    # totals stay whole mL
    assert "IN totale (24h): 251 mL." in note
    assert "Perspiratio stimata (24h): 726 mL." in note


def test_missing_dry_weight_reads_like_missing_weight():
    note = _note(weight_kg="70", chronic_dialysis=True)
    assert "Peso secco: n/d. Δ peso (attuale–secco): n/d." in note
    assert "n/d kg" not in note
    assert "Peso attuale: 70 kg." in note


def test_flags_section():
    note = _note(
        weight_kg="80",
        chronic_dialysis=True,
        dry_weight_kg="78,2",
        anuria=True,
        skin_loss="severe",
        profuse_sweating=True,
        out_sweat="150",
        period_hours=6,
        surgical=True,
        out_fistula="40",
    )
    assert "Dialisi cronica: sì. Peso secco: 78.2 kg. Δ peso (attuale–secco): +1.8 kg." in note
    assert "Anuria: sì." in note
    assert "Cute/ustioni/ferite estese: Severa (ustioni/open abdomen/ampia esposizione)." in note
    assert "Sudorazione profusa: sì (OUT nel periodo 150 mL/6h)." in note
    assert "Paziente chirurgico: sì." in note
    assert "fistola/output enterico 40" in note
    assert "sudorazione 150, altre OUT n/d." in note


def test_surgical_extras_hidden_when_not_surgical():
    note = _note(out_fistula="40")
    assert "fistola" not in note
    assert "Paziente chirurgico: no." in note
    assert "Sudorazione profusa: no." in note
    assert "Dialisi cronica: no." in note


def test_temperature_spo2_ventilation_lines():
    note = _note(
        fever=True,
        temp_c="38.5",
        fever_persistent_24h=True,
        spo2="94%",
        vent_mode="imv",
        fio2="40",
        humidification=True,
    )
    assert "Temperatura: 38.5°C (persistente >24h)." in note
    assert "SpO₂: 94% (fascia 92–96%)." in note
    assert "Ventilazione: Ventilazione invasiva (IMV), FiO₂ 40%, umidificazione sì." in note

    assert "Temperatura: afebbrile." in _note(temp_c="39.0")
    assert "Ventilazione: nessuna." in _note()


def test_ect_section_with_alert_echo():
    note = _note(ect_mode="CRRT")
    assert "ECT separato: CRRT — rimozione netta (24h) 0 mL (attenzione: dato mancante/zero)." in note

    note = _note(ect_mode="iHD", ect_net_removal="1.500", period_hours=12)
    assert "ECT separato: Emodialisi intermittente (IHD) — rimozione netta (24h) 3 mL." in note

    note = _note(ect_mode="iHD", ect_net_removal="1500", period_hours=12)
    assert "rimozione netta (24h) 3000 mL." in note


def test_generate_all_outputs():
    gen = CareBalanceReportGenerator()
    note, summary, alerts = gen.generate_all(_ui(weight_kg="70", out_diuresis="800", in_iv="1500", spo2="97"))
    assert note.startswith("CareBalance-N")
    assert summary.startswith("### Riepilogo (24h)")
    assert "**Bilancio clinico**: +700 mL" in summary
    assert "iperossia" in summary
    assert alerts == "—"

    _, _, alerts = gen.generate_all(_ui(ect_mode="DP"))
    assert alerts.startswith("### Avvisi")
    assert "Diuresi non inserita" in alerts


def test_generate_is_deterministic():
    gen = CareBalanceReportGenerator()
    ui = _ui(weight_kg="65", fever=True, temp_c="40.0", in_oral="900", out_diuresis="700")
    assert gen.generate_all(ui) == gen.generate_all(ui)


def test_copy_note_outcomes():
    written = []
    assert copy_note("abc", written.append) == COPY_OK
    assert written == ["abc"]

    def broken(_text):
        raise OSError("no clipboard")

    assert copy_note("abc", broken) == COPY_FAILED
    assert copy_note("abc", lambda _t: False) == COPY_FAILED
