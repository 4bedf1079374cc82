import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from carebalance.alerts import (
    DIURESIS_MISSING,
    ECT_MISSING,
    ECT_ZERO,
    SWEAT_MISSING,
    SWEAT_ZERO,
    evaluate_alerts,
)
from carebalance.classify import ECTMode, SpO2Band, VentMode
from carebalance.generator import compute_all, default_ui, enabled_fields, set_surgical
from carebalance.rules import DEFAULT_RULES, deep_merge_dict


def _ui(**kw):
    ui = default_ui()
    ui.update(kw)
    return ui


def test_in_scaled_from_12h():
    comp = compute_all(_ui(period_hours=12, in_oral="200", in_iv="300", in_enteral="100"))
    assert comp.in_period == 600
    assert comp.in_24h == 1200


def test_in_fields_clamped_before_sum():
    comp = compute_all(_ui(in_oral="-100", in_iv="60000", in_flush="abc"))
    assert comp.in_items["in_oral"] == 0
    assert comp.in_items["in_iv"] == 50000
    assert comp.in_items["in_flush"] is None
    assert comp.in_period == 50000


def test_out_excludes_perspiration():
    comp = compute_all(_ui(weight_kg="70", out_diuresis="1500"))
    assert comp.out_24h == 1500
    assert comp.perspiration.value == 700
    assert comp.clinical_balance == -1500
    assert comp.total_balance == -2200


def test_full_balance_chain():
    comp = compute_all(_ui(
        period_hours=12,
        weight_kg="70",
        in_oral="200",
        in_iv="400",
        out_diuresis="300",
        out_drains="50",
        ect_mode="CRRT",
        ect_net_removal="250",
    ))
    assert comp.in_24h == 1200
    assert comp.out_24h == 700
    assert comp.ect_24h == 500
    assert comp.clinical_balance == 500
    assert comp.total_balance == -200
    assert comp.total_balance_ect == -700
    assert comp.total_balance_ect <= comp.total_balance <= comp.clinical_balance


def test_perspiration_is_not_period_scaled():
    c24 = compute_all(_ui(period_hours=24, weight_kg="70", fever=True, temp_c="39.0"))
    c6 = compute_all(_ui(period_hours=6, weight_kg="70", fever=True, temp_c="39.0"))
    assert c24.perspiration.value == c6.perspiration.value == 840


def test_missing_weight_disables_perspiration_only():
    comp = compute_all(_ui(weight_kg="", in_oral="1000", out_diuresis="400"))
    assert comp.weight is None
    assert comp.perspiration.value is None
    assert comp.clinical_balance == 600
    assert comp.total_balance == 600
    assert comp.total_balance_ect == 600


def test_surgical_outputs_only_when_flagged():
    base = dict(out_diuresis="500", out_stool_stoma="100", out_bleeding="50", out_fistula="25")
    on = compute_all(_ui(surgical=True, **base))
    off = compute_all(_ui(surgical=False, **base))
    assert on.out_24h == 675
    assert off.out_24h == 500
    assert "out_fistula" not in off.out_items


def test_surgical_toggle_off_clears_fields():
    ui = _ui(surgical=True, out_diuresis="500", out_stool_stoma="100", out_bleeding="50", out_fistula="25")
    off = set_surgical(ui, False)
    assert off["out_stool_stoma"] == off["out_bleeding"] == off["out_fistula"] == ""
    # input snapshot untouched
    assert ui["out_stool_stoma"] == "100"
    # switching back on does not resurrect old values
    again = compute_all(set_surgical(off, True))
    assert again.out_24h == 500


def test_dependent_fields_locked_until_flag_set():
    assert not any(enabled_fields(default_ui()).values())

    vent = enabled_fields(_ui(vent_mode="hfno"))
    assert vent["fio2"] and vent["humidification"]
    assert not vent["dry_weight_kg"] and not vent["antipyretic"]

    both = enabled_fields(_ui(chronic_dialysis=True, fever=True))
    assert both["dry_weight_kg"]
    assert both["fever_persistent_24h"] and both["antipyretic"]
    assert not both["fio2"]

    assert not enabled_fields(_ui(vent_mode="bogus"))["fio2"]


def test_sweating_counted_only_with_flag():
    assert compute_all(_ui(out_sweat="200")).out_24h == 0
    comp = compute_all(_ui(profuse_sweating=True, out_sweat="200", period_hours=12))
    assert comp.sweat == 200
    assert comp.out_24h == 400


def test_ect_inactive_ignores_value():
    comp = compute_all(_ui(ect_mode="none", ect_net_removal="800"))
    assert comp.ect_active is False
    assert comp.ect_24h == 0
    assert comp.alerts.ect is None


def test_ect_missing_value_alert_and_zero_contribution():
    comp = compute_all(_ui(weight_kg="70", in_oral="1000", ect_mode="ECMO"))
    assert comp.ect_mode is ECTMode.ECMO
    assert comp.alerts.ect == ECT_MISSING
    assert comp.ect_24h == 0
    assert comp.total_balance_ect == comp.total_balance


def test_ect_zero_value_alert():
    comp = compute_all(_ui(ect_mode="SCUF", ect_net_removal="0"))
    assert comp.alerts.ect == ECT_ZERO


def test_diuresis_alert():
    assert compute_all(_ui()).alerts.diuresis == DIURESIS_MISSING
    assert compute_all(_ui(anuria=True)).alerts.diuresis is None
    # measured zero is an answer
    assert compute_all(_ui(out_diuresis="0")).alerts.diuresis is None


def test_sweating_alerts():
    assert compute_all(_ui(profuse_sweating=True)).alerts.sweating == SWEAT_MISSING
    assert compute_all(_ui(profuse_sweating=True, out_sweat="0")).alerts.sweating == SWEAT_ZERO
    assert compute_all(_ui(profuse_sweating=True, out_sweat="150")).alerts.sweating is None
    assert compute_all(_ui(out_sweat="")).alerts.sweating is None


def test_high_fever_alert():
    assert compute_all(_ui(fever=True, temp_c="39.5")).alerts.fever is not None
    assert compute_all(_ui(fever=True, temp_c="39.0")).alerts.fever is None
    assert compute_all(_ui(fever=False, temp_c="40.0")).alerts.fever is None


def test_alert_messages_order_and_markdown():
    rep = evaluate_alerts({"diuresis": None, "ect_active": True, "ect_net_removal": None})
    assert rep.messages == [DIURESIS_MISSING, ECT_MISSING]
    md = rep.to_markdown()
    assert md.startswith("### Avvisi")
    assert evaluate_alerts({"anuria": True}).to_markdown() == "—"


def test_ventilation_and_spo2():
    comp = compute_all(_ui(vent_mode="hfno", fio2="60", humidification=True, spo2="91%"))
    assert comp.vent_mode is VentMode.HFNO
    assert comp.vent_active is True
    assert comp.fio2 == 60
    assert comp.spo2_band is SpO2Band.BORDERLINE

    none = compute_all(_ui(vent_mode="none", fio2="60"))
    assert none.fio2 is None


def test_dialysis_delta():
    comp = compute_all(_ui(weight_kg="72,5", chronic_dialysis=True, dry_weight_kg="70"))
    assert comp.weight_delta == 2.5
    off = compute_all(_ui(weight_kg="72,5", chronic_dialysis=False, dry_weight_kg="70"))
    assert off.dry_weight is None
    assert off.weight_delta is None


def test_unknown_period_falls_back_to_24h():
    comp = compute_all(_ui(period_hours="8", in_oral="100"))
    assert comp.period_hours == 24
    assert comp.in_24h == 100


def test_compute_is_idempotent_and_pure():
    ui = _ui(period_hours=6, weight_kg="80", fever=True, temp_c="38.5", in_iv="250", out_diuresis="120")
    snapshot = dict(ui)
    assert compute_all(ui) == compute_all(ui)
    assert ui == snapshot


def test_custom_rules():
    rules = deep_merge_dict(DEFAULT_RULES, {"perspiration": {"base_ml_per_kg": 12}})
    comp = compute_all(_ui(weight_kg="70"), rules)
    assert comp.perspiration.value == 840


def test_default_ui_reset():
    ui = default_ui()
    assert ui["period_hours"] == 24
    assert ui["temp_c"] == "37.0"
    assert ui["vent_mode"] == "none"
    assert ui["ect_mode"] == "none"
    assert ui["skin_loss"] == "none"
    ui["weight_kg"] = "70"
    assert default_ui()["weight_kg"] == ""
