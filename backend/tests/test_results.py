"""
Result handling: fingerprints, session counters, merges, overrides, admin alerts.
"""
import pytest

from labelsafe.models.scan_summary import AllergenMatch, MenuLine, ScanSummary
from labelsafe.results.alerts import AdminAlert, build_admin_alert, build_alert_summary
from labelsafe.results.fingerprint import compute_item_fingerprint, normalize_tokens
from labelsafe.results.merge import (
    USER_CORRECTED_FLAG,
    apply_user_override_to_result,
    is_user_corrected,
    merge_analysis,
    quick_heuristic_scan,
    should_create_admin_alert,
)
from labelsafe.results.session import SessionCounters, update_session_attempt_counters

MILK = AllergenMatch(allergen_id="Milk", severity=1.0, matches=("whey",))


class TestFingerprint:
    @pytest.mark.parametrize("confirmed,guessed,expected", [
        ("Grilled Chicken!", None, "fp:grilled-chicken"),
        (None, "  Pad   Thai ", "fp:pad-thai"),
        ("   ", "Soup", "fp:soup"),
        ("Caesar Salad", "Salad", "fp:caesar-salad"),
        ("", "", None),
        (None, None, None),
        ("!!!", None, None),
    ])
    def test_compute(self, confirmed, guessed, expected):
        assert compute_item_fingerprint(confirmed, guessed) == expected

    def test_normalize_tokens(self):
        assert normalize_tokens(["Mac & Cheese", "", "  ", "B12!"]) == ["mac  cheese", "b12"]


class TestSessionCounters:
    def test_escalation_after_three_manual_reviews(self):
        state = SessionCounters()
        shown = []
        for _ in range(4):
            state = update_session_attempt_counters(state, True)
            shown.append(state.should_show_escalation)
        assert shown == [False, False, True, False]
        assert state.attempt_count == 4
        assert state.escalation_shown

    def test_non_manual_review_resets_streak(self):
        state = update_session_attempt_counters({"attempt_count": 2, "manual_review_count": 2}, False)
        assert state.attempt_count == 3
        assert state.manual_review_count == 0
        assert not state.should_show_escalation

    def test_latch_survives_reset(self):
        state = SessionCounters(attempt_count=5, manual_review_count=3, escalation_shown=True)
        state = update_session_attempt_counters(state, False)
        state = update_session_attempt_counters(state, True)
        assert state.escalation_shown
        assert not state.should_show_escalation

    def test_missing_fields_default(self):
        state = update_session_attempt_counters({"attemptCount": None}, True)
        assert state.to_dict() == {
            "attempt_count": 1,
            "manual_review_count": 1,
            "escalation_shown": False,
            "should_show_escalation": False,
        }

    def test_none_session(self):
        assert update_session_attempt_counters(None, False).attempt_count == 1


class TestMerge:
    def test_server_wins_per_field(self):
        local = ScanSummary(menu_items=(MenuLine("a"),), allergens_detected=(MILK,), confidence=0.9)
        server = ScanSummary(allergens_detected=(), dietary_flags=("Vegan",), confidence=0.4)
        merged = merge_analysis(local, server)
        assert merged.menu_items == (MenuLine("a"),)
        assert merged.allergens_detected == ()
        assert merged.dietary_flags == ("Vegan",)
        assert merged.confidence == 0.9

    def test_missing_fields_become_empty(self):
        merged = merge_analysis(None, None)
        assert merged.menu_items == ()
        assert merged.allergens_detected == ()
        assert merged.dietary_flags == ()
        assert merged.confidence == 0.0

    def test_idempotent(self):
        summary = ScanSummary(menu_items=(MenuLine("a"),), allergens_detected=(MILK,), dietary_flags=("x",), confidence=0.7)
        assert merge_analysis(summary, summary) == summary

    def test_accepts_camel_case_dicts(self):
        merged = merge_analysis({"allergensDetected": [{"allergenId": "Soy", "severity": 0.5}]}, {"confidence": 0.3})
        assert merged.allergens_detected[0].allergen_id == "Soy"
        assert merged.confidence == 0.3


class TestOverrides:
    def test_override_with_allergens_marks_corrected(self):
        base = ScanSummary(dietary_flags=("Vegan",), confidence=0.5)
        result = apply_user_override_to_result(base, ScanSummary(allergens_detected=(MILK,)))
        assert result.allergens_detected == (MILK,)
        assert result.dietary_flags == ("Vegan", USER_CORRECTED_FLAG)
        assert is_user_corrected(result)

    def test_flag_added_once(self):
        override = ScanSummary(allergens_detected=(MILK,))
        once = apply_user_override_to_result(ScanSummary(), override)
        twice = apply_user_override_to_result(once, override)
        assert twice.dietary_flags.count(USER_CORRECTED_FLAG) == 1

    def test_override_without_allergens_not_flagged(self):
        result = apply_user_override_to_result(ScanSummary(allergens_detected=(MILK,)), ScanSummary(confidence=0.9))
        assert not is_user_corrected(result)
        assert result.allergens_detected == (MILK,)


class TestAdminAlerts:
    @pytest.mark.parametrize("summary,expected", [
        (ScanSummary(allergens_detected=(MILK,), confidence=0.1), True),
        (ScanSummary(allergens_detected=(), dietary_flags=("Vegan",), confidence=1.0), False),
        (ScanSummary(), False),
    ])
    def test_should_alert(self, summary, expected):
        assert should_create_admin_alert(summary) is expected

    @pytest.mark.parametrize("allergens,expected", [
        ([], ""),
        (["Milk"], "Contains Milk"),
        (["Milk", "Soy"], "Contains Milk and Soy"),
        (["Milk", "Soy", "Wheat"], "Contains Milk, Soy and Wheat"),
    ])
    def test_summary_text(self, allergens, expected):
        assert build_alert_summary(allergens) == expected

    def test_build_alert(self):
        summary = ScanSummary(allergens_detected=(MILK, AllergenMatch("Soy", 0.5), MILK))
        alert = build_admin_alert("s1", summary, ["p1", "", "p2"])
        assert alert.allergens == ["Milk", "Soy"]
        assert alert.summary == "Contains Milk and Soy"
        assert alert.profile_ids == ["p1", "p2"]
        assert not alert.is_read
        assert AdminAlert.from_dict(alert.to_dict()) == alert

    def test_no_alert_without_allergens(self):
        assert build_admin_alert("s1", {"dietary_flags": ["Vegan"]}, ["p1"]) is None


class TestQuickHeuristicScan:
    def test_hit(self):
        summary = quick_heuristic_scan("Pad Thai\nPeanut sauce\n\n", ["peanut", "  "])
        assert [m.raw_text for m in summary.menu_items] == ["Pad Thai", "Peanut sauce"]
        assert summary.menu_items[1].normalized == ("peanut", "sauce")
        assert summary.allergens_detected[0].allergen_id == "peanut"
        assert summary.confidence == 0.85

    def test_miss(self):
        summary = quick_heuristic_scan("Green salad", ["milk"])
        assert summary.allergens_detected == ()
        assert summary.confidence == 0.5

    def test_empty(self):
        summary = quick_heuristic_scan("", None)
        assert summary.menu_items == ()
        assert summary.confidence == 0.5
