"""
Dietary matcher against the bundled rule table.
"""
import pytest

from labelsafe.evaluation.dietary_matcher import check_dietary_preferences
from labelsafe.models.finding import FindingKind, FindingSeverity
from labelsafe.models.user_profile import UserProfile
from labelsafe.normalization.label_parser import parse_ingredient_label
from labelsafe.terms.dietary_rules import DietaryRuleRegistry, is_plant_based_exception


@pytest.fixture(scope="module")
def registry():
    return DietaryRuleRegistry()


def _findings(text, registry, *preferences):
    profile = UserProfile(id="p1", preferences=tuple(preferences))
    return check_dietary_preferences(parse_ingredient_label(text), profile, registry)


def test_registry_loads_bundled_rules(registry):
    assert len(registry) >= 12
    assert registry.get("Vegan") is not None
    assert registry.get("Gluten-free").label == "Gluten-Free"
    assert registry.get("Not A Diet") is None


class TestVegan:
    @pytest.mark.parametrize("ingredient", ["oat milk", "almond butter", "coconut cream", "cocoa butter"])
    def test_plant_based_lookalikes_never_violate(self, registry, ingredient):
        assert _findings(f"Ingredients: {ingredient}", registry, "Vegan") == []

    def test_violation(self, registry):
        findings = _findings("Ingredients: vitamin d3", registry, "Vegan")
        assert len(findings) == 1
        assert findings[0].kind == FindingKind.DIETARY
        assert findings[0].severity == FindingSeverity.UNSAFE
        assert findings[0].canonical_term == "Vegan"
        assert findings[0].confidence == 0.95

    def test_violation_reason_names_rule(self, registry):
        finding = _findings("Ingredients: sugar, gelatin", registry, "Vegan")[0]
        assert finding.matched_text == "gelatin"
        assert "violates Vegan preference" in finding.reason

    def test_caution(self, registry):
        findings = _findings("Ingredients: natural flavors", registry, "Vegan")
        assert len(findings) == 1
        assert findings[0].severity == FindingSeverity.CAUTION
        assert findings[0].confidence == 0.6

    def test_one_finding_per_ingredient_and_rule(self, registry):
        findings = _findings("Ingredients: whey protein, sugar", registry, "Vegan")
        assert [f.matched_text for f in findings] == ["whey protein"]


class TestOtherRules:
    def test_gluten_free_oats_caution(self, registry):
        findings = _findings("Ingredients: oats", registry, "Gluten-free")
        assert len(findings) == 1
        assert findings[0].canonical_term == "Gluten-Free"
        assert findings[0].severity == FindingSeverity.CAUTION

    def test_gluten_free_wheat_flour_violation(self, registry):
        findings = _findings("Ingredients: wheat flour", registry, "Gluten-free")
        assert findings[0].severity == FindingSeverity.UNSAFE

    def test_short_token_reverse_match_needs_three_chars(self, registry):
        assert _findings("Ingredients: ch", registry, "Vegetarian") == []

    def test_reverse_match_within_band(self, registry):
        findings = _findings("Ingredients: chick", registry, "Vegetarian")
        assert [f.canonical_term for f in findings] == ["Vegetarian"]

    def test_multiple_preferences(self, registry):
        findings = _findings("Ingredients: gelatin, wheat flour", registry, "Vegan", "Gluten-free")
        assert {f.canonical_term for f in findings} == {"Vegan", "Gluten-Free"}


def test_unknown_preference_skipped(registry):
    assert _findings("Ingredients: anything at all", registry, "Low-glitter") == []


def test_no_preferences(registry):
    assert _findings("Ingredients: bacon", registry) == []


@pytest.mark.parametrize("ingredient,term,expected", [
    ("oat milk", "milk", True),
    ("cocoa butter", "butter", True),
    ("oat milk", "whey", False),
    ("whole milk", "milk", False),
])
def test_plant_based_exception(ingredient, term, expected):
    assert is_plant_based_exception(ingredient, term) is expected
