"""
Allergen matcher: synonym precedence, false-positive exclusions, declared statements.
"""
import pytest

from labelsafe.evaluation.allergen_matcher import check_allergens
from labelsafe.models.finding import FindingKind, FindingSeverity, FindingSource
from labelsafe.models.user_profile import UserProfile
from labelsafe.normalization.label_parser import parse_ingredient_label


def _profile(*allergies, custom=(), may_contain_unsafe=False):
    return UserProfile(
        id="p1",
        name="Test",
        allergies=tuple(allergies),
        custom_allergies=tuple(custom),
        treat_may_contain_as_unsafe=may_contain_unsafe,
    )


def _findings(text, profile):
    return check_allergens(parse_ingredient_label(text), profile)


class TestIngredientMatches:
    @pytest.mark.parametrize("term,allergen", [
        ("whey", "Milk"),
        ("casein", "Milk"),
        ("albumin", "Eggs"),
        ("groundnut", "Peanuts"),
        ("cashews", "Tree Nuts"),
        ("semolina", "Wheat"),
        ("barley malt", "Gluten"),
        ("soybean", "Soy"),
        ("anchovy", "Fish"),
        ("shrimp", "Shellfish"),
        ("tahini", "Sesame"),
    ])
    def test_exact_synonym_full_confidence(self, term, allergen):
        findings = _findings(f"Ingredients: {term}", _profile(allergen))
        assert len(findings) == 1
        assert findings[0].canonical_term == allergen
        assert findings[0].confidence == 1.0
        assert findings[0].severity == FindingSeverity.UNSAFE
        assert findings[0].source == FindingSource.INGREDIENTS

    def test_allergy_not_held_no_finding(self):
        assert _findings("Ingredients: whey", _profile("Peanuts")) == []

    def test_profile_alias_spelling(self):
        findings = _findings("Ingredients: whey", _profile("dairy"))
        assert [f.canonical_term for f in findings] == ["Milk"]

    def test_synonym_substring(self):
        findings = _findings("Ingredients: whey powder blend", _profile("Milk"))
        assert len(findings) == 1
        assert findings[0].canonical_term == "Milk"
        assert findings[0].confidence == 0.9

    def test_short_token_not_swallowed_by_long_key(self):
        # "oil" sits inside "fish oil" but the lengths are too far apart
        assert _findings("Ingredients: oil", _profile("Fish")) == []

    def test_custom_allergy_direct_name(self):
        findings = _findings("Ingredients: kiwi fruit, sugar", _profile(custom=("Kiwi",)))
        assert len(findings) == 1
        assert findings[0].canonical_term == "Kiwi"
        assert findings[0].confidence == 0.85

    def test_evidence_span_points_at_ingredient(self):
        text = "Ingredients: sugar, whey"
        parsed = parse_ingredient_label(text)
        finding = check_allergens(parsed, _profile("Milk"))[0]
        span = finding.evidence_spans[0]
        assert parsed.normalized_text[span.start:span.end] == "whey"

    def test_evidence_span_next_to_footnote_marker(self):
        parsed = parse_ingredient_label("Ingredients: organic sugar*, milk*, salt. *Organic")
        finding = check_allergens(parsed, _profile("Milk"))[0]
        assert finding.matched_text == "milk"
        assert [(s.start, s.end) for s in finding.evidence_spans] == [(29, 33)]

    def test_no_allergies_no_findings(self):
        assert _findings("Ingredients: milk, eggs", UserProfile(id="p")) == []


class TestFalsePositives:
    @pytest.mark.parametrize("ingredient,allergen", [
        ("peanut butter", "Milk"),
        ("cocoa butter", "Milk"),
        ("oat milk", "Milk"),
        ("coconut cream", "Milk"),
        ("sunflower lecithin", "Soy"),
        ("live cultures", "Eggs"),
        ("eggplant", "Eggs"),
        ("buckwheat", "Wheat"),
        ("water chestnut", "Tree Nuts"),
        ("maltodextrin", "Gluten"),
    ])
    def test_excluded_phrase(self, ingredient, allergen):
        findings = _findings(f"Ingredients: {ingredient}", _profile(allergen))
        assert not any(f.canonical_term == allergen for f in findings)

    def test_peanut_butter_still_peanuts(self):
        findings = _findings("Ingredients: peanut butter", _profile("Milk", "Peanuts"))
        assert [f.canonical_term for f in findings] == ["Peanuts"]


class TestStatements:
    def test_contains_statement(self):
        findings = _findings("Ingredients: sugar. Contains: milk.", _profile("Milk"))
        contains = [f for f in findings if f.source == FindingSource.CONTAINS]
        assert len(contains) == 1
        assert contains[0].canonical_term == "Milk"
        assert contains[0].confidence == 1.0
        assert contains[0].severity == FindingSeverity.UNSAFE

    def test_contains_one_finding_per_allergen(self):
        findings = _findings("Ingredients: sugar. Contains: milk, milk protein.", _profile("Milk"))
        contains = [f for f in findings if f.source == FindingSource.CONTAINS]
        assert len(contains) == 1

    def test_contains_statement_by_synonym(self):
        findings = _findings("Ingredients: sugar. Contains: whey.", _profile("Milk"))
        assert any(f.source == FindingSource.CONTAINS and f.canonical_term == "Milk" for f in findings)

    def test_may_contain_is_caution(self):
        findings = _findings("Ingredients: sugar. May contain: peanuts, tree nuts.", _profile("Peanuts"))
        assert len(findings) == 1
        assert findings[0].source == FindingSource.MAY_CONTAIN
        assert findings[0].severity == FindingSeverity.CAUTION
        assert findings[0].confidence == 0.6

    def test_may_contain_unsafe_when_profile_says_so(self):
        findings = _findings("Ingredients: sugar. May contain: peanuts.", _profile("Peanuts", may_contain_unsafe=True))
        assert findings[0].severity == FindingSeverity.UNSAFE

    def test_all_findings_are_allergen_kind(self):
        findings = _findings("Ingredients: whey. Contains: milk. May contain: milk protein.", _profile("Milk"))
        assert {f.kind for f in findings} == {FindingKind.ALLERGEN}
        assert {f.source for f in findings} == {
            FindingSource.INGREDIENTS, FindingSource.CONTAINS, FindingSource.MAY_CONTAIN,
        }
