"""
Forbidden keywords: ingredient match first, full-text scan as fallback.
"""
from labelsafe.evaluation.keyword_matcher import check_forbidden_keywords
from labelsafe.models.finding import FindingKind, FindingSeverity
from labelsafe.models.user_profile import UserProfile
from labelsafe.normalization.label_parser import parse_ingredient_label


def _findings(text, *keywords):
    profile = UserProfile(id="p1", forbidden_keywords=tuple(keywords))
    return check_forbidden_keywords(parse_ingredient_label(text), profile)


def test_ingredient_match():
    findings = _findings("Ingredients: sugar, palm oil", "palm")
    assert len(findings) == 1
    f = findings[0]
    assert f.kind == FindingKind.FORBIDDEN_KEYWORD
    assert f.severity == FindingSeverity.UNSAFE
    assert f.matched_text == "palm oil"
    assert f.canonical_term == "palm"
    assert f.confidence == 1.0


def test_case_insensitive_keeps_user_spelling():
    findings = _findings("Ingredients: msg, salt", "MSG")
    assert [f.canonical_term for f in findings] == ["MSG"]
    assert findings[0].matched_text == "msg"


def test_text_scan_fallback():
    findings = _findings("Ingredients: sugar, salt. Nutrition Facts: msg 0g", "msg")
    assert len(findings) == 1
    assert findings[0].matched_text == "msg"
    assert findings[0].confidence == 0.9
    assert findings[0].evidence_spans


def test_text_scan_next_to_asterisk():
    findings = _findings("Ingredients: sugar, salt. Nutrition Facts: msg* 0g", "msg")
    assert [f.matched_text for f in findings] == ["msg"]
    assert findings[0].evidence_spans


def test_text_scan_requires_whole_word():
    assert _findings("Ingredients: sugar. Nutrition Facts: msgx 0g", "msg") == []


def test_one_ingredient_finding_per_keyword():
    findings = _findings("Ingredients: palm oil, palm kernel oil", "palm")
    assert len(findings) == 1


def test_blank_keyword_ignored():
    assert _findings("Ingredients: sugar", "   ") == []


def test_no_keywords():
    assert _findings("Ingredients: sugar") == []
