"""
Dietary matcher: ingredients vs the violation / caution terms of each preference's rule.
"""
from typing import List

from labelsafe.evaluation.matching import banded_match
from labelsafe.models.finding import (
    Finding,
    FindingKind,
    FindingSeverity,
    FindingSource,
    deduplicate_findings,
    has_finding,
)
from labelsafe.models.parsed_label import ParsedLabel
from labelsafe.models.user_profile import UserProfile
from labelsafe.normalization.label_parser import find_evidence_spans
from labelsafe.terms.dietary_rules import DietaryRule, DietaryRuleRegistry, is_plant_based_exception

VIOLATION_CONFIDENCE = 0.95
CAUTION_CONFIDENCE = 0.6

REVERSE_LEN_DIFF = 4
MIN_REVERSE_LEN = 3


def _term_matches(ingredient: str, term: str) -> bool:
    return banded_match(ingredient, term, REVERSE_LEN_DIFF, MIN_REVERSE_LEN)


def _check_rule(text: str, ingredient: str, rule: DietaryRule, findings: List[Finding]) -> None:
    lower = ingredient.lower().strip()
    if not lower:
        return

    for term in rule.violation_terms:
        if not _term_matches(lower, term):
            continue
        if is_plant_based_exception(lower, term):
            continue
        findings.append(Finding(
            kind=FindingKind.DIETARY,
            severity=FindingSeverity.UNSAFE,
            matched_text=ingredient,
            canonical_term=rule.label,
            reason=f'"{ingredient}" is {rule.reason_template}; violates {rule.label} preference',
            evidence_spans=tuple(find_evidence_spans(text, ingredient)),
            source=FindingSource.INGREDIENTS,
            confidence=VIOLATION_CONFIDENCE,
        ))
        break

    # One finding per (ingredient, rule): a violation already covers this pair
    if has_finding(findings, FindingKind.DIETARY, canonical_term=rule.label, matched_text=ingredient):
        return

    for term in rule.caution_terms:
        if not _term_matches(lower, term):
            continue
        findings.append(Finding(
            kind=FindingKind.DIETARY,
            severity=FindingSeverity.CAUTION,
            matched_text=ingredient,
            canonical_term=rule.label,
            reason=f'"{ingredient}" may be {rule.reason_template}; check if compatible with {rule.label}',
            evidence_spans=tuple(find_evidence_spans(text, ingredient)),
            source=FindingSource.INGREDIENTS,
            confidence=CAUTION_CONFIDENCE,
        ))
        break


def check_dietary_preferences(
    parsed: ParsedLabel,
    profile: UserProfile,
    registry: DietaryRuleRegistry,
) -> List[Finding]:
    """Findings for every preference with a registered rule; unknown (custom) preferences are skipped."""
    findings: List[Finding] = []
    text = parsed.normalized_text
    for key in profile.all_preferences:
        rule = registry.get(key)
        if rule is None:
            continue
        for ingredient in parsed.ingredients:
            _check_rule(text, ingredient, rule, findings)
    return deduplicate_findings(findings)
