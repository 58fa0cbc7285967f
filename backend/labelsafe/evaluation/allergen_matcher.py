"""
Allergen matcher: ingredient tokens and declared statements vs the profile's allergies.
Order: "Contains" statements, ingredients, "May contain" statements.
Per ingredient, first hit wins: exact synonym (1.0) -> synonym substring (0.9) -> raw allergy name (0.85).
"""
from typing import Dict, List, Optional

from labelsafe.evaluation.matching import banded_match, contains_either_way
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
from labelsafe.terms.allergen_terms import (
    canonical_allergen_name,
    is_false_positive,
    lookup_allergen,
    synonyms_for,
)

EXACT_CONFIDENCE = 1.0
SYNONYM_CONFIDENCE = 0.9
DIRECT_NAME_CONFIDENCE = 0.85
CONTAINS_CONFIDENCE = 1.0
MAY_CONTAIN_CONFIDENCE = 0.6

# Reverse match (synonym key contains the token) only for near-identical lengths
SYNONYM_REVERSE_LEN_DIFF = 3


def _held_allergens(profile: UserProfile) -> Dict[str, str]:
    """lowercase canonical name -> canonical name, for every allergy that maps to a known allergen."""
    held: Dict[str, str] = {}
    for allergy in profile.all_allergies:
        canonical = canonical_allergen_name(allergy)
        if canonical:
            held[canonical.lower()] = canonical
    return held


def _allergy_term(allergy: str) -> str:
    """Canonical allergen for a profile allergy, or the allergy text itself for custom ones."""
    return canonical_allergen_name(allergy) or allergy


def _ingredient_finding(text: str, ingredient: str, allergen: str, reason: str, confidence: float) -> Finding:
    return Finding(
        kind=FindingKind.ALLERGEN,
        severity=FindingSeverity.UNSAFE,
        matched_text=ingredient,
        canonical_term=allergen,
        reason=reason,
        evidence_spans=tuple(find_evidence_spans(text, ingredient)),
        source=FindingSource.INGREDIENTS,
        confidence=confidence,
    )


def _match_ingredient(text: str, ingredient: str, profile: UserProfile, held: Dict[str, str]) -> Optional[Finding]:
    lower = ingredient.lower().strip()
    if not lower:
        return None

    # a. exact synonym
    canonical = lookup_allergen(lower)
    if canonical and canonical.lower() in held and not is_false_positive(lower, canonical):
        return _ingredient_finding(
            text, ingredient, canonical,
            f'"{ingredient}" is a {canonical} derivative ({canonical} allergen)',
            EXACT_CONFIDENCE,
        )

    # b. synonym substring
    for term, allergen in synonyms_for(held.values()):
        if not banded_match(lower, term, SYNONYM_REVERSE_LEN_DIFF):
            continue
        if is_false_positive(lower, allergen):
            continue
        return _ingredient_finding(
            text, ingredient, allergen,
            f'"{ingredient}" contains "{term}" ({allergen} allergen)',
            SYNONYM_CONFIDENCE,
        )

    # c. raw allergy / custom allergy name
    for allergy in profile.all_allergies:
        if not contains_either_way(lower, allergy):
            continue
        allergen = _allergy_term(allergy)
        if is_false_positive(lower, allergen):
            continue
        return _ingredient_finding(
            text, ingredient, allergen,
            f'"{ingredient}" matches your "{allergy}" allergy',
            DIRECT_NAME_CONFIDENCE,
        )
    return None


def _statement_allergens(statement: str, profile: UserProfile, held: Dict[str, str]) -> List[str]:
    """Allergens a declared statement names: raw allergy substring either way, or exact synonym."""
    out: List[str] = []
    for allergy in profile.all_allergies:
        if contains_either_way(statement, allergy):
            allergen = _allergy_term(allergy)
            if allergen not in out:
                out.append(allergen)
    canonical = lookup_allergen(statement)
    if canonical and canonical.lower() in held and canonical not in out:
        out.append(canonical)
    return out


def check_allergens(parsed: ParsedLabel, profile: UserProfile) -> List[Finding]:
    """All allergen findings for one profile, deduplicated."""
    if not profile.all_allergies:
        return []
    text = parsed.normalized_text
    held = _held_allergens(profile)
    findings: List[Finding] = []

    for statement in parsed.contains_statements:
        for allergen in _statement_allergens(statement, profile, held):
            if has_finding(findings, FindingKind.ALLERGEN, canonical_term=allergen, source=FindingSource.CONTAINS):
                continue
            findings.append(Finding(
                kind=FindingKind.ALLERGEN,
                severity=FindingSeverity.UNSAFE,
                matched_text=statement,
                canonical_term=allergen,
                reason=f'Label declares "Contains: {statement}" ({allergen} allergen)',
                evidence_spans=tuple(find_evidence_spans(text, statement)),
                source=FindingSource.CONTAINS,
                confidence=CONTAINS_CONFIDENCE,
            ))

    # Same (allergen, text) as a declared statement collapses into the statement finding
    for ingredient in parsed.ingredients:
        finding = _match_ingredient(text, ingredient, profile, held)
        if finding is not None:
            findings.append(finding)

    may_severity = FindingSeverity.UNSAFE if profile.treat_may_contain_as_unsafe else FindingSeverity.CAUTION
    for statement in parsed.may_contain_statements:
        for allergen in _statement_allergens(statement, profile, held):
            if has_finding(findings, FindingKind.ALLERGEN, canonical_term=allergen, source=FindingSource.MAY_CONTAIN):
                continue
            findings.append(Finding(
                kind=FindingKind.ALLERGEN,
                severity=may_severity,
                matched_text=statement,
                canonical_term=allergen,
                reason=f'Label warns "May contain: {statement}" (possible {allergen} cross-contamination)',
                evidence_spans=tuple(find_evidence_spans(text, statement)),
                source=FindingSource.MAY_CONTAIN,
                confidence=MAY_CONTAIN_CONFIDENCE,
            ))

    return deduplicate_findings(findings)
