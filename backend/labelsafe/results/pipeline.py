"""
Analysis pipeline: raw label text (manual entry or OCR) -> parser -> policy engine -> AnalysisResult.
Also the adapter from AnalysisResult to the compact ScanSummary used by overrides and alerts.
"""
from typing import Dict, Iterable, List, Optional
import logging

from labelsafe.config import low_ocr_confidence_requires_review
from labelsafe.evaluation.escalation import escalate_inferred_risks
from labelsafe.evaluation.policy_engine import PolicyEngine, ProfileInput, as_profile, get_default_engine
from labelsafe.models.analysis import (
    AnalysisResult,
    MatchedIngredient,
    MatchType,
    ProfileResult,
    SafetyStatus,
)
from labelsafe.models.finding import FindingKind, FindingSeverity
from labelsafe.models.parsed_label import ParsedLabel
from labelsafe.models.policy_result import PolicyResult, PolicyStatus
from labelsafe.models.scan_summary import AllergenMatch, MenuLine, ScanSummary
from labelsafe.normalization.label_parser import parse_ingredient_label
from labelsafe.ocr.ocr_result import OcrResult, build_full_label_text
from labelsafe.terms.allergen_terms import ALLERGEN_SYNONYM_MAP, canonical_allergen_name, lookup_allergen

logger = logging.getLogger(__name__)

FLAG_NO_INGREDIENTS = "No ingredients could be parsed from the text"
FLAG_FEW_INGREDIENTS = "Very few ingredients detected; text may be incomplete"
FLAG_MAY_CONTAIN = "Label includes 'may contain' warnings (cross-contamination risk)"
MIN_EXPECTED_INGREDIENTS = 3

WARNING_UNREADABLE = "Could not read ingredient text from the image. Please try again with a clearer photo."
WARNING_LOW_CONFIDENCE = "Low confidence in text extraction. Some ingredients may have been misread."
WARNING_MEDIUM_CONFIDENCE = "Some text was partially unclear. Please verify the results."
REASON_UNREADABLE = "Label text could not be read; manual review required"
REASON_LOW_CONFIDENCE = "Label text was read with low confidence; check the label yourself"

_STATUS_MAP = {
    PolicyStatus.SAFE: SafetyStatus.SAFE,
    PolicyStatus.CAUTION: SafetyStatus.CAUTION,
    PolicyStatus.UNSAFE: SafetyStatus.UNSAFE,
}

_KIND_TO_MATCH = {
    FindingKind.ALLERGEN: MatchType.ALLERGEN,
    FindingKind.DIETARY: MatchType.PREFERENCE,
    FindingKind.FORBIDDEN_KEYWORD: MatchType.KEYWORD,
}

# AllergenMatch.severity in the compact summary
_UNSAFE_SEVERITY = 1.0
_CAUTION_SEVERITY = 0.5


def data_quality_flags(parsed: ParsedLabel) -> List[str]:
    flags: List[str] = []
    if not parsed.ingredients:
        flags.append(FLAG_NO_INGREDIENTS)
    if len(parsed.ingredients) < MIN_EXPECTED_INGREDIENTS:
        flags.append(FLAG_FEW_INGREDIENTS)
    if parsed.may_contain_statements:
        flags.append(FLAG_MAY_CONTAIN)
    return flags


def _add_matched_ingredient(
    matched: List[MatchedIngredient], name: str, match_type: MatchType, profile_id: str, unsafe: bool,
) -> None:
    for m in matched:
        if m.type == match_type and m.name.lower() == name.lower():
            if profile_id not in m.profile_ids:
                m.profile_ids.append(profile_id)
            m.unsafe = bool(m.unsafe) or unsafe
            return
    matched.append(MatchedIngredient(name=name, type=match_type, profile_ids=[profile_id], unsafe=unsafe))


def policy_results_to_analysis(parsed: ParsedLabel, policy_results: Iterable[PolicyResult]) -> AnalysisResult:
    """Per-profile PolicyResults -> AnalysisResult (reasons, matched lists, merged matched_ingredients)."""
    matched: List[MatchedIngredient] = []
    results: List[ProfileResult] = []
    for pr in policy_results:
        profile = ProfileResult(
            profile_id=pr.profile_id,
            name=pr.profile_name,
            status=_STATUS_MAP[pr.status],
            confidence=pr.confidence,
        )
        for finding in pr.findings:
            profile.reasons.append(finding.reason)
            if finding.kind == FindingKind.ALLERGEN:
                profile.matched_allergens.append(finding.matched_text)
            elif finding.kind == FindingKind.DIETARY:
                profile.matched_preferences.append(f"{finding.canonical_term}: {finding.matched_text}")
            else:
                profile.matched_keywords.append(finding.matched_text)
            _add_matched_ingredient(
                matched, finding.matched_text, _KIND_TO_MATCH[finding.kind], pr.profile_id,
                finding.severity == FindingSeverity.UNSAFE,
            )
        results.append(profile)

    return AnalysisResult(
        ingredients=list(parsed.ingredients),
        results=results,
        matched_ingredients=matched,
        confidence=min((r.confidence for r in results), default=1.0),
        data_quality_flags=data_quality_flags(parsed),
    )


def analyze_text(
    raw_text: str,
    profiles: Iterable[ProfileInput],
    inferred_risks: Optional[Iterable[str]] = None,
    engine: Optional[PolicyEngine] = None,
) -> AnalysisResult:
    """
    Full deterministic pipeline for already-extracted text.
    Inferred risks naming a very bad allergen are escalated into every profile's findings;
    the rest are reported as warnings only.
    """
    engine = engine or get_default_engine()
    parsed = parse_ingredient_label(raw_text)
    users = [as_profile(p) for p in profiles or []]
    policy_results = engine.evaluate_for_profiles(parsed, users)

    warnings: List[str] = []
    if inferred_risks:
        outcome = escalate_inferred_risks(policy_results, inferred_risks)
        policy_results = outcome.results
        if outcome.inferred:
            warnings.append(f"Possible risks not listed on the label: {', '.join(outcome.inferred)}")

    result = policy_results_to_analysis(parsed, policy_results)
    result.warnings.extend(warnings)
    logger.info(
        "ANALYSIS ingredients=%d profiles=%d statuses=%s confidence=%.2f",
        len(result.ingredients), len(result.results),
        [r.status.value for r in result.results], result.confidence,
    )
    return result


def manual_review_result(profiles: Iterable[ProfileInput], warnings: List[str], raw_text: str = "") -> AnalysisResult:
    """Fail-closed result: no verdict for anyone, every profile routed to manual review."""
    results = [
        ProfileResult(
            profile_id=user.id,
            name=user.name,
            status=SafetyStatus.MANUAL_REVIEW,
            reasons=[REASON_UNREADABLE],
            confidence=0.0,
        )
        for user in (as_profile(p) for p in profiles or [])
    ]
    return AnalysisResult(
        ingredients=[],
        results=results,
        matched_ingredients=[],
        confidence=0.0,
        raw_extracted_text=raw_text,
        warnings=list(warnings),
        data_quality_flags=[FLAG_NO_INGREDIENTS],
    )


def analyze_ocr_result(
    ocr: OcrResult,
    profiles: Iterable[ProfileInput],
    inferred_risks: Optional[Iterable[str]] = None,
    engine: Optional[PolicyEngine] = None,
    low_confidence_requires_review: Optional[bool] = None,
) -> AnalysisResult:
    """
    OCR output -> AnalysisResult. Unreadable or empty text never yields "safe": every profile
    gets manual_review. Low OCR confidence downgrades safe profiles to manual_review when enabled.
    """
    profiles = list(profiles or [])
    if ocr.is_unreadable:
        warnings = [WARNING_UNREADABLE]
        if ocr.notes:
            warnings.append(ocr.notes)
        logger.info("ANALYSIS ocr unreadable type=%s profiles=%d -> manual_review", ocr.type, len(profiles))
        result = manual_review_result(profiles, warnings)
        result.ocr_confidence = ocr.confidence
        return result

    full_text = build_full_label_text(ocr)
    result = analyze_text(full_text, profiles, inferred_risks=inferred_risks, engine=engine)
    result.raw_extracted_text = full_text
    result.ocr_confidence = ocr.confidence

    warnings: List[str] = []
    if ocr.confidence == "low":
        warnings.append(WARNING_LOW_CONFIDENCE)
    elif ocr.confidence == "medium":
        warnings.append(WARNING_MEDIUM_CONFIDENCE)
    if ocr.notes:
        warnings.append(ocr.notes)
    result.warnings = warnings + result.warnings

    if low_confidence_requires_review is None:
        low_confidence_requires_review = low_ocr_confidence_requires_review()
    if ocr.confidence == "low" and low_confidence_requires_review:
        for profile in result.results:
            if profile.status == SafetyStatus.SAFE:
                profile.status = SafetyStatus.MANUAL_REVIEW
                profile.reasons.append(REASON_LOW_CONFIDENCE)
        logger.info("ANALYSIS low ocr confidence; safe profiles routed to manual_review")
    return result


def _allergen_id(name: str) -> str:
    canonical = lookup_allergen(name) or canonical_allergen_name(name)
    if canonical:
        return canonical
    lower = name.lower()
    for term, allergen in ALLERGEN_SYNONYM_MAP.items():
        if term in lower:
            return allergen
    return name


def summarize_analysis(result: AnalysisResult) -> ScanSummary:
    """
    AnalysisResult -> ScanSummary (allergens grouped by canonical allergen, dietary rule labels
    as flags). Used only at the override/alert boundary.
    Severity follows the matched findings; payloads without that flag fall back to profile status.
    """
    unsafe_names = set()
    for profile in result.results:
        if profile.status == SafetyStatus.UNSAFE:
            unsafe_names.update(a.lower() for a in profile.matched_allergens)

    grouped: Dict[str, List[str]] = {}
    severities: Dict[str, float] = {}
    for m in result.matched_ingredients:
        if m.type != MatchType.ALLERGEN:
            continue
        allergen_id = _allergen_id(m.name)
        grouped.setdefault(allergen_id, [])
        if m.name not in grouped[allergen_id]:
            grouped[allergen_id].append(m.name)
        unsafe = m.unsafe if m.unsafe is not None else m.name.lower() in unsafe_names
        severity = _UNSAFE_SEVERITY if unsafe else _CAUTION_SEVERITY
        severities[allergen_id] = max(severities.get(allergen_id, 0.0), severity)

    flags: List[str] = []
    for profile in result.results:
        for pref in profile.matched_preferences:
            label = pref.split(":", 1)[0].strip()
            if label and label not in flags:
                flags.append(label)

    return ScanSummary(
        menu_items=tuple(
            MenuLine(raw_text=ing, normalized=(ing,), confidence=result.confidence) for ing in result.ingredients
        ),
        allergens_detected=tuple(
            AllergenMatch(allergen_id=a, severity=severities[a], matches=tuple(names)) for a, names in grouped.items()
        ),
        dietary_flags=tuple(flags),
        confidence=result.confidence,
    )
