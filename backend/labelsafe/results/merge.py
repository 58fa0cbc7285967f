"""
Merging scan summaries: local quick scan vs server analysis, and user overrides on top.
Server (or override) values win field by field; confidence never drops in a merge.
"""
from typing import Iterable, List, Optional, Union

from labelsafe.models.scan_summary import AllergenMatch, MenuLine, ScanSummary
from labelsafe.results.fingerprint import normalize_tokens

USER_CORRECTED_FLAG = "user_corrected"

HEURISTIC_LINE_CONFIDENCE = 0.6
HEURISTIC_MATCH_SEVERITY = 0.9
HEURISTIC_HIT_CONFIDENCE = 0.85
HEURISTIC_MISS_CONFIDENCE = 0.5

SummaryInput = Union[ScanSummary, dict, None]


def as_summary(value: SummaryInput) -> ScanSummary:
    if isinstance(value, ScanSummary):
        return value
    return ScanSummary.from_dict(value if isinstance(value, dict) else None)


def merge_analysis(local: SummaryInput, server: SummaryInput) -> ScanSummary:
    """
    Each field: server if present, else local, else empty.
    confidence = max(server or 0, local or 0).
    """
    lo = as_summary(local)
    sv = as_summary(server)

    def _pick(server_value, local_value):
        if server_value is not None:
            return server_value
        if local_value is not None:
            return local_value
        return ()

    return ScanSummary(
        menu_items=_pick(sv.menu_items, lo.menu_items),
        allergens_detected=_pick(sv.allergens_detected, lo.allergens_detected),
        dietary_flags=_pick(sv.dietary_flags, lo.dietary_flags),
        confidence=max(sv.confidence or 0.0, lo.confidence or 0.0),
    )


def apply_user_override_to_result(base: SummaryInput, override: SummaryInput) -> ScanSummary:
    """Merge the override over base; an override naming allergens marks the result user_corrected (once)."""
    override_summary = as_summary(override)
    merged = merge_analysis(base, override_summary)
    if not override_summary.allergens_detected:
        return merged
    flags: List[str] = []
    for flag in tuple(merged.dietary_flags or ()) + (USER_CORRECTED_FLAG,):
        if flag not in flags:
            flags.append(flag)
    return ScanSummary(
        menu_items=merged.menu_items,
        allergens_detected=merged.allergens_detected,
        dietary_flags=tuple(flags),
        confidence=merged.confidence,
    )


def is_user_corrected(result: SummaryInput) -> bool:
    return USER_CORRECTED_FLAG in (as_summary(result).dietary_flags or ())


def should_create_admin_alert(result: SummaryInput) -> bool:
    """Allergen evidence only; preference-only or empty results never alert, whatever the confidence."""
    return bool(as_summary(result).allergens_detected)


def quick_heuristic_scan(text: str, user_allergens: Optional[Iterable[str]] = None) -> ScanSummary:
    """
    Fast local pass before the server answers: every non-blank line becomes a menu line and
    allergens are found by plain substring. The deterministic engine result supersedes it.
    """
    text = text or ""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    menu_items = tuple(
        MenuLine(
            raw_text=line,
            normalized=tuple(normalize_tokens(line.split())),
            confidence=HEURISTIC_LINE_CONFIDENCE,
        )
        for line in lines
    )
    lower = text.lower()
    detected: List[AllergenMatch] = []
    for allergen in user_allergens or []:
        if not isinstance(allergen, str) or not allergen.strip():
            continue
        if allergen.lower() in lower:
            detected.append(AllergenMatch(allergen_id=allergen, severity=HEURISTIC_MATCH_SEVERITY, matches=(allergen,)))
    return ScanSummary(
        menu_items=menu_items,
        allergens_detected=tuple(detected),
        dietary_flags=(),
        confidence=HEURISTIC_HIT_CONFIDENCE if detected else HEURISTIC_MISS_CONFIDENCE,
    )
