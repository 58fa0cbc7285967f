"""
Forbidden-keyword matcher: user free-text keywords vs ingredient tokens, then the full label text.
"""
from typing import List

from labelsafe.evaluation.matching import contains_either_way
from labelsafe.models.finding import (
    Finding,
    FindingKind,
    FindingSeverity,
    FindingSource,
    deduplicate_findings,
)
from labelsafe.models.parsed_label import ParsedLabel
from labelsafe.models.user_profile import UserProfile
from labelsafe.normalization.label_parser import find_evidence_spans

INGREDIENT_CONFIDENCE = 1.0
TEXT_SCAN_CONFIDENCE = 0.9


def check_forbidden_keywords(parsed: ParsedLabel, profile: UserProfile) -> List[Finding]:
    findings: List[Finding] = []
    text = parsed.normalized_text
    for keyword in profile.forbidden_keywords:
        lower_keyword = keyword.lower().strip()
        if not lower_keyword:
            continue

        for ingredient in parsed.ingredients:
            if contains_either_way(ingredient, lower_keyword):
                findings.append(Finding(
                    kind=FindingKind.FORBIDDEN_KEYWORD,
                    severity=FindingSeverity.UNSAFE,
                    matched_text=ingredient,
                    canonical_term=keyword,
                    reason=f'"{ingredient}" matches your forbidden keyword "{keyword}"',
                    evidence_spans=tuple(find_evidence_spans(text, ingredient)),
                    source=FindingSource.INGREDIENTS,
                    confidence=INGREDIENT_CONFIDENCE,
                ))
                break

        # Full-text scan catches words the splitter missed
        if any(f.canonical_term.lower() == lower_keyword for f in findings):
            continue
        spans = find_evidence_spans(text, keyword)
        if spans:
            findings.append(Finding(
                kind=FindingKind.FORBIDDEN_KEYWORD,
                severity=FindingSeverity.UNSAFE,
                matched_text=keyword,
                canonical_term=keyword,
                reason=f'Found forbidden keyword "{keyword}" in label text',
                evidence_spans=tuple(spans),
                source=FindingSource.INGREDIENTS,
                confidence=TEXT_SCAN_CONFIDENCE,
            ))
    return deduplicate_findings(findings)
