"""
Inferred-risk escalation.
Risks guessed from context (not printed on the label) normally stay informational; the ones that
name a very bad allergen become explicit allergen findings and force the profile to UNSAFE.
"""
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional
import logging

from labelsafe.models.finding import (
    Finding,
    FindingKind,
    FindingSeverity,
    FindingSource,
    deduplicate_findings,
)
from labelsafe.models.policy_result import PolicyResult
from labelsafe.terms.allergen_terms import canonical_allergen_name

logger = logging.getLogger(__name__)

VERY_BAD_ALLERGIES: List[str] = [
    "peanuts",
    "tree nuts",
    "shellfish",
    "fish",
    "milk",
    "eggs",
    "wheat",
    "soy",
    "sesame",
]

INFERRED_CONFIDENCE = 0.6


def very_bad_allergy_for(inferred_risk: str) -> Optional[str]:
    """Exact allowlist entry, else the first one matching as a substring either way (case-insensitive)."""
    lower = (inferred_risk or "").lower().strip()
    if not lower:
        return None
    if lower in VERY_BAD_ALLERGIES:
        return lower
    for allergy in VERY_BAD_ALLERGIES:
        if allergy in lower or lower in allergy:
            return allergy
    return None


def is_very_bad_allergy(inferred_risk: str) -> bool:
    return very_bad_allergy_for(inferred_risk) is not None


@dataclass
class EscalationOutcome:
    results: List[PolicyResult] = field(default_factory=list)
    escalated: List[str] = field(default_factory=list)
    # Non-matching risks; reported as inferred, never affect status
    inferred: List[str] = field(default_factory=list)


def _escalated_finding(risk: str, allergy: str) -> Finding:
    return Finding(
        kind=FindingKind.ALLERGEN,
        severity=FindingSeverity.UNSAFE,
        matched_text=risk,
        canonical_term=canonical_allergen_name(allergy) or allergy,
        reason=f"Inferred risk escalated: may contain {risk}",
        source=FindingSource.INGREDIENTS,
        confidence=INFERRED_CONFIDENCE,
        escalated_from_inferred=True,
    )


def _merge_escalated(findings: List[Finding], escalated: List[Finding]) -> List[Finding]:
    """A finding sharing an escalated key is upgraded in place; the rest are appended."""
    by_key = {f.dedup_key: f for f in escalated}
    merged: List[Finding] = []
    for f in findings:
        hit = by_key.pop(f.dedup_key, None)
        if hit is None:
            merged.append(f)
            continue
        merged.append(replace(
            f,
            severity=FindingSeverity.UNSAFE,
            reason=hit.reason,
            confidence=min(f.confidence, hit.confidence),
            escalated_from_inferred=True,
        ))
    return deduplicate_findings(merged + list(by_key.values()))


def escalate_inferred_risks(results: Iterable[PolicyResult], inferred_risks: Iterable[str]) -> EscalationOutcome:
    """Append escalated findings to every profile result and re-aggregate its status."""
    outcome = EscalationOutcome()
    escalated_findings: List[Finding] = []
    for risk in inferred_risks or []:
        if not isinstance(risk, str) or not risk.strip():
            continue
        risk = risk.strip()
        allergy = very_bad_allergy_for(risk)
        if allergy is None:
            outcome.inferred.append(risk)
            continue
        outcome.escalated.append(risk)
        escalated_findings.append(_escalated_finding(risk, allergy))

    for result in results:
        if not escalated_findings:
            outcome.results.append(result)
            continue
        findings = _merge_escalated(list(result.findings), escalated_findings)
        outcome.results.append(PolicyResult.from_findings(result.profile_id, result.profile_name, findings))

    if outcome.escalated:
        logger.info(
            "ESCALATION escalated=%s inferred_only=%s profiles=%d",
            outcome.escalated, outcome.inferred, len(outcome.results),
        )
    return outcome
