"""
Structured findings produced by the matchers. Single format for allergen, dietary and keyword hits.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, List


class FindingKind(str, Enum):
    ALLERGEN = "ALLERGEN"
    DIETARY = "DIETARY"
    FORBIDDEN_KEYWORD = "FORBIDDEN_KEYWORD"


class FindingSeverity(str, Enum):
    UNSAFE = "UNSAFE"
    CAUTION = "CAUTION"


class FindingSource(str, Enum):
    INGREDIENTS = "ingredients"
    CONTAINS = "contains"
    MAY_CONTAIN = "may_contain"


@dataclass(frozen=True)
class EvidenceSpan:
    """Character range [start, end) in ParsedLabel.normalized_text."""
    start: int
    end: int

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class Finding:
    kind: FindingKind
    severity: FindingSeverity
    matched_text: str
    canonical_term: str
    reason: str
    evidence_spans: tuple[EvidenceSpan, ...] = ()
    source: FindingSource = FindingSource.INGREDIENTS
    confidence: float = 1.0
    escalated_from_inferred: bool = False

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.kind.value, self.canonical_term, self.matched_text)

    def with_severity(self, severity: FindingSeverity) -> "Finding":
        return replace(self, severity=severity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "matched_text": self.matched_text,
            "canonical_term": self.canonical_term,
            "reason": self.reason,
            "evidence_spans": [s.to_dict() for s in self.evidence_spans],
            "source": self.source.value,
            "confidence": self.confidence,
            "escalated_from_inferred": self.escalated_from_inferred,
        }


def deduplicate_findings(findings: Iterable[Finding]) -> List[Finding]:
    """
    Drop findings whose (kind, canonical_term, matched_text) was already seen.
    First occurrence wins; order preserved. Shared by every matcher.
    """
    seen: set[tuple[str, str, str]] = set()
    out: List[Finding] = []
    for f in findings:
        if f.dedup_key in seen:
            continue
        seen.add(f.dedup_key)
        out.append(f)
    return out


def has_finding(findings: Iterable[Finding], kind: FindingKind, **match: Any) -> bool:
    """True if any finding of `kind` equals every given attribute (e.g. matched_text=...)."""
    for f in findings:
        if f.kind != kind:
            continue
        if all(getattr(f, name) == value for name, value in match.items()):
            return True
    return False
