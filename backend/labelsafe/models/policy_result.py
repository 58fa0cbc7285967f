"""
Per-profile verdict produced by the policy engine.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, List

from labelsafe.models.finding import Finding, FindingKind, FindingSeverity


class PolicyStatus(str, Enum):
    SAFE = "SAFE"
    CAUTION = "CAUTION"
    UNSAFE = "UNSAFE"


@dataclass(frozen=True)
class PolicyResult:
    status: PolicyStatus
    profile_id: str
    profile_name: str
    findings: tuple[Finding, ...] = ()
    confidence: float = 1.0
    allergen_count: int = 0
    dietary_count: int = 0
    keyword_count: int = 0

    @classmethod
    def from_findings(cls, profile_id: str, profile_name: str, findings: List[Finding]) -> "PolicyResult":
        """
        Aggregate findings: UNSAFE if any UNSAFE, else CAUTION if any CAUTION, else SAFE.
        Confidence is the minimum finding confidence; 1.0 when there are no findings.
        """
        if any(f.severity == FindingSeverity.UNSAFE for f in findings):
            status = PolicyStatus.UNSAFE
        elif any(f.severity == FindingSeverity.CAUTION for f in findings):
            status = PolicyStatus.CAUTION
        else:
            status = PolicyStatus.SAFE
        confidence = min((f.confidence for f in findings), default=1.0)
        return cls(
            status=status,
            profile_id=profile_id,
            profile_name=profile_name,
            findings=tuple(findings),
            confidence=confidence,
            allergen_count=sum(1 for f in findings if f.kind == FindingKind.ALLERGEN),
            dietary_count=sum(1 for f in findings if f.kind == FindingKind.DIETARY),
            keyword_count=sum(1 for f in findings if f.kind == FindingKind.FORBIDDEN_KEYWORD),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "profile_id": self.profile_id,
            "profile_name": self.profile_name,
            "findings": [f.to_dict() for f in self.findings],
            "confidence": self.confidence,
            "allergen_count": self.allergen_count,
            "dietary_count": self.dietary_count,
            "keyword_count": self.keyword_count,
        }
