"""
Admin alerts: raised only when allergen evidence is involved.
"""
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from labelsafe.models.scan_summary import ScanSummary
from labelsafe.results.merge import SummaryInput, as_summary, should_create_admin_alert


@dataclass
class AdminAlert:
    session_id: str
    summary: str
    allergens: List[str] = field(default_factory=list)
    profile_ids: List[str] = field(default_factory=list)
    is_read: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "summary": self.summary,
            "allergens": list(self.allergens),
            "profile_ids": list(self.profile_ids),
            "is_read": self.is_read,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "AdminAlert":
        return cls(
            session_id=str(d.get("session_id", d.get("sessionId", ""))),
            summary=str(d.get("summary", "")),
            allergens=list(d.get("allergens") or []),
            profile_ids=list(d.get("profile_ids", d.get("profileIds")) or []),
            is_read=bool(d.get("is_read", d.get("isRead", False))),
        )


def build_alert_summary(allergens: Iterable[str]) -> str:
    """'Contains X' / 'Contains X and Y' / 'Contains X, Y and Z'; empty for no allergens."""
    names = [a for a in allergens if a]
    if not names:
        return ""
    if len(names) == 1:
        return f"Contains {names[0]}"
    return f"Contains {', '.join(names[:-1])} and {names[-1]}"


def build_admin_alert(session_id: str, result: SummaryInput, profile_ids: Iterable[str]) -> Optional[AdminAlert]:
    """Alert for a scan result, or None when the result carries no allergens."""
    summary: ScanSummary = as_summary(result)
    if not should_create_admin_alert(summary):
        return None
    allergens: List[str] = []
    for match in summary.allergens_detected or ():
        if match.allergen_id and match.allergen_id not in allergens:
            allergens.append(match.allergen_id)
    return AdminAlert(
        session_id=session_id,
        summary=build_alert_summary(allergens),
        allergens=allergens,
        profile_ids=[p for p in profile_ids if p],
    )
