"""
Scan session attempt counters. After three manual-review results in a row the user is shown
the escalation prompt once per session.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

ESCALATION_THRESHOLD = 3


@dataclass(frozen=True)
class SessionCounters:
    attempt_count: int = 0
    manual_review_count: int = 0
    escalation_shown: bool = False
    should_show_escalation: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempt_count": self.attempt_count,
            "manual_review_count": self.manual_review_count,
            "escalation_shown": self.escalation_shown,
            "should_show_escalation": self.should_show_escalation,
        }

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "SessionCounters":
        """Missing or null fields default to 0 / False; camelCase keys accepted."""
        d = d or {}

        def _get(snake: str, camel: str) -> Any:
            value = d.get(snake)
            return value if value is not None else d.get(camel)

        return cls(
            attempt_count=int(_get("attempt_count", "attemptCount") or 0),
            manual_review_count=int(_get("manual_review_count", "manualReviewCount") or 0),
            escalation_shown=bool(_get("escalation_shown", "escalationShown")),
            should_show_escalation=bool(_get("should_show_escalation", "shouldShowEscalation")),
        )


def update_session_attempt_counters(
    session: Union[SessionCounters, Mapping[str, Any], None],
    is_manual_review: bool,
) -> SessionCounters:
    """
    One attempt. A manual-review result extends the streak, anything else resets it to 0.
    escalation_shown is a one-way latch. Pure: callers serialize calls per session.
    """
    current = session if isinstance(session, SessionCounters) else SessionCounters.from_dict(session)
    manual_review_count = current.manual_review_count + 1 if is_manual_review else 0
    should_show = not current.escalation_shown and manual_review_count >= ESCALATION_THRESHOLD
    return SessionCounters(
        attempt_count=current.attempt_count + 1,
        manual_review_count=manual_review_count,
        escalation_shown=current.escalation_shown or should_show,
        should_show_escalation=should_show,
    )
