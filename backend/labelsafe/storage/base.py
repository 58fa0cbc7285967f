"""
Scan persistence: sessions, user overrides, admin alerts and the correction log.
Documents are keyed {user_id}/{collection}/{doc_id}. Backends implement three primitives;
session lifecycle rules live here so every backend applies them identically.
A storage failure is logged and reported as None/False; analysis never depends on it.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import threading
import uuid

from labelsafe.models.scan_summary import ScanSummary
from labelsafe.results.alerts import AdminAlert
from labelsafe.results.fingerprint import compute_item_fingerprint
from labelsafe.results.session import SessionCounters, update_session_attempt_counters

logger = logging.getLogger(__name__)

SCAN_SESSIONS = "scanSessions"
OVERRIDES = "overrides"
ADMIN_ALERTS = "adminAlerts"
CORRECTIONS = "corrections"

SESSION_IN_PROGRESS = "in_progress"
SESSION_COMPLETED = "completed"
SESSION_ABANDONED = "abandoned"
SESSION_END_STATES = (SESSION_COMPLETED, SESSION_ABANDONED)


def document_key(user_id: str, collection: str, doc_id: str) -> str:
    return f"{user_id}/{collection}/{doc_id}"


def override_id(user_id: str, fingerprint: str) -> str:
    return f"{user_id}_{fingerprint}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ScanStore(ABC):
    """
    Attempt recording is read-modify-write; the store lock serializes it so concurrent
    attempts in one session never lose a count.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    # --- backend primitives ---
    @abstractmethod
    def _get(self, user_id: str, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def _put(self, user_id: str, collection: str, doc_id: str, doc: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def _list(self, user_id: str, collection: str) -> Dict[str, Dict[str, Any]]:
        ...

    def _safe_get(self, user_id: str, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self._get(user_id, collection, doc_id)
        except Exception as e:
            logger.warning("SCAN_STORE read failed key=%s error=%s", document_key(user_id, collection, doc_id), e)
            return None

    def _safe_put(self, user_id: str, collection: str, doc_id: str, doc: Dict[str, Any]) -> bool:
        try:
            self._put(user_id, collection, doc_id, doc)
            return True
        except Exception as e:
            logger.warning("SCAN_STORE write failed key=%s error=%s", document_key(user_id, collection, doc_id), e)
            return False

    # --- scan sessions ---
    def create_session(self, user_id: str, guessed_name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        session_id = uuid.uuid4().hex
        doc: Dict[str, Any] = {
            "session_id": session_id,
            "status": SESSION_IN_PROGRESS,
            "guessed_name": guessed_name,
            "confirmed_name": None,
            "item_fingerprint": compute_item_fingerprint(None, guessed_name),
            "created_at": _now(),
            "ended_at": None,
            **SessionCounters().to_dict(),
        }
        if not self._safe_put(user_id, SCAN_SESSIONS, session_id, doc):
            return None
        logger.info("SCAN_STORE session_created key=%s", document_key(user_id, SCAN_SESSIONS, session_id))
        return doc

    def get_session(self, user_id: str, session_id: str) -> Optional[Dict[str, Any]]:
        return self._safe_get(user_id, SCAN_SESSIONS, session_id)

    def record_attempt(self, user_id: str, session_id: str, is_manual_review: bool) -> Optional[SessionCounters]:
        """Apply one attempt to the session counters. None if the session is missing or the write fails."""
        with self._lock:
            doc = self.get_session(user_id, session_id)
            if doc is None:
                return None
            counters = update_session_attempt_counters(doc, is_manual_review)
            doc.update(counters.to_dict())
            if not self._safe_put(user_id, SCAN_SESSIONS, session_id, doc):
                return None
        logger.info(
            "SCAN_STORE attempt session=%s attempts=%d mrr_streak=%d show_escalation=%s",
            session_id, counters.attempt_count, counters.manual_review_count, counters.should_show_escalation,
        )
        return counters

    def set_item_name(
        self,
        user_id: str,
        session_id: str,
        confirmed_name: Optional[str] = None,
        guessed_name: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Update names (None leaves a name unchanged) and recompute the fingerprint."""
        with self._lock:
            doc = self.get_session(user_id, session_id)
            if doc is None:
                return None
            if confirmed_name is not None:
                doc["confirmed_name"] = confirmed_name
            if guessed_name is not None:
                doc["guessed_name"] = guessed_name
            doc["item_fingerprint"] = compute_item_fingerprint(doc.get("confirmed_name"), doc.get("guessed_name"))
            if not self._safe_put(user_id, SCAN_SESSIONS, session_id, doc):
                return None
        return doc

    def end_session(self, user_id: str, session_id: str, status: str = SESSION_COMPLETED) -> bool:
        if status not in SESSION_END_STATES:
            raise ValueError(f"Invalid session end status: {status}")
        with self._lock:
            doc = self.get_session(user_id, session_id)
            if doc is None:
                return False
            doc["status"] = status
            doc["ended_at"] = _now()
            ok = self._safe_put(user_id, SCAN_SESSIONS, session_id, doc)
        if ok:
            logger.info("SCAN_STORE session_ended session=%s status=%s", session_id, status)
        return ok

    # --- user overrides ---
    def save_override(self, user_id: str, fingerprint: str, payload: ScanSummary) -> Optional[str]:
        """Store the override for an item; returns its document key."""
        if not fingerprint:
            return None
        doc_id = override_id(user_id, fingerprint)
        doc = {"item_fingerprint": fingerprint, "payload": payload.to_partial_dict(), "updated_at": _now()}
        if not self._safe_put(user_id, OVERRIDES, doc_id, doc):
            return None
        return document_key(user_id, OVERRIDES, doc_id)

    def get_override(self, user_id: str, fingerprint: Optional[str]) -> Optional[ScanSummary]:
        """None when there is no fingerprint or no stored override."""
        if not fingerprint:
            return None
        doc = self._safe_get(user_id, OVERRIDES, override_id(user_id, fingerprint))
        if not doc:
            return None
        return ScanSummary.from_dict(doc.get("payload"))

    # --- admin alerts ---
    def create_admin_alert(self, user_id: str, alert: AdminAlert) -> Optional[str]:
        alert_id = uuid.uuid4().hex
        doc = {**alert.to_dict(), "created_at": _now()}
        if not self._safe_put(user_id, ADMIN_ALERTS, alert_id, doc):
            return None
        logger.info("SCAN_STORE admin_alert key=%s summary=%s", document_key(user_id, ADMIN_ALERTS, alert_id), alert.summary)
        return alert_id

    def list_admin_alerts(self, user_id: str) -> Dict[str, Dict[str, Any]]:
        try:
            return self._list(user_id, ADMIN_ALERTS)
        except Exception as e:
            logger.warning("SCAN_STORE list failed user=%s collection=%s error=%s", user_id, ADMIN_ALERTS, e)
            return {}

    # --- correction log ---
    def log_correction(
        self,
        user_id: str,
        session_id: str,
        fingerprint: Optional[str],
        before: ScanSummary,
        after: ScanSummary,
    ) -> Optional[str]:
        correction_id = uuid.uuid4().hex
        doc = {
            "session_id": session_id,
            "item_fingerprint": fingerprint,
            "before": before.to_dict(),
            "after": after.to_dict(),
            "created_at": _now(),
        }
        if not self._safe_put(user_id, CORRECTIONS, correction_id, doc):
            return None
        return correction_id
