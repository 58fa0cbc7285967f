"""
Supabase backend. One table per collection; rows are (id, user_id, data jsonb).
Tables: scan_sessions, user_overrides, admin_alerts, scan_corrections.
"""
import logging
from typing import Any, Dict, Optional

from supabase import Client, create_client

from labelsafe.config import get_supabase_key, get_supabase_url
from labelsafe.storage.base import ADMIN_ALERTS, CORRECTIONS, OVERRIDES, SCAN_SESSIONS, ScanStore

logger = logging.getLogger(__name__)

TABLES = {
    SCAN_SESSIONS: "scan_sessions",
    OVERRIDES: "user_overrides",
    ADMIN_ALERTS: "admin_alerts",
    CORRECTIONS: "scan_corrections",
}


class SupabaseScanStore(ScanStore):

    def __init__(self, client: Client):
        super().__init__()
        self._client = client

    @classmethod
    def from_env(cls) -> "SupabaseScanStore":
        url, key = get_supabase_url(), get_supabase_key()
        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set for SCAN_STORE=supabase")
        return cls(create_client(url, key))

    def _get(self, user_id: str, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        res = (
            self._client.table(TABLES[collection])
            .select("data")
            .eq("user_id", user_id)
            .eq("id", doc_id)
            .limit(1)
            .execute()
        )
        if not res.data:
            return None
        return res.data[0].get("data")

    def _put(self, user_id: str, collection: str, doc_id: str, doc: Dict[str, Any]) -> None:
        self._client.table(TABLES[collection]).upsert({"id": doc_id, "user_id": user_id, "data": doc}).execute()

    def _list(self, user_id: str, collection: str) -> Dict[str, Dict[str, Any]]:
        res = self._client.table(TABLES[collection]).select("id,data").eq("user_id", user_id).execute()
        return {row["id"]: row.get("data") or {} for row in res.data or []}
