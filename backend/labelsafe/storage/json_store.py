"""
JSON file backend (data/scan_store.json by default): {user_id: {collection: {doc_id: doc}}}.
Whole-file read/write; fine for a single process and local development.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from labelsafe.config import get_scan_store_path
from labelsafe.storage.base import ScanStore

logger = logging.getLogger(__name__)


class JsonScanStore(ScanStore):

    def __init__(self, path: Optional[Path] = None):
        super().__init__()
        self._path = Path(path) if path is not None else get_scan_store_path()
        self._file_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("SCAN_STORE failed to load %s: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_all(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def _get(self, user_id: str, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._file_lock:
            return self._load_all().get(user_id, {}).get(collection, {}).get(doc_id)

    def _put(self, user_id: str, collection: str, doc_id: str, doc: Dict[str, Any]) -> None:
        with self._file_lock:
            data = self._load_all()
            data.setdefault(user_id, {}).setdefault(collection, {})[doc_id] = doc
            self._save_all(data)

    def _list(self, user_id: str, collection: str) -> Dict[str, Dict[str, Any]]:
        with self._file_lock:
            return dict(self._load_all().get(user_id, {}).get(collection, {}))
