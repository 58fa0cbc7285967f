"""
Persistence collaborators: scan sessions, overrides, admin alerts, corrections.
"""
from .base import ScanStore, document_key
from .json_store import JsonScanStore

__all__ = [
    "ScanStore",
    "document_key",
    "JsonScanStore",
]
