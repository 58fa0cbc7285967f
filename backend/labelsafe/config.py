"""
Feature flags, paths, and centralized configuration.
Values are read lazily from the environment; app.py loads .env before anything calls these.
"""
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# backend/labelsafe/config.py -> parent=labelsafe, parent.parent=backend, parent.parent.parent=repo
_PACKAGE_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _PACKAGE_DIR.parent
_REPO_ROOT = _BACKEND_DIR.parent


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


# --- Data paths ---
def get_data_dir() -> Path:
    override = os.environ.get("LABELSAFE_DATA_DIR", "").strip()
    return Path(override) if override else _REPO_ROOT / "data"

def get_dietary_rules_path() -> Path:
    """Bundled with the package; overridable for curated rule sets."""
    override = os.environ.get("DIETARY_RULES_PATH", "").strip()
    return Path(override) if override else _PACKAGE_DIR / "terms" / "data" / "dietary_rules.json"

def get_scan_store_path() -> Path:
    return get_data_dir() / "scan_store.json"

# --- Storage backend ---
def get_scan_store_backend() -> str:
    """json (default) or supabase."""
    return os.environ.get("SCAN_STORE", "json").strip().lower() or "json"

def get_supabase_url() -> str:
    return os.environ.get("SUPABASE_URL", "").strip()

def get_supabase_key() -> str:
    return os.environ.get("SUPABASE_KEY", "").strip()

# --- Vision OCR collaborator ---
def get_vision_ocr_url() -> str:
    return os.environ.get("VISION_OCR_URL", "https://api.openai.com/v1/chat/completions")

def get_vision_ocr_api_key() -> str:
    return os.environ.get("VISION_OCR_API_KEY", "").strip()

def get_vision_ocr_model() -> str:
    return os.environ.get("VISION_OCR_MODEL", "gpt-4o-mini")

VISION_OCR_TIMEOUT = int(os.environ.get("VISION_OCR_TIMEOUT", "60"))

# --- Safety policy ---
def low_ocr_confidence_requires_review() -> bool:
    """Low OCR confidence turns otherwise-safe profiles into manual review."""
    return _env_flag("LOW_OCR_CONFIDENCE_REQUIRES_REVIEW", "true")

# --- Rate limiting ---
RATE_LIMIT_WINDOW_SECONDS = float(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", "60"))
RATE_LIMIT_MAX_REQUESTS = int(os.environ.get("RATE_LIMIT_MAX_REQUESTS", "30"))


# --- Startup logging ---
def log_config() -> None:
    logger.info(
        "CONFIG: data_dir=%s dietary_rules=%s scan_store=%s supabase_url=%s ocr_key=%s ocr_model=%s "
        "ocr_timeout=%ds low_conf_review=%s rate_limit=%d/%.0fs",
        get_data_dir(), get_dietary_rules_path().exists(), get_scan_store_backend(),
        bool(get_supabase_url()), bool(get_vision_ocr_api_key()), get_vision_ocr_model(),
        VISION_OCR_TIMEOUT, low_ocr_confidence_requires_review(),
        RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS,
    )
