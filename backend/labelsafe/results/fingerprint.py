"""
Item fingerprints: stable slugs that key user overrides ("fp:grilled-chicken").
"""
import re
from typing import Iterable, List, Optional

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")

FINGERPRINT_PREFIX = "fp:"


def normalize_tokens(tokens: Iterable[str]) -> List[str]:
    """Lowercase, keep [a-z0-9] and whitespace, trim; empty tokens dropped."""
    out: List[str] = []
    for token in tokens:
        if not isinstance(token, str):
            continue
        cleaned = _NON_ALNUM.sub("", token.lower()).strip()
        if cleaned:
            out.append(cleaned)
    return out


def compute_item_fingerprint(confirmed_name: Optional[str], guessed_name: Optional[str]) -> Optional[str]:
    """
    Confirmed name wins over guessed; None or blank counts as absent.
    None when no name is usable, so callers skip the override lookup.
    """
    source = (confirmed_name or "").strip() or (guessed_name or "").strip()
    if not source:
        return None
    words = " ".join(normalize_tokens([source])).split()
    if not words:
        return None
    return FINGERPRINT_PREFIX + "-".join(words)
