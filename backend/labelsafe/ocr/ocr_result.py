"""
OCR collaborator contract. The vision model only reads text; it never judges safety.
Parsing is tolerant: markdown fences are stripped, and content that is not JSON is kept as
low-confidence raw text instead of being discarded.
"""
from dataclasses import dataclass
from typing import Any, Literal, Optional
import json
import logging
import re

logger = logging.getLogger(__name__)

OcrType = Literal["ingredient_label", "menu", "unreadable"]
OcrConfidence = Literal["high", "medium", "low"]

_VALID_TYPES = ("ingredient_label", "menu", "unreadable")
_VALID_CONFIDENCE = ("high", "medium", "low")

_FENCE = re.compile(r"```(?:json)?\s*")
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class OcrResult:
    type: OcrType = "unreadable"
    raw_text: str = ""
    contains_statement: Optional[str] = None
    may_contain_statement: Optional[str] = None
    confidence: OcrConfidence = "low"
    notes: Optional[str] = None

    @property
    def is_unreadable(self) -> bool:
        return self.type == "unreadable" or not self.raw_text.strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "raw_text": self.raw_text,
            "contains_statement": self.contains_statement,
            "may_contain_statement": self.may_contain_statement,
            "confidence": self.confidence,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "OcrResult":
        """Unknown type/confidence values fall back to the most cautious reading."""
        d = d or {}
        ocr_type = d.get("type")
        confidence = d.get("confidence")
        return cls(
            type=ocr_type if ocr_type in _VALID_TYPES else "ingredient_label" if d.get("raw_text") else "unreadable",
            raw_text=str(d.get("raw_text") or ""),
            contains_statement=_optional_text(d.get("contains_statement")),
            may_contain_statement=_optional_text(d.get("may_contain_statement")),
            confidence=confidence if confidence in _VALID_CONFIDENCE else "low",
            notes=_optional_text(d.get("notes")),
        )

    @classmethod
    def unreadable(cls, notes: str) -> "OcrResult":
        return cls(type="unreadable", notes=notes)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == "null":
        return None
    return text


def parse_ocr_response(content: Optional[str]) -> OcrResult:
    """Model message content -> OcrResult."""
    if not content or not content.strip():
        return OcrResult.unreadable("Empty response from vision model")
    cleaned = _FENCE.sub("", content).strip()
    match = _JSON_OBJECT.search(cleaned)
    if not match:
        logger.warning("VISION_OCR no JSON object in response; using raw text")
        return OcrResult(
            type="ingredient_label",
            raw_text=content.strip(),
            confidence="low",
            notes="Could not parse structured response; using raw text",
        )
    try:
        data = json.loads(match.group())
    except json.JSONDecodeError:
        logger.warning("VISION_OCR JSON parse failed; using raw text")
        return OcrResult(
            type="ingredient_label",
            raw_text=content.strip(),
            confidence="low",
            notes="JSON parse failed; using raw text",
        )
    if not isinstance(data, dict):
        return OcrResult.unreadable("Vision model returned a non-object JSON value")
    return OcrResult.from_dict(data)


def build_full_label_text(ocr: OcrResult) -> str:
    """
    Raw text plus "Contains:" / "May contain:" lines the model returned separately,
    unless the raw text already carries them.
    """
    full_text = ocr.raw_text
    lower = full_text.lower()
    if ocr.contains_statement and "contains:" not in lower:
        full_text += f"\nContains: {ocr.contains_statement}"
    if ocr.may_contain_statement and "may contain" not in lower:
        full_text += f"\nMay contain: {ocr.may_contain_statement}"
    return full_text
