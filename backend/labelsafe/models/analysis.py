"""
Externally consumed analysis shape: one ProfileResult per profile plus the ingredient list.
This is the canonical result; the legacy allergensDetected shape is derived from it
(see models.scan_summary and results.pipeline.summarize_analysis).
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class SafetyStatus(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    UNSAFE = "unsafe"
    # Fail-closed outcome when the label text could not be trusted (MRR)
    MANUAL_REVIEW = "manual_review"


class MatchType(str, Enum):
    ALLERGEN = "allergen"
    KEYWORD = "keyword"
    PREFERENCE = "preference"


@dataclass
class ProfileResult:
    profile_id: str
    name: str
    status: SafetyStatus
    reasons: List[str] = field(default_factory=list)
    matched_allergens: List[str] = field(default_factory=list)
    matched_keywords: List[str] = field(default_factory=list)
    matched_preferences: List[str] = field(default_factory=list)
    confidence: float = 1.0

    @property
    def safe(self) -> bool:
        return self.status == SafetyStatus.SAFE

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "name": self.name,
            "safe": self.safe,
            "status": self.status.value,
            "reasons": list(self.reasons),
            "matched_allergens": list(self.matched_allergens),
            "matched_keywords": list(self.matched_keywords),
            "matched_preferences": list(self.matched_preferences),
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ProfileResult":
        status = d.get("status")
        if status not in {s.value for s in SafetyStatus}:
            status = SafetyStatus.SAFE.value if d.get("safe") else SafetyStatus.MANUAL_REVIEW.value
        return cls(
            profile_id=str(d.get("profile_id", d.get("profileId", ""))),
            name=str(d.get("name", "")),
            status=SafetyStatus(status),
            reasons=list(d.get("reasons") or []),
            matched_allergens=list(d.get("matched_allergens", d.get("matchedAllergens")) or []),
            matched_keywords=list(d.get("matched_keywords", d.get("matchedKeywords")) or []),
            matched_preferences=list(d.get("matched_preferences", d.get("matchedPreferences")) or []),
            confidence=float(d["confidence"]) if d.get("confidence") is not None else 1.0,
        )


@dataclass
class MatchedIngredient:
    name: str
    type: MatchType
    profile_ids: List[str] = field(default_factory=list)
    # True when any finding behind this match is UNSAFE; None for payloads that predate it
    unsafe: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "type": self.type.value, "profile_ids": list(self.profile_ids)}
        if self.unsafe is not None:
            d["unsafe"] = self.unsafe
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "MatchedIngredient":
        return cls(
            name=str(d.get("name", "")),
            type=MatchType(d.get("type", MatchType.ALLERGEN.value)),
            profile_ids=list(d.get("profile_ids", d.get("profileIds")) or []),
            unsafe=bool(d["unsafe"]) if d.get("unsafe") is not None else None,
        )


@dataclass
class AnalysisResult:
    ingredients: List[str] = field(default_factory=list)
    results: List[ProfileResult] = field(default_factory=list)
    matched_ingredients: List[MatchedIngredient] = field(default_factory=list)
    confidence: float = 1.0
    raw_extracted_text: Optional[str] = None
    ocr_confidence: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    data_quality_flags: List[str] = field(default_factory=list)

    @property
    def requires_manual_review(self) -> bool:
        """True when any profile was routed to manual review; feeds the session MRR counter."""
        return any(r.status == SafetyStatus.MANUAL_REVIEW for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "ingredients": list(self.ingredients),
            "results": [r.to_dict() for r in self.results],
            "matched_ingredients": [m.to_dict() for m in self.matched_ingredients],
            "confidence": self.confidence,
            "data_quality_flags": list(self.data_quality_flags),
        }
        if self.raw_extracted_text is not None:
            d["raw_extracted_text"] = self.raw_extracted_text
        if self.ocr_confidence is not None:
            d["ocr_confidence"] = self.ocr_confidence
        if self.warnings:
            d["warnings"] = list(self.warnings)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "AnalysisResult":
        """Accepts this module's to_dict output and the app's camelCase variant."""
        def _get(snake: str, camel: str, default: Any = None) -> Any:
            value = d.get(snake)
            if value is None:
                value = d.get(camel)
            return default if value is None else value

        return cls(
            ingredients=list(d.get("ingredients") or []),
            results=[ProfileResult.from_dict(r) for r in d.get("results") or []],
            matched_ingredients=[
                MatchedIngredient.from_dict(m) for m in _get("matched_ingredients", "matchedIngredients", [])
            ],
            confidence=float(_get("confidence", "confidence", 1.0)),
            raw_extracted_text=_get("raw_extracted_text", "rawExtractedText"),
            ocr_confidence=_get("ocr_confidence", "ocrConfidence"),
            warnings=list(_get("warnings", "warnings", [])),
            data_quality_flags=list(_get("data_quality_flags", "dataQualityFlags", [])),
        )
