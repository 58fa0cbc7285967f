"""
Compact scan summary used for overrides, merges and admin alerts.
Every field is optional so a partial payload (server response, user override) can be
merged field-by-field; None means "not provided".
"""
from dataclasses import dataclass
from typing import Any, List, Optional


@dataclass(frozen=True)
class MenuLine:
    raw_text: str
    normalized: tuple[str, ...] = ()
    confidence: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {"raw_text": self.raw_text, "normalized": list(self.normalized), "confidence": self.confidence}

    @classmethod
    def from_dict(cls, d: dict) -> "MenuLine":
        return cls(
            raw_text=str(d.get("raw_text", d.get("rawText", ""))),
            normalized=tuple(d.get("normalized") or ()),
            confidence=d.get("confidence"),
        )


@dataclass(frozen=True)
class AllergenMatch:
    allergen_id: str
    severity: float  # 0..1
    matches: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"allergen_id": self.allergen_id, "severity": self.severity, "matches": list(self.matches)}

    @classmethod
    def from_dict(cls, d: dict) -> "AllergenMatch":
        return cls(
            allergen_id=str(d.get("allergen_id", d.get("allergenId", ""))),
            severity=float(d.get("severity", 0.0) or 0.0),
            matches=tuple(d.get("matches") or ()),
        )


@dataclass(frozen=True)
class ScanSummary:
    menu_items: Optional[tuple[MenuLine, ...]] = None
    allergens_detected: Optional[tuple[AllergenMatch, ...]] = None
    dietary_flags: Optional[tuple[str, ...]] = None
    confidence: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "menu_items": [m.to_dict() for m in self.menu_items or ()],
            "allergens_detected": [a.to_dict() for a in self.allergens_detected or ()],
            "dietary_flags": list(self.dietary_flags or ()),
            "confidence": self.confidence if self.confidence is not None else 0.0,
        }

    def to_partial_dict(self) -> dict[str, Any]:
        """Only the provided fields; from_dict of the output restores the same None fields."""
        full = self.to_dict()
        provided = {
            "menu_items": self.menu_items,
            "allergens_detected": self.allergens_detected,
            "dietary_flags": self.dietary_flags,
            "confidence": self.confidence,
        }
        return {key: full[key] for key, value in provided.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ScanSummary":
        """Partial payloads keep missing keys as None (snake_case or camelCase)."""
        data = data or {}

        def _get(*keys: str) -> Any:
            for k in keys:
                if data.get(k) is not None:
                    return data[k]
            return None

        menu = _get("menu_items", "menuItems")
        allergens = _get("allergens_detected", "allergensDetected")
        flags = _get("dietary_flags", "dietaryFlags")
        confidence = _get("confidence")
        return cls(
            menu_items=tuple(MenuLine.from_dict(m) for m in menu) if menu is not None else None,
            allergens_detected=tuple(AllergenMatch.from_dict(a) for a in allergens) if allergens is not None else None,
            dietary_flags=tuple(flags) if flags is not None else None,
            confidence=float(confidence) if confidence is not None else None,
        )
