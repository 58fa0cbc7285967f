"""
Dietary rule table: preference key -> violation terms, caution terms, reason template.
Loaded from terms/data/dietary_rules.json; all rules are data, the matcher holds no diet-specific logic.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import json
import logging

from labelsafe.config import get_dietary_rules_path

logger = logging.getLogger(__name__)

# Plant-based phrases containing an ambiguous animal term ("oat milk", "cocoa butter")
PLANT_BASED_EXCEPTIONS: list[str] = [
    "cocoa butter", "shea butter", "mango butter", "kokum butter",
    "peanut butter", "almond butter", "cashew butter", "sunflower butter",
    "nut butter", "seed butter", "coconut butter", "soy butter",
    "almond milk", "oat milk", "soy milk", "coconut milk", "rice milk",
    "cashew milk", "hemp milk",
    "coconut cream", "coconut oil",
    "sunflower lecithin",
]

# Only these violation terms can be waived by a plant-based exception
AMBIGUOUS_VIOLATION_TERMS: frozenset[str] = frozenset({"butter", "milk", "cream", "lecithin", "ice cream"})


def is_plant_based_exception(ingredient: str, violation_term: str) -> bool:
    """True if `ingredient` is a plant-based product and `violation_term` is one of the ambiguous terms."""
    if violation_term not in AMBIGUOUS_VIOLATION_TERMS:
        return False
    lower = ingredient.lower()
    return any(exc in lower for exc in PLANT_BASED_EXCEPTIONS)


@dataclass(frozen=True)
class DietaryRule:
    key: str
    label: str
    description: str
    violation_terms: tuple[str, ...]
    caution_terms: tuple[str, ...]
    reason_template: str

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "description": self.description,
            "violation_terms": list(self.violation_terms),
            "caution_terms": list(self.caution_terms),
            "reason_template": self.reason_template,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "DietaryRule":
        return cls(
            key=d["key"],
            label=d.get("label") or d["key"],
            description=d.get("description", ""),
            violation_terms=tuple(t.lower() for t in d.get("violation_terms", [])),
            caution_terms=tuple(t.lower() for t in d.get("caution_terms", [])),
            reason_template=d.get("reason_template", "not compatible"),
        )


class DietaryRuleRegistry:
    """Read-only after load; safe to share across concurrent evaluations."""

    def __init__(self, rules_path: Optional[Path] = None):
        self._path = rules_path or get_dietary_rules_path()
        self._by_key: dict[str, DietaryRule] = {}
        self._version = ""
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            logger.warning("Dietary rules file not found at %s; registry empty.", self._path)
            return
        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)
        self._version = str(data.get("version", ""))
        for item in data.get("rules", []):
            rule = DietaryRule.from_dict(item)
            self._by_key[rule.key] = rule
        logger.info("Loaded %d dietary rules from %s", len(self._by_key), self._path)

    def get(self, preference_key: str) -> Optional[DietaryRule]:
        """Exact key lookup; unknown (custom) preferences return None."""
        return self._by_key.get(preference_key)

    def list_keys(self) -> list[str]:
        return list(self._by_key.keys())

    def get_version(self) -> str:
        return self._version

    def __len__(self) -> int:
        return len(self._by_key)
