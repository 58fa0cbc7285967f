"""
Normalized, sectioned label. Created once per analysis call; never mutated.
"""
from dataclasses import dataclass, field
from typing import Any, Mapping

SECTION_INGREDIENTS = "ingredients"
SECTION_CONTAINS = "contains"
SECTION_MAY_CONTAIN = "may_contain"


@dataclass(frozen=True)
class SectionSpan:
    start: int
    end: int

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class ParsedLabel:
    ingredients: tuple[str, ...] = ()
    ingredients_raw_text: str = ""
    contains_statements: tuple[str, ...] = ()
    may_contain_statements: tuple[str, ...] = ()
    normalized_text: str = ""
    # section name -> content span in normalized_text (keyword excluded)
    sections: Mapping[str, SectionSpan] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.ingredients and not self.contains_statements and not self.may_contain_statements

    def to_dict(self) -> dict[str, Any]:
        return {
            "ingredients": list(self.ingredients),
            "ingredients_raw_text": self.ingredients_raw_text,
            "contains_statements": list(self.contains_statements),
            "may_contain_statements": list(self.may_contain_statements),
            "normalized_text": self.normalized_text,
            "sections": {name: span.to_dict() for name, span in self.sections.items()},
        }
