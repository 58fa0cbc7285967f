"""
Engine-facing profile. Loosely typed profile dicts (camelCase from the app, snake_case
from storage, missing or null lists) are normalized once here; matchers never re-check.
"""
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional


def _clean_list(values: Optional[Iterable[Any]]) -> tuple[str, ...]:
    """Strip strings, drop blanks and non-strings, keep first occurrence order."""
    if not values or isinstance(values, str):
        return ()
    out: List[str] = []
    for v in values:
        if not isinstance(v, str):
            continue
        v = v.strip()
        if v and v not in out:
            out.append(v)
    return tuple(out)


def _pick(data: dict, *keys: str) -> Any:
    for k in keys:
        if data.get(k) is not None:
            return data[k]
    return None


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


@dataclass(frozen=True)
class UserProfile:
    """
    id, name: display identity for results.
    allergies: canonical allergen names ("Milk", "Eggs", ...).
    custom_allergies, custom_preferences: free text added by the user.
    preferences: dietary rule keys ("Vegan", "Gluten-free", ...).
    forbidden_keywords: free text, matched case-insensitively.
    treat_may_contain_as_unsafe: "May contain" hits are UNSAFE instead of CAUTION.
    """
    id: str
    name: str = ""
    allergies: tuple[str, ...] = ()
    custom_allergies: tuple[str, ...] = ()
    preferences: tuple[str, ...] = ()
    custom_preferences: tuple[str, ...] = ()
    forbidden_keywords: tuple[str, ...] = ()
    treat_may_contain_as_unsafe: bool = False

    @property
    def all_allergies(self) -> tuple[str, ...]:
        return self.allergies + tuple(a for a in self.custom_allergies if a not in self.allergies)

    @property
    def all_preferences(self) -> tuple[str, ...]:
        return self.preferences + tuple(p for p in self.custom_preferences if p not in self.preferences)

    @property
    def is_empty(self) -> bool:
        """True if the profile has nothing to check against."""
        return not (self.all_allergies or self.all_preferences or self.forbidden_keywords)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "allergies": list(self.allergies),
            "custom_allergies": list(self.custom_allergies),
            "preferences": list(self.preferences),
            "custom_preferences": list(self.custom_preferences),
            "forbidden_keywords": list(self.forbidden_keywords),
            "treat_may_contain_as_unsafe": self.treat_may_contain_as_unsafe,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        """Load from dict; accepts both snake_case and the app's camelCase keys."""
        data = data or {}
        profile_id = str(_pick(data, "id", "profile_id", "profileId") or "")
        name = _pick(data, "name", "profile_name", "profileName")
        may_contain = _pick(data, "treat_may_contain_as_unsafe", "treatMayContainAsUnsafe")
        return cls(
            id=profile_id,
            name=str(name) if name is not None else "",
            allergies=_clean_list(_pick(data, "allergies", "allergens")),
            custom_allergies=_clean_list(_pick(data, "custom_allergies", "customAllergies")),
            preferences=_clean_list(_pick(data, "preferences")),
            custom_preferences=_clean_list(_pick(data, "custom_preferences", "customPreferences")),
            forbidden_keywords=_clean_list(_pick(data, "forbidden_keywords", "forbiddenKeywords")),
            treat_may_contain_as_unsafe=_flag(may_contain),
        )
