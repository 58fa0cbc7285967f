"""
Curated term databases: allergen synonyms with false-positive exclusions, and dietary rules.
"""
from .allergen_terms import (
    ALLERGEN_SYNONYM_MAP,
    CANONICAL_ALLERGENS,
    FALSE_POSITIVE_EXCLUSIONS,
    canonical_allergen_name,
    is_false_positive,
    lookup_allergen,
    synonyms_for,
)
from .dietary_rules import DietaryRule, DietaryRuleRegistry, is_plant_based_exception

__all__ = [
    "ALLERGEN_SYNONYM_MAP",
    "CANONICAL_ALLERGENS",
    "FALSE_POSITIVE_EXCLUSIONS",
    "canonical_allergen_name",
    "is_false_positive",
    "lookup_allergen",
    "synonyms_for",
    "DietaryRule",
    "DietaryRuleRegistry",
    "is_plant_based_exception",
]
