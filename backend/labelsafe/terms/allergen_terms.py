"""
Allergen synonym map: ingredient term (lowercase) -> canonical allergen.
Static data plus lookup helpers; no matching policy lives here.
"""
from typing import Dict, Iterable, List, Optional, Set, Tuple

CANONICAL_ALLERGENS: List[str] = [
    "Milk",
    "Eggs",
    "Peanuts",
    "Tree Nuts",
    "Wheat",
    "Gluten",
    "Soy",
    "Fish",
    "Shellfish",
    "Sesame",
    "Mustard",
    "Celery",
    "Sulfites",
    "Lupin",
]

# Profile spelling (lowercase) -> canonical allergen
ALLERGEN_ALIASES: Dict[str, str] = {
    "milk": "Milk",
    "dairy": "Milk",
    "lactose": "Milk",
    "egg": "Eggs",
    "eggs": "Eggs",
    "peanut": "Peanuts",
    "peanuts": "Peanuts",
    "tree nut": "Tree Nuts",
    "tree nuts": "Tree Nuts",
    "tree_nut": "Tree Nuts",
    "nuts": "Tree Nuts",
    "wheat": "Wheat",
    "gluten": "Gluten",
    "wheat/gluten": "Wheat",
    "soy": "Soy",
    "soya": "Soy",
    "fish": "Fish",
    "shellfish": "Shellfish",
    "crustaceans": "Shellfish",
    "sesame": "Sesame",
    "mustard": "Mustard",
    "celery": "Celery",
    "sulfites": "Sulfites",
    "sulphites": "Sulfites",
    "lupin": "Lupin",
}

# Order matters for partial matching: first key hit wins per ingredient.
ALLERGEN_SYNONYM_MAP: Dict[str, str] = {
    # Milk
    "milk": "Milk",
    "whole milk": "Milk",
    "skim milk": "Milk",
    "nonfat milk": "Milk",
    "milk powder": "Milk",
    "milk solids": "Milk",
    "milk protein": "Milk",
    "milkfat": "Milk",
    "butter": "Milk",
    "butterfat": "Milk",
    "buttermilk": "Milk",
    "cream": "Milk",
    "cheese": "Milk",
    "whey": "Milk",
    "whey protein": "Milk",
    "casein": "Milk",
    "caseinate": "Milk",
    "sodium caseinate": "Milk",
    "calcium caseinate": "Milk",
    "lactose": "Milk",
    "lactalbumin": "Milk",
    "lactoglobulin": "Milk",
    "ghee": "Milk",
    "yogurt": "Milk",
    "yoghurt": "Milk",
    "curd": "Milk",
    "kefir": "Milk",
    "custard": "Milk",
    "paneer": "Milk",
    # Eggs
    "egg": "Eggs",
    "eggs": "Eggs",
    "egg white": "Eggs",
    "egg yolk": "Eggs",
    "dried egg": "Eggs",
    "albumin": "Eggs",
    "albumen": "Eggs",
    "ovalbumin": "Eggs",
    "ovomucoid": "Eggs",
    "livetin": "Eggs",
    "lysozyme": "Eggs",
    "meringue": "Eggs",
    "mayonnaise": "Eggs",
    # Peanuts
    "peanut": "Peanuts",
    "peanuts": "Peanuts",
    "peanut butter": "Peanuts",
    "peanut oil": "Peanuts",
    "peanut flour": "Peanuts",
    "groundnut": "Peanuts",
    "groundnuts": "Peanuts",
    "arachis oil": "Peanuts",
    "goober": "Peanuts",
    # Tree nuts
    "almond": "Tree Nuts",
    "almonds": "Tree Nuts",
    "cashew": "Tree Nuts",
    "cashews": "Tree Nuts",
    "walnut": "Tree Nuts",
    "walnuts": "Tree Nuts",
    "pecan": "Tree Nuts",
    "pecans": "Tree Nuts",
    "pistachio": "Tree Nuts",
    "pistachios": "Tree Nuts",
    "hazelnut": "Tree Nuts",
    "hazelnuts": "Tree Nuts",
    "filbert": "Tree Nuts",
    "macadamia": "Tree Nuts",
    "brazil nut": "Tree Nuts",
    "pine nut": "Tree Nuts",
    "pine nuts": "Tree Nuts",
    "chestnut": "Tree Nuts",
    "praline": "Tree Nuts",
    "marzipan": "Tree Nuts",
    "gianduja": "Tree Nuts",
    "tree nuts": "Tree Nuts",
    # Wheat
    "wheat": "Wheat",
    "wheat flour": "Wheat",
    "whole wheat": "Wheat",
    "wheat starch": "Wheat",
    "wheat gluten": "Wheat",
    "enriched flour": "Wheat",
    "semolina": "Wheat",
    "durum": "Wheat",
    "farina": "Wheat",
    "spelt": "Wheat",
    "kamut": "Wheat",
    "bulgur": "Wheat",
    "couscous": "Wheat",
    "seitan": "Wheat",
    "einkorn": "Wheat",
    # Gluten (non-wheat)
    "gluten": "Gluten",
    "barley": "Gluten",
    "barley malt": "Gluten",
    "malt": "Gluten",
    "malt extract": "Gluten",
    "rye": "Gluten",
    "triticale": "Gluten",
    # Soy
    "soy": "Soy",
    "soya": "Soy",
    "soybean": "Soy",
    "soybeans": "Soy",
    "soy lecithin": "Soy",
    "lecithin": "Soy",
    "soy protein": "Soy",
    "soy sauce": "Soy",
    "tofu": "Soy",
    "tempeh": "Soy",
    "edamame": "Soy",
    "miso": "Soy",
    "natto": "Soy",
    # Fish
    "fish": "Fish",
    "fish sauce": "Fish",
    "fish oil": "Fish",
    "fish gelatin": "Fish",
    "anchovy": "Fish",
    "anchovies": "Fish",
    "salmon": "Fish",
    "tuna": "Fish",
    "cod": "Fish",
    "haddock": "Fish",
    "halibut": "Fish",
    "mackerel": "Fish",
    "sardine": "Fish",
    "sardines": "Fish",
    "tilapia": "Fish",
    "trout": "Fish",
    "pollock": "Fish",
    "herring": "Fish",
    "surimi": "Fish",
    # Shellfish
    "shellfish": "Shellfish",
    "shrimp": "Shellfish",
    "prawn": "Shellfish",
    "prawns": "Shellfish",
    "crab": "Shellfish",
    "lobster": "Shellfish",
    "crayfish": "Shellfish",
    "crawfish": "Shellfish",
    "krill": "Shellfish",
    "clam": "Shellfish",
    "clams": "Shellfish",
    "mussel": "Shellfish",
    "mussels": "Shellfish",
    "oyster": "Shellfish",
    "oysters": "Shellfish",
    "scallop": "Shellfish",
    "scallops": "Shellfish",
    "squid": "Shellfish",
    "calamari": "Shellfish",
    "langoustine": "Shellfish",
    # Sesame
    "sesame": "Sesame",
    "sesame seed": "Sesame",
    "sesame seeds": "Sesame",
    "sesame oil": "Sesame",
    "tahini": "Sesame",
    "benne": "Sesame",
    "gingelly": "Sesame",
    # Mustard
    "mustard": "Mustard",
    "mustard seed": "Mustard",
    "mustard flour": "Mustard",
    # Celery
    "celery": "Celery",
    "celeriac": "Celery",
    "celery seed": "Celery",
    # Sulfites
    "sulfite": "Sulfites",
    "sulfites": "Sulfites",
    "sulphite": "Sulfites",
    "sulfur dioxide": "Sulfites",
    "sodium metabisulfite": "Sulfites",
    "potassium metabisulfite": "Sulfites",
    "sodium bisulfite": "Sulfites",
    # Lupin
    "lupin": "Lupin",
    "lupine": "Lupin",
    "lupini": "Lupin",
}

# Ingredient phrases that contain a synonym substring but are NOT that allergen.
FALSE_POSITIVE_EXCLUSIONS: Dict[str, List[str]] = {
    "Milk": [
        "cocoa butter", "shea butter", "mango butter", "kokum butter",
        "peanut butter", "almond butter", "cashew butter", "sunflower butter",
        "nut butter", "seed butter", "soy butter", "coconut butter", "apple butter",
        "butternut", "butter bean",
        "coconut milk", "almond milk", "oat milk", "soy milk", "rice milk",
        "cashew milk", "hemp milk",
        "coconut cream", "cream of tartar",
        "bean curd",
    ],
    "Soy": [
        "sunflower lecithin",
    ],
    "Eggs": [
        "live and active cultures", "live cultures", "live active cultures",
        "eggplant", "veggie",
    ],
    "Tree Nuts": [
        "water chestnut",
    ],
    "Wheat": [
        "buckwheat",
    ],
    "Gluten": [
        "maltodextrin", "maltitol", "maltose",
    ],
    "Fish": [
        "shellfish", "crayfish", "crawfish", "cuttlefish",
    ],
    "Shellfish": [
        "oyster mushroom",
    ],
}


def canonical_allergen_name(name: str) -> Optional[str]:
    """Map a profile allergy spelling to its canonical allergen, or None for custom allergies."""
    if not name:
        return None
    key = name.strip().lower()
    if key in ALLERGEN_ALIASES:
        return ALLERGEN_ALIASES[key]
    for canonical in CANONICAL_ALLERGENS:
        if canonical.lower() == key:
            return canonical
    return None


def lookup_allergen(term: str) -> Optional[str]:
    """Exact synonym lookup (term is lowercased and trimmed)."""
    if not term:
        return None
    return ALLERGEN_SYNONYM_MAP.get(term.strip().lower())


def is_false_positive(ingredient: str, allergen: str) -> bool:
    """True if the ingredient phrase is a known non-allergen look-alike for `allergen`."""
    exclusions = FALSE_POSITIVE_EXCLUSIONS.get(allergen)
    if not exclusions:
        return False
    lower = ingredient.lower()
    return any(excl in lower for excl in exclusions)


def synonyms_for(allergens: Iterable[str]) -> List[Tuple[str, str]]:
    """(term, canonical) pairs for the given canonical allergens, in map order."""
    wanted: Set[str] = {a.lower() for a in allergens}
    return [(term, canonical) for term, canonical in ALLERGEN_SYNONYM_MAP.items() if canonical.lower() in wanted]
