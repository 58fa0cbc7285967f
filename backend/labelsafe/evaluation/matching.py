"""
Substring rules shared by the matchers.
"""


def contains_either_way(text: str, term: str) -> bool:
    """Case-insensitive: text contains term, or term contains text."""
    a = (text or "").lower().strip()
    b = (term or "").lower().strip()
    if not a or not b:
        return False
    return b in a or a in b


def banded_match(ingredient: str, term: str, max_len_diff: int, min_reverse_len: int = 0) -> bool:
    """
    Ingredient contains term, or term contains ingredient when their lengths differ by at most
    max_len_diff (and the ingredient is at least min_reverse_len long).
    The band stops a short token from being swallowed by a much longer term, e.g. "oil" vs "fish oil".
    """
    if not ingredient or not term:
        return False
    if term in ingredient:
        return True
    return (
        ingredient in term
        and len(ingredient) >= min_reverse_len
        and abs(len(term) - len(ingredient)) <= max_len_diff
    )
