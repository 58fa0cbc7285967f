"""
Deterministic label parsing. No LLM, no guessing.
Cleans raw OCR / manual-entry text, detects the Ingredients / Contains / May contain
sections, splits ingredients into tokens, and locates evidence spans for highlighting.
All offsets refer to ParsedLabel.normalized_text.
"""
import re
import logging
from typing import Dict, List, Optional, Tuple

from labelsafe.models.finding import EvidenceSpan
from labelsafe.models.parsed_label import (
    ParsedLabel,
    SectionSpan,
    SECTION_CONTAINS,
    SECTION_INGREDIENTS,
    SECTION_MAY_CONTAIN,
)

logger = logging.getLogger(__name__)

_UNICODE_SPACES = re.compile(r"[\u00A0\u2000-\u200B\u202F\u205F\u3000]")
_SINGLE_QUOTES = re.compile(r"[\u2018\u2019\u201B`]")
_DOUBLE_QUOTES = re.compile(r"[\u201C\u201D\u201F]")
_DASHES = re.compile(r"[\u2010-\u2015]")
_WHITESPACE = re.compile(r"\s+")

# Ordered: first pattern that matches wins for its section.
_MAY_CONTAIN_PATTERNS = [
    re.compile(r"may contains?\s*[:.]?\s*"),
    re.compile(r"produced in a facility that (?:also )?(?:processes|handles|uses)\s*[:.]?\s*"),
]
_CONTAINS_PATTERNS = [
    re.compile(r"[.;]\s*contains\s*:\s*"),
    re.compile(r"\bcontains\s*:\s*"),
    re.compile(r"\ballergens?\s*:\s*"),
]
_INGREDIENTS_PATTERNS = [
    re.compile(r"ingredients\s*:\s*"),
]
_NEXT_SECTION = re.compile(
    r"[.;]?\s*\b(?:ingredients|contains|may contain|allergens?|nutrition facts|serving size|"
    r"calories|distributed by|manufactured by)\s*:"
)
# Chars before "contains:" that mean it is really "may contain(s):"
_MAY_LOOKBEHIND = 5

_SUBLIST_BRACKETS = re.compile(r"\s*[()\[\]]\s*")
_LIST_SEPARATORS = re.compile(r"[,;]")
_AND_SEPARATORS = re.compile(r"\band\s*/\s*or\b|\band\b", re.IGNORECASE)
_STATEMENT_SEPARATORS = re.compile(r"[,;]|\band\s*/\s*or\b|\band\b", re.IGNORECASE)
_EDGE_NOISE = re.compile(r"^[.\s*\u2022\u00B7:\-]+|[.\s*\u2022\u00B7:\-]+$")
_TRAILING_PERCENT = re.compile(r"\s*\d+(?:\.\d+)?\s*%\s*$")
_LEADING_TRACE = [
    re.compile(r"^(?:contains\s+)?less than \d+(?:\.\d+)?\s*%?\s*(?:of\s*)?[:.]?\s*", re.IGNORECASE),
    re.compile(r"^(?:contains\s+)?\d+(?:\.\d+)?\s*%?\s*or less\s*(?:of\s*)?[:.]?\s*", re.IGNORECASE),
    re.compile(r"^<\s*\d+(?:\.\d+)?\s*%?\s*(?:of\s*)?[:.]?\s*"),
]
_STATEMENT_EDGE_NOISE = re.compile(r"^[\s.:/*\-]+|[\s.:/*\-]+$")
MAX_STATEMENT_LENGTH = 50

# A period followed by an asterisk opens a footnote ("salt. *Organic")
_FOOTNOTE = re.compile(r"\.\s*\*")


def _is_boundary(ch: str) -> bool:
    """A span must not sit inside a longer word; anything but a letter or digit ends one."""
    return not ch.isalnum()


def lower_preserving_offsets(text: str) -> str:
    """Lowercase without changing string length, so offsets stay valid in the original."""
    out = []
    for ch in text:
        low = ch.lower()
        out.append(low if len(low) == 1 else ch)
    return "".join(out)


def normalize_text(text: str) -> str:
    """Unicode spaces -> ASCII space, curly quotes and dashes -> ASCII, collapse whitespace, trim."""
    if not text or not isinstance(text, str):
        return ""
    t = _UNICODE_SPACES.sub(" ", text)
    t = _SINGLE_QUOTES.sub("'", t)
    t = _DOUBLE_QUOTES.sub('"', t)
    t = _DASHES.sub("-", t)
    t = _WHITESPACE.sub(" ", t)
    return t.strip()


def _next_section_start(lower: str, after: int) -> Optional[int]:
    m = _NEXT_SECTION.search(lower, after + 1)
    return m.start() if m else None


def _first_match(patterns: List[re.Pattern], lower: str, reject_after_may: bool = False) -> Optional[Tuple[int, int]]:
    """(keyword_start, content_start) of the first acceptable match, trying patterns in order."""
    for pattern in patterns:
        for m in pattern.finditer(lower):
            if reject_after_may:
                before = lower[max(0, m.start() - _MAY_LOOKBEHIND):m.start()]
                if "may" in before:
                    continue
            return (m.start(), m.end())
    return None


def detect_sections(text: str) -> Dict[str, SectionSpan]:
    """
    Locate section content spans in normalized text.
    Each section ends at the earliest of: the next recognized section keyword, the keyword
    of another detected section that starts after it, or end of text.
    """
    lower = lower_preserving_offsets(text)
    found: Dict[str, Tuple[int, int]] = {}

    may = _first_match(_MAY_CONTAIN_PATTERNS, lower)
    if may:
        found[SECTION_MAY_CONTAIN] = may
    contains = _first_match(_CONTAINS_PATTERNS, lower, reject_after_may=True)
    if contains:
        found[SECTION_CONTAINS] = contains
    ingredients = _first_match(_INGREDIENTS_PATTERNS, lower)
    if ingredients:
        found[SECTION_INGREDIENTS] = ingredients

    keyword_starts = [ks for ks, _ in found.values()]
    sections: Dict[str, SectionSpan] = {}
    for name, (_ks, start) in found.items():
        candidates = [k for k in keyword_starts if k >= start]
        nxt = _next_section_start(lower, start)
        if nxt is not None:
            candidates.append(nxt)
        end = min(candidates) if candidates else len(text)
        sections[name] = SectionSpan(start=start, end=max(start, end))
    return sections


def _implied_ingredients_end(text: str, sections: Dict[str, SectionSpan]) -> int:
    """Without an "Ingredients:" header, the region runs up to the first declared statement."""
    lower = lower_preserving_offsets(text)
    starts = []
    for name, patterns in ((SECTION_CONTAINS, _CONTAINS_PATTERNS), (SECTION_MAY_CONTAIN, _MAY_CONTAIN_PATTERNS)):
        if name not in sections:
            continue
        match = _first_match(patterns, lower, reject_after_may=(name == SECTION_CONTAINS))
        if match:
            starts.append(match[0])
    return min(starts) if starts else len(text)


def clean_ingredient_token(token: str) -> str:
    """Strip bullets/dashes/asterisks, percentage annotations and trace prefixes; lowercase."""
    t = _EDGE_NOISE.sub("", token)
    t = _TRAILING_PERCENT.sub("", t)
    for pattern in _LEADING_TRACE:
        t = pattern.sub("", t)
    t = _WHITESPACE.sub(" ", t)
    t = _EDGE_NOISE.sub("", t)
    return t.strip().lower()


def split_ingredients(text: str) -> List[str]:
    """
    Split an ingredients region into tokens.
    'flour (wheat, niacin) and sugar' -> ['flour', 'wheat', 'niacin', 'sugar']
    Duplicates are kept; order is first appearance.
    """
    if not text:
        return []
    hoisted = _SUBLIST_BRACKETS.sub(", ", text)
    out: List[str] = []
    for part in _LIST_SEPARATORS.split(hoisted):
        part = part.strip()
        if not part:
            continue
        for sub in _AND_SEPARATORS.split(part):
            cleaned = clean_ingredient_token(sub)
            if cleaned:
                out.append(cleaned)
    return out


def split_statement_list(text: str) -> List[str]:
    """Split a Contains / May contain statement. No percentage stripping; long tokens are noise."""
    if not text:
        return []
    out: List[str] = []
    for part in _STATEMENT_SEPARATORS.split(text):
        cleaned = _STATEMENT_EDGE_NOISE.sub("", part.strip().lower())
        if 0 < len(cleaned) < MAX_STATEMENT_LENGTH:
            out.append(cleaned)
    return out


def parse_ingredient_label(raw_text: str) -> ParsedLabel:
    """
    Normalize and parse raw label text. Never raises: empty or non-string input
    yields an empty ParsedLabel.
    """
    normalized = normalize_text(raw_text)
    if not normalized:
        return ParsedLabel()

    sections = detect_sections(normalized)

    ingredients_span = sections.get(SECTION_INGREDIENTS)
    ingredients_raw = ""
    if ingredients_span is not None:
        ingredients_raw = normalized[ingredients_span.start:ingredients_span.end].strip()
    if not ingredients_raw:
        ingredients_raw = normalized[:_implied_ingredients_end(normalized, sections)].strip()
    footnote = _FOOTNOTE.search(ingredients_raw)
    if footnote:
        ingredients_raw = ingredients_raw[:footnote.start()].strip()

    contains: List[str] = []
    if SECTION_CONTAINS in sections:
        span = sections[SECTION_CONTAINS]
        contains = split_statement_list(normalized[span.start:span.end])

    may_contain: List[str] = []
    if SECTION_MAY_CONTAIN in sections:
        span = sections[SECTION_MAY_CONTAIN]
        may_contain = split_statement_list(normalized[span.start:span.end])

    ingredients = split_ingredients(ingredients_raw)
    logger.debug(
        "LABEL_PARSE ingredients=%d contains=%d may_contain=%d sections=%s",
        len(ingredients), len(contains), len(may_contain), list(sections.keys()),
    )
    return ParsedLabel(
        ingredients=tuple(ingredients),
        ingredients_raw_text=ingredients_raw,
        contains_statements=tuple(contains),
        may_contain_statements=tuple(may_contain),
        normalized_text=normalized,
        sections=sections,
    )


def find_evidence_spans(text: str, term: str) -> List[EvidenceSpan]:
    """
    Every case-insensitive occurrence of `term` in `text` whose neighbouring characters are
    whitespace/punctuation or a string boundary, left to right.
    'salt' in 'saltpeter crystals' -> []; 'salt' in 'sea salt, pepper' -> [(4, 8)].
    """
    if not text or not term:
        return []
    lower_text = lower_preserving_offsets(text)
    lower_term = lower_preserving_offsets(term)
    spans: List[EvidenceSpan] = []
    pos = 0
    while True:
        idx = lower_text.find(lower_term, pos)
        if idx == -1:
            break
        end = idx + len(lower_term)
        before_ok = idx == 0 or _is_boundary(lower_text[idx - 1])
        after_ok = end == len(lower_text) or _is_boundary(lower_text[end])
        if before_ok and after_ok:
            spans.append(EvidenceSpan(start=idx, end=end))
        pos = idx + 1
    return spans
