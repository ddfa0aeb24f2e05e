"""Quantity/unit stripping for free-text ingredient names.

Recipe ingredient lines arrive as written ("2 lb chicken", "(5-6 oz) chicken
thighs", "lb. ground beef"). Before grouping we strip the measurement prefix
and any parenthetical quantity so the same food collapses onto one key. The
unit vocabulary is an explicit table; the patterns are generated from it.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, Optional


class UnitCategory(str, Enum):
    WEIGHT = "weight"
    VOLUME = "volume"
    SPOON = "spoon"
    CONTAINER = "container"
    SIZE = "size"


def _forms(category: UnitCategory, *words: str) -> Dict[str, UnitCategory]:
    return {word: category for word in words}


UNIT_VOCABULARY: Dict[str, UnitCategory] = {
    **_forms(UnitCategory.WEIGHT, "g", "gram", "grams", "kg", "oz", "lb", "lbs", "pound", "pounds"),
    **_forms(
        UnitCategory.VOLUME, "ml", "l", "liter", "liters", "litre", "litres", "cup", "cups"
    ),
    **_forms(
        UnitCategory.SPOON,
        "tbsp",
        "tbs",
        "tsp",
        "tablespoon",
        "tablespoons",
        "teaspoon",
        "teaspoons",
    ),
    **_forms(
        UnitCategory.CONTAINER,
        "clove",
        "cloves",
        "can",
        "cans",
        "bunch",
        "bunches",
        "piece",
        "pieces",
        "slice",
        "slices",
        "head",
        "heads",
        "stalk",
        "stalks",
        "sprig",
        "sprigs",
        "pinch",
        "pinches",
        "handful",
        "handfuls",
        "dash",
        "dashes",
    ),
    **_forms(UnitCategory.SIZE, "large", "medium", "small"),
}

VULGAR_FRACTIONS = "½⅓⅔¼¾⅕⅖⅗⅘⅙⅚⅛⅜⅝⅞"

_NUMBER = rf"(?:\d+(?:[.,]\d+)?(?:\s+\d+/\d+|/\d+)?[{VULGAR_FRACTIONS}]?|[{VULGAR_FRACTIONS}])"
_QUANTITY = rf"{_NUMBER}(?:\s*[-–]\s*{_NUMBER})?"
# Longest first so "lbs" wins over "lb" and "tablespoons" over "tablespoon".
_UNIT_ALTERNATION = "|".join(
    re.escape(unit) for unit in sorted(UNIT_VOCABULARY, key=len, reverse=True)
)
# A unit must end its token; "medium-sized" is a word, not a size unit.
_UNIT = rf"(?:{_UNIT_ALTERNATION})(?:\.(?![\w-])|(?![\w-]))"

_PARENTHETICAL_RE = re.compile(r"\s*\(([^()]*)\)\s*")
_UNIT_TOKEN_RE = re.compile(rf"(?<!\w){_UNIT}", re.IGNORECASE)
_LEADING_QUANTITY_UNIT_RE = re.compile(
    rf"^{_QUANTITY}\s*{_UNIT}(?:\s+{_UNIT})?\s*", re.IGNORECASE
)
_LEADING_UNIT_RE = re.compile(rf"^{_UNIT}\s+", re.IGNORECASE)
_LEADING_QUANTITY_RE = re.compile(rf"^{_QUANTITY}\s+", re.IGNORECASE)
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([,;])")
_WHITESPACE_RE = re.compile(r"\s+")


def unit_category(token: str) -> Optional[UnitCategory]:
    """Return the category of ``token`` (case-insensitive, trailing period allowed)."""

    return UNIT_VOCABULARY.get(token.strip().rstrip(".").lower())


def is_unit(token: str) -> bool:
    return unit_category(token) is not None


def _collapse(value: str) -> str:
    value = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", value)
    return _WHITESPACE_RE.sub(" ", value).strip()


def _drop_unit_parentheticals(value: str) -> str:
    def _replace(match: re.Match[str]) -> str:
        if _UNIT_TOKEN_RE.search(match.group(1)):
            return " "
        return match.group(0)

    return _PARENTHETICAL_RE.sub(_replace, value)


def strip_units(name: str) -> str:
    """Strip quantity/unit prefixes and parenthetical quantities from an ingredient name.

    >>> strip_units("2 lb chicken")
    'chicken'
    >>> strip_units("(5-6 oz) chicken thighs")
    'chicken thighs'
    >>> strip_units("salt")
    'salt'

    Never returns an empty string: if nothing would be left, the trimmed input
    comes back unchanged.
    """

    original = name.strip()
    cleaned = _collapse(_drop_unit_parentheticals(original))

    for pattern in (_LEADING_QUANTITY_UNIT_RE, _LEADING_UNIT_RE, _LEADING_QUANTITY_RE):
        stripped, count = pattern.subn("", cleaned, count=1)
        if count:
            cleaned = stripped
            break

    cleaned = _collapse(cleaned).lstrip(",; ")
    return cleaned or original


def grouping_key(name: str) -> str:
    """Lowercase, whitespace-collapsed key used to group ingredients."""

    return _WHITESPACE_RE.sub(" ", strip_units(name).lower()).strip()


__all__ = [
    "UNIT_VOCABULARY",
    "UnitCategory",
    "VULGAR_FRACTIONS",
    "grouping_key",
    "is_unit",
    "strip_units",
    "unit_category",
]
