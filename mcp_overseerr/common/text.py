"""Title normalization helpers used to turn free text into search keys."""

from __future__ import annotations

import re
from typing import Literal

__all__ = [
    "ExpectedMediaType",
    "extract_season_number",
    "infer_expected_media_type",
    "is_sequel_title",
    "normalize_title",
    "title_similarity",
]

ExpectedMediaType = Literal["movie", "tv", "any"]

_ROMAN_NUMERALS: dict[str, int] = {
    "I": 1,
    "II": 2,
    "III": 3,
    "IV": 4,
    "V": 5,
    "VI": 6,
    "VII": 7,
    "VIII": 8,
    "IX": 9,
    "X": 10,
    "XI": 11,
    "XII": 12,
    "XIII": 13,
    "XIV": 14,
    "XV": 15,
}
_ROMAN_ALTERNATION = "|".join(
    sorted(_ROMAN_NUMERALS, key=len, reverse=True)
)
# Trailing numeral preceded by a space and followed by end of string or "(".
_ROMAN_SEASON_RE = re.compile(rf"\s+({_ROMAN_ALTERNATION})(?=\s*\(|\s*$)")

_SEASON_STRIP_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\s*\(\s*Season\s+\d+\s*\)",
        r"\s*\(\s*\d+(?:st|nd|rd|th)\s+Season\s*\)",
        r"\s*[-:]\s*Season\s+\d+",
        r"\s*\bSeason\s+\d+",
        r"\s*(?<![\w'’])S\s*\d+\b",
        r"\s*\bPart\s+\d+",
        r"\s*\bCour\s+\d+",
        r"\s*\b\d+(?:st|nd|rd|th)\s+Season\b",
        r"\s*\bThe\s+Final\s+Season\b",
        r"\s*\bFinal\s+Season\b",
    )
)
_TRAILING_YEAR_RE = re.compile(r"\s*\(\d{4}\)\s*$")
_TRAILING_SEPARATOR_RE = re.compile(r"\s*[-:,–—]+\s*$")
_WHITESPACE_RE = re.compile(r"\s+")

_SEASON_NUMBER_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bSeason\s+(\d+)",
        r"(?<![\w'’])S\s*(\d+)\b",
        r"\bPart\s+(\d+)",
        r"\bCour\s+(\d+)",
        r"\b(\d+)(?:st|nd|rd|th)\s+Season\b",
    )
)

_SEQUEL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bSeason\s+[2-9]",
        r"(?<![\w'’])S\s*0?[2-9]\b",
        r"\bPart\s+[2-9]",
        r"\b(?:2nd|3rd|[4-9]th)\s+Season\b",
        r"\bFinal\s+Season\b",
    )
)

_WORD_RE = re.compile(r"\w+")


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _normalize_once(title: str) -> str:
    normalized = _ROMAN_SEASON_RE.sub("", title)
    for pattern in _SEASON_STRIP_PATTERNS:
        normalized = pattern.sub("", normalized)
    normalized = _TRAILING_YEAR_RE.sub("", normalized)
    normalized = _TRAILING_SEPARATOR_RE.sub("", normalized)
    return _collapse(normalized)


def normalize_title(title: str) -> str:
    """Strip season, part and year markers from *title*.

    Bare numbers that belong to a name are preserved, only season keywords
    and trailing Roman numerals are removed::

        >>> normalize_title("My Hero Academia Season 7")
        'My Hero Academia'
        >>> normalize_title("Mob Psycho 100 III")
        'Mob Psycho 100'
        >>> normalize_title("Mob Psycho 100")
        'Mob Psycho 100'

    The transform is applied until the text stops changing so that repeated
    calls are stable. A title made only of markers is returned collapsed but
    otherwise untouched.
    """

    current = _collapse(title)
    while True:
        candidate = _normalize_once(current)
        if candidate == current:
            break
        current = candidate
    return current or _collapse(title)


def extract_season_number(title: str) -> int | None:
    """Return the season number referenced by *title*, if any.

    Trailing Roman numerals win over textual markers; ``None`` means the
    title refers to the whole series.
    """

    roman_match = _ROMAN_SEASON_RE.search(title)
    if roman_match:
        return _ROMAN_NUMERALS.get(roman_match.group(1))

    for pattern in _SEASON_NUMBER_PATTERNS:
        match = pattern.search(title)
        if match:
            return int(match.group(1))
    return None


def is_sequel_title(title: str) -> bool:
    """Return ``True`` when *title* looks like a continuation of a series."""

    roman_match = _ROMAN_SEASON_RE.search(title)
    if roman_match and _ROMAN_NUMERALS[roman_match.group(1)] > 1:
        return True
    return any(pattern.search(title) for pattern in _SEQUEL_PATTERNS)


def infer_expected_media_type(title: str) -> ExpectedMediaType:
    """Guess which media type a title refers to from its season markers."""

    if extract_season_number(title) is not None or is_sequel_title(title):
        return "tv"
    return "any"


def _significant_words(text: str) -> set[str]:
    return {word for word in _WORD_RE.findall(text.lower()) if len(word) > 2}


def title_similarity(first: str, second: str) -> float:
    """Score how closely two titles match on a 0..1 scale."""

    left = _collapse(first).lower()
    right = _collapse(second).lower()
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    if left in right or right in left:
        return 0.9

    left_words = _significant_words(left)
    right_words = _significant_words(right)
    total = len(left_words) + len(right_words)
    if total == 0:
        return 0.0
    common = left_words & right_words
    return (2 * len(common)) / total
