"""Text normalizer for LandQuote.

First pipeline stage: lowercases the message, canonicalizes unit spellings
and dimension notation, strips filler verbs and splits the result into
segments on conjunctions and punctuation. Pure functions only.
"""

import re
from dataclasses import dataclass, field
from typing import List, Pattern, Tuple


_NUMBER = r"\d+(?:\.\d+)?"
_LENGTH_MARK = r"(?:'|ft\.?|feet|foot)?"

# Order matters: multi-word spellings before their shorter fragments.
UNIT_PATTERNS: List[Tuple[Pattern, str]] = [
    (re.compile(r"\bsquare\s+f(?:ee|oo)t\b"), "sqft"),
    (re.compile(r"(?<![a-z])sq\.?\s*f(?:ee)?t\b\.?"), "sqft"),
    (re.compile(r"\bsf\b"), "sqft"),
    (re.compile(r"\blinear\s+f(?:ee|oo)?t\b\.?"), "linear feet"),
    (re.compile(r"\blin\.?\s*ft\b\.?"), "linear feet"),
    (re.compile(r"(?<![a-z])lnft\b"), "linear feet"),
    (re.compile(r"\bcubic\s+yards?\b"), "cubic yards"),
    (re.compile(r"(?<![a-z])cu\.?\s*yds?\b\.?"), "cubic yards"),
    (re.compile(r"(?<![a-z])cuyd\b"), "cubic yards"),
]

SPELLING_VARIANTS: List[Tuple[Pattern, str]] = [
    (re.compile(r"\bmulching\b"), "mulch"),
    (re.compile(r"\bsprinklers?\b"), "irrigation"),
]

ACTION_VERBS = re.compile(
    r"\b(?:would like|looking for|put in|install|need|want|get|add)\b"
)

# 12x10, 12 X 10, 12×10, 12' by 10', 12 ft x 10 ft, 12-by-10
DIMENSION_PATTERN = re.compile(
    rf"({_NUMBER})\s*{_LENGTH_MARK}\s*(?:x|×|-?\s*by\s*-?)\s*({_NUMBER})\s*{_LENGTH_MARK}(?![a-z])"
)

THOUSANDS_SEPARATOR = re.compile(r"(?<=\d),(?=\d{3}\b)")
GLUED_UNIT = re.compile(r"(\d)(sqft|linear feet|cubic yards|feet|ft|yards?|zones?)\b")
SEGMENT_SEPARATOR = re.compile(r"\s*(?:\band\b|\bplus\b|\bwith\b|[,;\n])\s*")
HORIZONTAL_SPACE = re.compile(r"[ \t]+")


@dataclass(frozen=True)
class NormalizedText:
    """Normalized message and its ordered segments."""

    text: str
    segments: List[str] = field(default_factory=list)


def canonicalize_units(text: str) -> str:
    for pattern, replacement in UNIT_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def canonicalize_spelling(text: str) -> str:
    for pattern, replacement in SPELLING_VARIANTS:
        text = pattern.sub(replacement, text)
    return text


def normalize_dimensions(text: str) -> str:
    """Rewrite every dimension notation to 'N by M'."""
    return DIMENSION_PATTERN.sub(r"\1 by \2", text)


def strip_action_verbs(text: str) -> str:
    return ACTION_VERBS.sub(" ", text)


def _collapse(text: str) -> str:
    return HORIZONTAL_SPACE.sub(" ", text).strip()


def canonicalize_phrase(phrase: str) -> str:
    """Apply the unit and spelling rules to a catalog phrase.

    Synonyms go through the same rules as messages so both sides compare in
    one vocabulary. Verbs are kept and nothing is split.
    """
    text = canonicalize_spelling(canonicalize_units((phrase or "").lower()))
    return _collapse(text)


def split_segments(text: str) -> List[str]:
    """Split on and/plus/with, commas, semicolons and newlines."""
    segments = (_collapse(part) for part in SEGMENT_SEPARATOR.split(text))
    return [segment for segment in segments if segment]


def normalize(message: str) -> NormalizedText:
    """Normalize a raw user message.

    Args:
        message: Free-text job description.

    Returns:
        NormalizedText with the canonical text and its segments.
    """
    text = (message or "").lower()
    text = THOUSANDS_SEPARATOR.sub("", text)
    text = canonicalize_units(text)
    text = canonicalize_spelling(text)
    text = normalize_dimensions(text)
    text = GLUED_UNIT.sub(r"\1 \2", text)
    text = strip_action_verbs(text)

    segments = split_segments(text)
    flat = _collapse(text.replace("\n", " "))
    return NormalizedText(text=flat, segments=segments)
