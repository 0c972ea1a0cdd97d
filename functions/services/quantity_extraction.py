"""Quantity extraction chain for LandQuote.

Each extractor looks at one normalized segment for one service unit and
returns a QuantityMatch or None. QuantityExtractor runs them in priority
order: dimensions, then number+unit pairs, then a bare number.

Numbers inside `excluded` spans (the synonym phrases the recognizer
matched, e.g. the "5" of "5 ft retaining wall") are never read as
quantities.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from models.service_catalog import ServiceUnit
from services.unit_conversion import normalize_unit, units_are_compatible


Span = Tuple[int, int]

MAX_DIMENSION = 10000

_NUMBER = r"\d+(?:\.\d+)?"

AREA_PATTERN = re.compile(rf"({_NUMBER}) by ({_NUMBER})")
LENGTH_PATTERN = re.compile(rf"({_NUMBER})\s*(?:linear feet|feet|foot|ft)\b")
# Alternatives longest first so "linear feet" wins over "feet".
NUMBER_UNIT_PATTERN = re.compile(
    rf"({_NUMBER})\s*("
    r"square feet|linear feet|cubic yards|sqft|sq ft|lin ft|cu yd|cuyd|"
    r"feet|foot|ft|linear|yards|yard|pieces|piece|each|ea|zones|zone|"
    r"spouts|spout|sections|section"
    r")\b"
)
BARE_NUMBER_PATTERN = re.compile(_NUMBER)

BARE_NUMBER_UNITS = frozenset({ServiceUnit.SQFT.value, ServiceUnit.EACH.value})


@dataclass(frozen=True)
class QuantityMatch:
    """A quantity read from a segment."""

    quantity: float
    unit: str
    source: str
    implicit_unit: bool = False


def _overlaps(span: Span, excluded: Iterable[Span]) -> bool:
    start, end = span
    return any(start < ex_end and ex_start < end for ex_start, ex_end in excluded)


def _unit_value(unit) -> str:
    return getattr(unit, "value", unit)


class DimensionExtractor:
    """Area from 'L by W', or length from 'N feet' or the long side of 'L by W'."""

    source = "dimension"

    def extract(
        self,
        segment: str,
        service_unit: str,
        excluded: Sequence[Span] = ()
    ) -> Optional[QuantityMatch]:
        service_unit = _unit_value(service_unit)

        if service_unit == ServiceUnit.SQFT.value:
            for match in AREA_PATTERN.finditer(segment):
                if _overlaps(match.span(), excluded):
                    continue
                length, width = float(match.group(1)), float(match.group(2))
                if 0 < length < MAX_DIMENSION and 0 < width < MAX_DIMENSION:
                    return QuantityMatch(length * width, service_unit, self.source)

        if service_unit == ServiceUnit.LINEAR_FEET.value:
            lengths = [
                float(match.group(1))
                for match in LENGTH_PATTERN.finditer(segment)
                if not _overlaps(match.span(), excluded)
            ]
            # "50 ft by 2 ft" reaches here as "50 by 2": the long side is the run
            lengths.extend(
                max(float(match.group(1)), float(match.group(2)))
                for match in AREA_PATTERN.finditer(segment)
                if not _overlaps(match.span(), excluded)
            )
            lengths = [length for length in lengths if 0 < length < MAX_DIMENSION]
            if lengths:
                return QuantityMatch(max(lengths), service_unit, self.source)

        return None


class NumberUnitExtractor:
    """Largest '<number> <unit>' whose unit the service accepts."""

    source = "number_unit"

    def extract(
        self,
        segment: str,
        service_unit: str,
        excluded: Sequence[Span] = ()
    ) -> Optional[QuantityMatch]:
        service_unit = _unit_value(service_unit)
        best = 0.0
        for match in NUMBER_UNIT_PATTERN.finditer(segment):
            if _overlaps(match.span(), excluded):
                continue
            if units_are_compatible(normalize_unit(match.group(2)), service_unit):
                best = max(best, float(match.group(1)))
        if best > 0:
            return QuantityMatch(best, service_unit, self.source)
        return None


class BareNumberExtractor:
    """First number with no unit, for sqft and each services only."""

    source = "bare_number"

    def extract(
        self,
        segment: str,
        service_unit: str,
        excluded: Sequence[Span] = ()
    ) -> Optional[QuantityMatch]:
        service_unit = _unit_value(service_unit)
        if service_unit not in BARE_NUMBER_UNITS:
            return None

        claimed: List[Span] = list(excluded)
        claimed.extend(match.span() for match in NUMBER_UNIT_PATTERN.finditer(segment))
        claimed.extend(match.span() for match in AREA_PATTERN.finditer(segment))

        for match in BARE_NUMBER_PATTERN.finditer(segment):
            if _overlaps(match.span(), claimed):
                continue
            value = float(match.group(0))
            if value > 0:
                return QuantityMatch(value, service_unit, self.source, implicit_unit=True)
        return None


class QuantityExtractor:
    """Runs the extractors in order; the first match wins."""

    def __init__(self, extractors: Optional[List] = None):
        self.extractors = extractors or [
            DimensionExtractor(),
            NumberUnitExtractor(),
            BareNumberExtractor(),
        ]

    def extract(
        self,
        segment: str,
        service_unit: str,
        excluded: Sequence[Span] = ()
    ) -> Optional[QuantityMatch]:
        for extractor in self.extractors:
            match = extractor.extract(segment, service_unit, excluded)
            if match is not None:
                return match
        return None
