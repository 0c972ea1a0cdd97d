"""Unit normalization and compatibility for LandQuote.

Unit tokens found in text are normalized to a snake_case key, then checked
against an explicit compatibility table for the service's declared unit.
An empty token stands for a bare number with no unit.
"""

import re
from typing import Dict, FrozenSet

from models.service_catalog import ServiceUnit


# Token spellings -> normalized key
UNIT_CONVERSIONS: Dict[str, str] = {
    "sqft": "sqft",
    "sq_ft": "sq_ft",
    "square_feet": "square_feet",
    "square_foot": "square_feet",
    "squarefeet": "squarefeet",
    "linear_feet": "linear_feet",
    "linear_foot": "linear_feet",
    "lin_ft": "lin_ft",
    "linear_ft": "lin_ft",
    "feet": "feet",
    "foot": "feet",
    "ft": "ft",
    "cubic_yards": "cubic_yards",
    "cubic_yard": "cubic_yards",
    "cu_yd": "cu_yd",
    "cuyd": "cuyd",
    "yards": "yards",
    "yard": "yard",
    "each": "each",
    "ea": "ea",
    "piece": "piece",
    "pieces": "pieces",
    "zone": "zones",
    "zones": "zones",
    "spout": "spouts",
    "spouts": "spouts",
    "section": "sections",
    "sections": "sections",
}

# Declared service unit -> normalized tokens it accepts besides itself
UNIT_COMPATIBILITY: Dict[str, FrozenSet[str]] = {
    ServiceUnit.SQFT.value: frozenset({"square_feet", "sq_ft", "squarefeet", ""}),
    ServiceUnit.LINEAR_FEET.value: frozenset({"feet", "ft", "linear", "lin_ft"}),
    ServiceUnit.CUBIC_YARDS.value: frozenset({"yards", "yard", "cu_yd", "cuyd"}),
    # zones/spouts are context synonyms for counted special work
    ServiceUnit.EACH.value: frozenset({"piece", "pieces", "ea", "", "zones", "spouts"}),
    ServiceUnit.ZONE.value: frozenset({"zones"}),
    ServiceUnit.SECTION.value: frozenset({"sections"}),
    ServiceUnit.SETUP.value: frozenset(),
}

_WHITESPACE = re.compile(r"[\s.]+")


def normalize_unit(unit: str) -> str:
    """Normalize a unit token: 'Sq Ft' -> 'sq_ft', 'cubic yard' -> 'cubic_yards'."""
    key = _WHITESPACE.sub("_", (unit or "").strip().lower()).strip("_")
    return UNIT_CONVERSIONS.get(key, key)


def units_are_compatible(input_unit: str, service_unit: str) -> bool:
    """Check a normalized token against a declared service unit."""
    service_unit = getattr(service_unit, "value", service_unit)
    if input_unit == service_unit:
        return True
    return input_unit in UNIT_COMPATIBILITY.get(service_unit, frozenset())
