"""Special-service handlers for LandQuote.

Services flagged is_special need fields the generic recognizer cannot
read from their own segment. A handler registered for the service's
category parses those fields from the whole original message, fixes the
service quantity when the fields imply one, and reports what is still
missing.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from models.service_catalog import ServiceCategory, ServiceUnit
from models.service_request import ExtractedService, SpecialRequirements, ZoneCounts
from services.text_normalizer import canonicalize_spelling

logger = structlog.get_logger()


@dataclass
class SpecialHandlingResult:
    """Updated service plus the gaps its handler found."""

    service: ExtractedService
    missing_info: List[str] = field(default_factory=list)
    questions: List[str] = field(default_factory=list)


class SpecialRequirementHandler(ABC):
    """Base class for category-specific handlers."""

    category: str = ""

    # When True the handler sets the quantity, so the generic
    # "Quantity for X" check is skipped for this service.
    owns_quantity: bool = False

    @abstractmethod
    def handle(
        self,
        service: ExtractedService,
        message: str,
        previous: Optional[SpecialRequirements] = None
    ) -> SpecialHandlingResult:
        """Parse special fields for one service from the full message.

        Fields known from an earlier turn (`previous`) stand unless the
        message states them again.
        """


# =============================================================================
# IRRIGATION
# =============================================================================


TURF_PATTERN = re.compile(r"(\d+)\s*(?:zones?\s+(?:of\s+)?)?turf\b")
DRIP_PATTERN = re.compile(r"(\d+)\s*(?:zones?\s+(?:of\s+)?)?drip\b")
ZONE_TOTAL_PATTERN = re.compile(r"(\d+)\s*(?:irrigation\s+)?(?:zones?|spouts?)\b")

BORING_NEGATIVE_PATTERN = re.compile(r"\b(?:no|without)\s+boring\b|\bno\s+driveway\b")
BORING_PATTERN = re.compile(
    r"\bbor(?:e|ing)\b|\bdrill|\bunder\s+(?:the\s+)?(?:driveway|sidewalk)"
    r"|\bcross(?:ing)?\s+(?:the\s+)?driveway|\bunderground\b|\bbeneath\b"
)
SETUP_PATTERN = re.compile(r"\bset\s?up\b")

ZONE_COUNT_MISSING = "Irrigation zone count"
ZONE_COUNT_QUESTION = "How many irrigation zones do you need (turf zones vs drip zones)?"
BORING_MISSING = "Boring requirement assessment"
BORING_QUESTION = "Will we need to bore under any driveways or sidewalks for irrigation?"


def parse_irrigation_zones(message: str) -> Optional[ZoneCounts]:
    """Read turf/drip zone counts; None when no count is stated.

    An unqualified total ("5 zones") that exceeds the turf + drip counts
    assigns the remainder to turf.
    """
    text = canonicalize_spelling((message or "").lower())

    turf = sum(int(m.group(1)) for m in TURF_PATTERN.finditer(text))
    drip = sum(int(m.group(1)) for m in DRIP_PATTERN.finditer(text))
    stated_total = max((int(m.group(1)) for m in ZONE_TOTAL_PATTERN.finditer(text)), default=0)

    if stated_total > turf + drip:
        turf = stated_total - drip
    total = turf + drip
    if total == 0:
        return None
    return ZoneCounts(turf=turf, drip=drip, total=total)


def detect_boring_requirement(message: str) -> Optional[bool]:
    """True on a boring keyword, False on an explicit negative, else None."""
    text = (message or "").lower()
    if BORING_NEGATIVE_PATTERN.search(text):
        return False
    if BORING_PATTERN.search(text):
        return True
    return None


class IrrigationHandler(SpecialRequirementHandler):
    """Zones, boring and setup for irrigation services.

    The setup service is always one unit; the per-zone service takes the
    zone total once it is known.
    """

    category = ServiceCategory.IRRIGATION.value
    owns_quantity = True

    def handle(
        self,
        service: ExtractedService,
        message: str,
        previous: Optional[SpecialRequirements] = None
    ) -> SpecialHandlingResult:
        zones = parse_irrigation_zones(message)
        boring = detect_boring_requirement(message)
        is_setup = service.unit == ServiceUnit.SETUP.value
        setup_required = is_setup or bool(SETUP_PATTERN.search((message or "").lower()))

        if previous is not None:
            if zones is None:
                zones = previous.zones
            if boring is None:
                boring = previous.boring
            setup_required = setup_required or previous.setup_required

        missing_info: List[str] = []
        questions: List[str] = []
        if zones is None:
            missing_info.append(ZONE_COUNT_MISSING)
            questions.append(ZONE_COUNT_QUESTION)
        if boring is None:
            missing_info.append(BORING_MISSING)
            questions.append(BORING_QUESTION)

        quantity = service.quantity
        if is_setup:
            quantity = 1.0
        elif service.unit == ServiceUnit.ZONE.value and zones is not None:
            quantity = float(zones.total)

        updated = service.model_copy(update={
            "quantity": quantity,
            "special_requirements": SpecialRequirements(
                zones=zones,
                boring=boring,
                setup_required=setup_required
            ),
            "missing_info": service.missing_info + missing_info,
            "questions": service.questions + questions,
        })

        logger.info(
            "irrigation_requirements_parsed",
            service=service.name,
            zones=zones.model_dump() if zones else None,
            boring=boring,
            setup_required=setup_required
        )
        return SpecialHandlingResult(service=updated, missing_info=missing_info, questions=questions)


# =============================================================================
# REGISTRY
# =============================================================================


class SpecialRequirementsRegistry:
    """Category -> handler lookup."""

    def __init__(self, handlers: Optional[List[SpecialRequirementHandler]] = None):
        self._handlers: Dict[str, SpecialRequirementHandler] = {}
        for handler in handlers or []:
            self.register(handler)

    def register(self, handler: SpecialRequirementHandler) -> None:
        self._handlers[handler.category] = handler

    def get(self, category: str) -> Optional[SpecialRequirementHandler]:
        return self._handlers.get(getattr(category, "value", category))

    @property
    def categories(self) -> List[str]:
        return list(self._handlers.keys())


def default_registry() -> SpecialRequirementsRegistry:
    return SpecialRequirementsRegistry([IrrigationHandler()])
