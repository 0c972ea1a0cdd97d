"""Special-schedule pricing for LandQuote.

Categories listed here never go through the generic effect formulas.
Irrigation is priced as one job per quote: setup once, turf and drip
zones at their own rates, and boring once when required.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from config.errors import NotReadyForPricingError
from models.pricing_config import CompanyPricingConfig
from models.service_catalog import ServiceCategory, ServiceUnit
from models.service_request import ExtractedService, ZoneCounts

logger = structlog.get_logger()


@dataclass
class SpecialLine:
    """Unrounded cost and hours attributed to one service."""

    service: ExtractedService
    cost: float = 0.0
    hours: float = 0.0
    breakdown: List[str] = field(default_factory=list)


@dataclass
class SpecialPricing:
    """Unrounded result for one special category."""

    lines: List[SpecialLine] = field(default_factory=list)

    @property
    def cost(self) -> float:
        return sum(line.cost for line in self.lines)

    @property
    def hours(self) -> float:
        return sum(line.hours for line in self.lines)


class SpecialPricer(ABC):
    category: str = ""

    @abstractmethod
    def price(self, services: List[ExtractedService], config: CompanyPricingConfig) -> SpecialPricing:
        """Price every service of this category in a quote."""


def _zones_for(services: List[ExtractedService]) -> ZoneCounts:
    for service in services:
        requirements = service.special_requirements
        if requirements is not None and requirements.zones is not None:
            return requirements.zones
    for service in services:
        if service.unit == ServiceUnit.ZONE.value and service.quantity > 0:
            total = int(service.quantity)
            return ZoneCounts(turf=total, drip=0, total=total)
    return ZoneCounts()


def _boring_for(services: List[ExtractedService]) -> Optional[bool]:
    for service in services:
        requirements = service.special_requirements
        if requirements is not None and requirements.boring is not None:
            return requirements.boring
    return None


class IrrigationPricer(SpecialPricer):
    """Setup + zones + boring from the company's IrrigationRateSchedule."""

    category = ServiceCategory.IRRIGATION.value

    def price(self, services: List[ExtractedService], config: CompanyPricingConfig) -> SpecialPricing:
        if not services:
            return SpecialPricing()

        schedule = config.irrigation
        zones = _zones_for(services)
        boring = _boring_for(services)
        if zones.total <= 0:
            raise NotReadyForPricingError(
                "Irrigation zone count is required before pricing",
                missing_info=["Irrigation zone count"]
            )

        setup_service = next((s for s in services if s.unit == ServiceUnit.SETUP.value), None)
        zone_service = next((s for s in services if s.unit == ServiceUnit.ZONE.value), None)
        setup_line = SpecialLine(service=setup_service or zone_service)
        zone_line = SpecialLine(service=zone_service) if zone_service else setup_line

        setup_line.cost += schedule.setup_cost
        setup_line.hours += schedule.setup_hours
        setup_line.breakdown.append(f"Setup: ${schedule.setup_cost:g}")

        zone_line.cost += zones.turf * schedule.turf_zone_cost + zones.drip * schedule.drip_zone_cost
        zone_line.hours += zones.total * schedule.hours_per_zone
        if zones.turf:
            zone_line.breakdown.append(f"{zones.turf} turf zones x ${schedule.turf_zone_cost:g}")
        if zones.drip:
            zone_line.breakdown.append(f"{zones.drip} drip zones x ${schedule.drip_zone_cost:g}")

        if boring:
            setup_line.cost += schedule.boring_cost
            setup_line.hours += schedule.boring_hours
            setup_line.breakdown.append(f"Boring: ${schedule.boring_cost:g}")

        lines = [setup_line] if zone_line is setup_line else [setup_line, zone_line]
        result = SpecialPricing(lines=lines)
        logger.info(
            "irrigation_priced",
            turf_zones=zones.turf,
            drip_zones=zones.drip,
            boring=bool(boring),
            cost=result.cost,
            hours=result.hours
        )
        return result


SPECIAL_PRICERS: Dict[str, SpecialPricer] = {
    IrrigationPricer.category: IrrigationPricer(),
}
