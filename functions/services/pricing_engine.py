"""Two-tier pricing engine for LandQuote.

Tier 1 turns quantities into labor hours; tier 2 turns hours and
quantities into dollars. Both tiers read the same effect accumulator
built from the service's variable configuration. Special categories
(irrigation) are priced from their own rate schedules instead.

All arithmetic runs unrounded; values are rounded once when the
PricingResult is built (money to cents, hours and days to one decimal).
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from config.errors import NotReadyForPricingError
from models.pricing_config import CompanyPricingConfig, Selections, ServicePricingConfig
from models.pricing_result import PricingResult, ServiceLineItem, Tier1Result, Tier2Result
from models.service_catalog import ServiceCatalog
from models.service_request import CollectionResult, ExtractedService
from services.effect_types import EffectAccumulator, evaluate_variables
from services.special_pricing import SPECIAL_PRICERS, SpecialPricer
from services.unit_conversion import normalize_unit, units_are_compatible

logger = structlog.get_logger()

HOURS_PER_DAY = 8


def round_money(value: float) -> float:
    return round(value, 2)


def round_hours(value: float) -> float:
    return round(value, 1)


@dataclass
class ServiceCalculation:
    """Unrounded tier 1 and tier 2 figures for one generic service."""

    service: ExtractedService
    base_hours: float = 0.0
    adjusted_hours: float = 0.0
    days: float = 0.0
    labor_cost: float = 0.0
    material_cost: float = 0.0
    equipment_cost: float = 0.0
    flat_additions: float = 0.0
    subtotal: float = 0.0
    adjusted_subtotal: float = 0.0
    profit: float = 0.0
    total: float = 0.0
    breakdown: List[str] = field(default_factory=list)


class PricingEngine:
    """Prices a ready CollectionResult against a company configuration."""

    def __init__(
        self,
        catalog: Optional[ServiceCatalog] = None,
        special_pricers: Optional[Dict[str, SpecialPricer]] = None
    ):
        """Initialize PricingEngine.

        Args:
            catalog: When given, services are checked against it and priced
                by its row, unit and category.
            special_pricers: Category -> pricer (default irrigation).
        """
        self.catalog = catalog
        self.special_pricers = special_pricers if special_pricers is not None else SPECIAL_PRICERS

    # =========================================================================
    # PRECONDITIONS
    # =========================================================================

    def check_ready(self, collection: CollectionResult) -> None:
        """Reject anything that is not a complete, priceable service set.

        Raises:
            NotReadyForPricingError: Status not ready, no services, or a
                service without a positive quantity in a compatible unit.
        """
        if not collection.is_ready:
            raise NotReadyForPricingError(
                "Collection is not ready for pricing",
                missing_info=collection.missing_info,
                details={"status": collection.status.value}
            )
        if not collection.services:
            raise NotReadyForPricingError("No services to price")

        for service in collection.services:
            if service.quantity <= 0:
                raise NotReadyForPricingError(
                    f"{service.name} has no quantity",
                    missing_info=[f"Quantity for {service.name}"]
                )
            declared = service.unit
            if self.catalog is not None:
                config = self.catalog.get_service_by_name(service.name)
                if config is None:
                    raise NotReadyForPricingError(
                        f"{service.name} is not in the service catalog",
                        details={"service": service.name}
                    )
                declared = config.unit.value
            if not units_are_compatible(normalize_unit(service.unit), declared):
                raise NotReadyForPricingError(
                    f"{service.name} is quoted in {service.unit}, expected {declared}",
                    details={"service": service.name, "unit": service.unit}
                )

    def bind_services(self, services: List[ExtractedService]) -> List[ExtractedService]:
        """Catalog row, unit and category for each service.

        Collections arrive from clients, so routing never trusts the
        category a caller sent. Without a catalog the services are used as
        given. Call after check_ready, which rejects names the catalog lacks.
        """
        if self.catalog is None:
            return list(services)

        bound = []
        for service in services:
            config = self.catalog.get_service_by_name(service.name)
            update = {
                "row": config.row,
                "unit": config.unit.value,
                "category": config.category.value,
                "is_special": config.is_special,
            }
            if service.category != config.category.value or service.is_special != config.is_special:
                logger.warning(
                    "service_rebound_to_catalog",
                    service=service.name,
                    category=service.category,
                    catalog_category=config.category.value
                )
            bound.append(service.model_copy(update=update))
        return bound

    # =========================================================================
    # TIERS
    # =========================================================================

    @staticmethod
    def calculate_tier1(
        calc: ServiceCalculation,
        config: ServicePricingConfig,
        effects: EffectAccumulator
    ) -> None:
        """Base hours, adjusted hours and days."""
        team_day = config.optimal_team_size * HOURS_PER_DAY
        calc.base_hours = calc.service.quantity / config.base_productivity * team_day
        calc.adjusted_hours = calc.base_hours + calc.base_hours * effects.labor_percentage / 100
        calc.days = calc.adjusted_hours / team_day

    @staticmethod
    def calculate_tier2(
        calc: ServiceCalculation,
        config: ServicePricingConfig,
        effects: EffectAccumulator
    ) -> None:
        """Labor, material, equipment, flat, project multiplier and profit."""
        calc.labor_cost = calc.adjusted_hours * config.hourly_labor_rate

        material_base = config.base_material_cost * calc.service.quantity
        waste = material_base * effects.material_waste_percentage / 100
        calc.material_cost = material_base * effects.material_multiplier + waste

        calc.equipment_cost = effects.daily_equipment_cost * calc.days
        calc.flat_additions = effects.flat_addition

        calc.subtotal = calc.labor_cost + calc.material_cost + calc.equipment_cost + calc.flat_additions
        calc.adjusted_subtotal = calc.subtotal * effects.project_multiplier
        calc.profit = calc.adjusted_subtotal * config.profit_margin
        calc.total = calc.adjusted_subtotal + calc.profit

    @staticmethod
    def evaluate_effects(
        config: ServicePricingConfig,
        selections: Optional[Selections] = None
    ) -> EffectAccumulator:
        """Stored selections overlaid with the request's, run through the evaluators."""
        resolved = config.resolved_selections()
        for group_name, chosen in (selections or {}).items():
            resolved.setdefault(group_name, {}).update(chosen)
        return evaluate_variables(config.variables, resolved)

    @staticmethod
    def charge_flat_additions_once(effects: List[EffectAccumulator]) -> None:
        """Flat additions are one-time project charges.

        Each flat variable is charged once per quote, at its largest value,
        on the first service that carries it. Later services drop it.
        """
        largest: Dict[str, float] = {}
        holder: Dict[str, int] = {}
        for index, acc in enumerate(effects):
            for name, value in acc.flat_additions.items():
                if value > largest.get(name, 0.0):
                    largest[name] = value
                if value and name not in holder:
                    holder[name] = index

        for index, acc in enumerate(effects):
            for name in list(acc.flat_additions):
                if holder.get(name) == index:
                    acc.flat_additions[name] = largest[name]
                elif acc.flat_additions[name]:
                    acc.flat_additions[name] = 0.0
                    acc.applied.append(f"{name}: charged once per quote")

    def calculate_service(
        self,
        service: ExtractedService,
        config: ServicePricingConfig,
        selections: Optional[Selections] = None,
        effects: Optional[EffectAccumulator] = None
    ) -> ServiceCalculation:
        """Run both tiers for one generic service."""
        if effects is None:
            effects = self.evaluate_effects(config, selections)
        calc = ServiceCalculation(service=service, breakdown=list(effects.applied))
        self.calculate_tier1(calc, config, effects)
        self.calculate_tier2(calc, config, effects)
        return calc

    # =========================================================================
    # QUOTE
    # =========================================================================

    def calculate(
        self,
        collection: CollectionResult,
        pricing_config: CompanyPricingConfig,
        selections: Optional[Selections] = None
    ) -> PricingResult:
        """Price every service in a ready collection.

        Args:
            collection: Validator output; must be ready_for_pricing.
            pricing_config: Company rates, variables and special schedules.
            selections: Request-level variable choices over the configured ones.

        Returns:
            PricingResult with rounded totals and one line item per service.

        Raises:
            NotReadyForPricingError: If the precondition check fails.
            EffectConfigurationError: On an unknown option or effect type.
        """
        self.check_ready(collection)
        services = self.bind_services(collection.services)

        generic: List[ExtractedService] = []
        special: Dict[str, List[ExtractedService]] = {}
        for service in services:
            if service.category in self.special_pricers:
                special.setdefault(service.category, []).append(service)
            else:
                generic.append(service)

        configs = [pricing_config.for_service(service.name) for service in generic]
        effects = [self.evaluate_effects(config, selections) for config in configs]
        self.charge_flat_additions_once(effects)
        calculations = [
            self.calculate_service(service, config, effects=acc)
            for service, config, acc in zip(generic, configs, effects)
        ]
        line_items = [self._line_item(calc) for calc in calculations]

        special_cost = 0.0
        special_hours = 0.0
        special_days = 0.0
        default_team_day = pricing_config.default_service.optimal_team_size * HOURS_PER_DAY
        for category, services in special.items():
            priced = self.special_pricers[category].price(services, pricing_config)
            special_cost += priced.cost
            special_hours += priced.hours
            special_days += priced.hours / default_team_day
            for line in priced.lines:
                line_items.append(ServiceLineItem(
                    service_name=line.service.name,
                    quantity=line.service.quantity,
                    unit=line.service.unit,
                    row=line.service.row,
                    man_hours=round_hours(line.hours),
                    total=round_money(line.cost),
                    pricing_method="special_schedule",
                    breakdown=line.breakdown
                ))

        base_hours = sum(calc.base_hours for calc in calculations)
        adjusted_hours = sum(calc.adjusted_hours for calc in calculations)
        generic_subtotal = sum(calc.adjusted_subtotal for calc in calculations)
        profit = sum(calc.profit for calc in calculations)
        total = sum(calc.total for calc in calculations) + special_cost

        tier1 = Tier1Result(
            base_hours=round_hours(base_hours),
            total_man_hours=round_hours(adjusted_hours + special_hours),
            total_days=round_hours(sum(calc.days for calc in calculations) + special_days),
            complexity_factor=round(adjusted_hours / base_hours, 3) if base_hours else 1.0
        )
        tier2 = Tier2Result(
            labor_cost=round_money(sum(calc.labor_cost for calc in calculations)),
            material_cost=round_money(sum(calc.material_cost for calc in calculations)),
            equipment_cost=round_money(sum(calc.equipment_cost for calc in calculations)),
            flat_additions=round_money(sum(calc.flat_additions for calc in calculations)),
            special_services_cost=round_money(special_cost),
            subtotal=round_money(generic_subtotal + special_cost),
            profit=round_money(profit),
            total=round_money(total),
            price_per_unit=self._price_per_unit(services, total)
        )

        result = PricingResult(
            tier1=tier1,
            tier2=tier2,
            line_items=line_items,
            confidence=collection.confidence
        )
        logger.info(
            "quote_priced",
            service_count=len(services),
            special_count=sum(len(services) for services in special.values()),
            total=tier2.total,
            total_man_hours=tier1.total_man_hours
        )
        return result

    @staticmethod
    def _line_item(calc: ServiceCalculation) -> ServiceLineItem:
        service = calc.service
        return ServiceLineItem(
            service_name=service.name,
            quantity=service.quantity,
            unit=service.unit,
            row=service.row,
            man_hours=round_hours(calc.adjusted_hours),
            labor_cost=round_money(calc.labor_cost),
            material_cost=round_money(calc.material_cost),
            equipment_cost=round_money(calc.equipment_cost),
            flat_additions=round_money(calc.flat_additions),
            profit=round_money(calc.profit),
            total=round_money(calc.total),
            pricing_method="two_tier",
            breakdown=calc.breakdown
        )

    @staticmethod
    def _price_per_unit(services: List[ExtractedService], total: float) -> Optional[float]:
        """Total per unit when every service shares one unit."""
        units = {service.unit for service in services}
        quantity = sum(service.quantity for service in services)
        if len(units) != 1 or quantity <= 0:
            return None
        return round_money(total / quantity)
