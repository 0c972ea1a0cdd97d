"""Effect-type evaluation for the LandQuote pricing engine.

Every variable in a pricing configuration names one EffectType. The
selected option's payload is handed to that type's evaluator, which
records its contribution on an EffectAccumulator. The engine then reads
the accumulator when it runs the tier 1 and tier 2 formulas.

Adding an effect type means adding an EffectType member and one entry in
EFFECT_EVALUATORS.
"""

from dataclasses import dataclass, field
from math import prod
from typing import Callable, Dict, List, Optional, Union

import structlog

from config.errors import EffectConfigurationError
from models.pricing_config import (
    EffectType,
    Selections,
    VariableConfig,
    VariableDefinition,
    VariableOption,
    multiplier_from_percentage,
    percentage_from_multiplier,
)

logger = structlog.get_logger()


@dataclass
class EffectAccumulator:
    """Collected effect contributions for one service."""

    labor_percentages: List[float] = field(default_factory=list)
    material_multipliers: List[float] = field(default_factory=list)
    material_waste_percentages: List[float] = field(default_factory=list)
    project_multipliers: List[float] = field(default_factory=list)
    daily_equipment_costs: List[float] = field(default_factory=list)
    flat_additions: Dict[str, float] = field(default_factory=dict)
    applied: List[str] = field(default_factory=list)

    @property
    def labor_percentage(self) -> float:
        return sum(self.labor_percentages)

    @property
    def material_multiplier(self) -> float:
        return prod(self.material_multipliers)

    @property
    def material_waste_percentage(self) -> float:
        return sum(self.material_waste_percentages)

    @property
    def project_multiplier(self) -> float:
        return prod(self.project_multipliers)

    @property
    def daily_equipment_cost(self) -> float:
        return sum(self.daily_equipment_costs)

    @property
    def flat_addition(self) -> float:
        return sum(self.flat_additions.values())


def option_percentage(option: VariableOption) -> float:
    """Percentage value of an option; a stored multiplier is only a fallback."""
    if option.value is not None:
        return option.value
    if option.multiplier is not None:
        return percentage_from_multiplier(option.multiplier)
    return 0.0


# =============================================================================
# EVALUATORS
# =============================================================================


def evaluate_labor_time_percentage(option: VariableOption, acc: EffectAccumulator, name: str) -> None:
    value = option_percentage(option)
    acc.labor_percentages.append(value)
    if value:
        acc.applied.append(f"{name}: labor +{value:g}%")


def evaluate_material_cost_multiplier(option: VariableOption, acc: EffectAccumulator, name: str) -> None:
    value = option_percentage(option)
    acc.material_multipliers.append(multiplier_from_percentage(value))
    if value:
        acc.applied.append(f"{name}: material x{multiplier_from_percentage(value):g}")


def evaluate_total_project_multiplier(option: VariableOption, acc: EffectAccumulator, name: str) -> None:
    value = option_percentage(option)
    acc.project_multipliers.append(multiplier_from_percentage(value))
    if value:
        acc.applied.append(f"{name}: project x{multiplier_from_percentage(value):g}")


def evaluate_cutting_complexity(option: VariableOption, acc: EffectAccumulator, name: str) -> None:
    labor = option.labor_percentage
    if labor is None:
        labor = option.value or 0.0
    waste = option.material_waste or 0.0
    acc.labor_percentages.append(labor)
    acc.material_waste_percentages.append(waste)
    if labor or waste:
        acc.applied.append(f"{name}: labor +{labor:g}%, waste {waste:g}%")


def evaluate_daily_equipment_cost(option: VariableOption, acc: EffectAccumulator, name: str) -> None:
    value = option.value or 0.0
    acc.daily_equipment_costs.append(value)
    if value:
        acc.applied.append(f"{name}: equipment ${value:g}/day")


def evaluate_flat_additional_cost(option: VariableOption, acc: EffectAccumulator, name: str) -> None:
    value = option.value or 0.0
    acc.flat_additions[name] = value
    if value:
        acc.applied.append(f"{name}: +${value:g}")


Evaluator = Callable[[VariableOption, EffectAccumulator, str], None]

EFFECT_EVALUATORS: Dict[EffectType, Evaluator] = {
    EffectType.LABOR_TIME_PERCENTAGE: evaluate_labor_time_percentage,
    EffectType.MATERIAL_COST_MULTIPLIER: evaluate_material_cost_multiplier,
    EffectType.TOTAL_PROJECT_MULTIPLIER: evaluate_total_project_multiplier,
    EffectType.CUTTING_COMPLEXITY: evaluate_cutting_complexity,
    EffectType.DAILY_EQUIPMENT_COST: evaluate_daily_equipment_cost,
    EffectType.FLAT_ADDITIONAL_COST: evaluate_flat_additional_cost,
}


def check_dispatch_table(evaluators: Dict[EffectType, Evaluator] = EFFECT_EVALUATORS) -> None:
    """Every EffectType member must have an evaluator."""
    missing = [effect.value for effect in EffectType if effect not in evaluators]
    if missing:
        raise EffectConfigurationError(
            f"No evaluator for effect types: {', '.join(missing)}",
            details={"missing": missing}
        )


check_dispatch_table()


# =============================================================================
# RESOLUTION
# =============================================================================


def resolve_option(
    definition: VariableDefinition,
    selection: Optional[Union[str, float]],
    name: str
) -> VariableOption:
    """Option payload for a selection, falling back to the variable default.

    Raises:
        EffectConfigurationError: Unknown option key or non-numeric number.
    """
    if selection is None:
        selection = definition.default

    if definition.type == "number":
        try:
            return VariableOption(value=float(selection))
        except (TypeError, ValueError) as e:
            raise EffectConfigurationError(
                f"Variable '{name}' expects a number, got {selection!r}",
                variable=name
            ) from e

    option = definition.options.get(str(selection))
    if option is None:
        raise EffectConfigurationError(
            f"Unknown option '{selection}' for variable '{name}'",
            variable=name,
            details={"options": sorted(definition.options)}
        )
    return option


def evaluate_variables(
    variables: VariableConfig,
    selections: Optional[Selections] = None
) -> EffectAccumulator:
    """Run every variable's selected option through its evaluator.

    Args:
        variables: Variable tree for the service.
        selections: group -> variable -> option key or number.

    Returns:
        EffectAccumulator with all contributions.
    """
    selections = selections or {}
    acc = EffectAccumulator()

    for group_name, key, definition in variables.iter_variables():
        name = f"{group_name}.{key}"
        evaluator = EFFECT_EVALUATORS.get(definition.effect_type)
        if evaluator is None:
            raise EffectConfigurationError(
                f"Unknown effect type '{definition.effect_type}' for variable '{name}'",
                variable=name
            )
        option = resolve_option(definition, selections.get(group_name, {}).get(key), name)
        evaluator(option, acc, name)

    logger.debug("effects_evaluated", applied=acc.applied)
    return acc
