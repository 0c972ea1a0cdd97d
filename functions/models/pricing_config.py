"""Pricing configuration Pydantic models for LandQuote.

A company's pricing configuration holds base rates per service plus a
nested variable tree. Each variable names an effect type; the selected
option's payload feeds that effect's formula in the pricing engine.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from config.errors import EffectConfigurationError


# =============================================================================
# EFFECT TYPES
# =============================================================================


class EffectType(str, Enum):
    """Formula a variable option feeds into."""

    LABOR_TIME_PERCENTAGE = "labor_time_percentage"
    MATERIAL_COST_MULTIPLIER = "material_cost_multiplier"
    TOTAL_PROJECT_MULTIPLIER = "total_project_multiplier"
    CUTTING_COMPLEXITY = "cutting_complexity"
    DAILY_EQUIPMENT_COST = "daily_equipment_cost"
    FLAT_ADDITIONAL_COST = "flat_additional_cost"


PERCENTAGE_EFFECT_TYPES = frozenset({
    EffectType.LABOR_TIME_PERCENTAGE,
    EffectType.MATERIAL_COST_MULTIPLIER,
    EffectType.TOTAL_PROJECT_MULTIPLIER,
})


def multiplier_from_percentage(percentage: float) -> float:
    """20 -> 1.2, 0 -> 1.0, -10 -> 0.9."""
    return 1 + (percentage / 100)


def percentage_from_multiplier(multiplier: float) -> float:
    """Inverse of multiplier_from_percentage."""
    return (multiplier - 1) * 100


# =============================================================================
# VARIABLES
# =============================================================================


class VariableOption(BaseModel):
    """Payload of one selectable option.

    Which fields matter depends on the owning variable's effect type.
    """

    label: str = Field(default="")
    value: Optional[float] = Field(default=None, description="Percentage or dollar value")
    multiplier: Optional[float] = Field(default=None, description="Kept in lockstep with value")
    labor_percentage: Optional[float] = Field(default=None, alias="laborPercentage")
    material_waste: Optional[float] = Field(default=None, alias="materialWaste")
    description: Optional[str] = Field(default=None)

    class Config:
        populate_by_name = True

    def synced(self) -> "VariableOption":
        """Copy with multiplier recomputed from value.

        A legacy option carrying only a multiplier gets its value derived from it.
        """
        if self.value is not None:
            return self.model_copy(update={"multiplier": multiplier_from_percentage(self.value)})
        if self.multiplier is not None:
            return self.model_copy(update={"value": percentage_from_multiplier(self.multiplier)})
        return self


class VariableDefinition(BaseModel):
    """A leaf variable in the configuration tree."""

    label: str = Field(default="")
    description: Optional[str] = Field(default=None)
    type: Literal["select", "number"] = Field(default="select")
    default: Union[float, str] = Field(..., description="Default option key or number")
    calculation_tier: Union[Literal[1, 2], Literal["both"]] = Field(
        default=1,
        alias="calculationTier"
    )
    effect_type: EffectType = Field(..., alias="effectType")
    options: Dict[str, VariableOption] = Field(default_factory=dict)

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def sync_percentage_options(self) -> "VariableDefinition":
        """Keep multiplier and value in lockstep for percentage effects."""
        if self.effect_type in PERCENTAGE_EFFECT_TYPES:
            self.options = {key: option.synced() for key, option in self.options.items()}
        if self.type == "select" and str(self.default) not in self.options:
            raise ValueError(
                f"default option '{self.default}' is not one of {sorted(self.options)}"
            )
        return self


Selections = Dict[str, Dict[str, Union[str, float]]]


class VariableConfig(BaseModel):
    """Named, nested tree: group -> variable key -> definition."""

    groups: Dict[str, Dict[str, VariableDefinition]] = Field(default_factory=dict)

    @classmethod
    def from_tree(cls, tree: Dict[str, Any]) -> "VariableConfig":
        """Parse a stored tree, skipping non-variable metadata entries.

        Stored configs mix display metadata (labels, descriptions,
        formula notes) into the tree; only dicts carrying an effectType are
        variables.

        Raises:
            EffectConfigurationError: On an unknown effect type or an
                invalid variable definition.
        """
        groups: Dict[str, Dict[str, VariableDefinition]] = {}
        for group_name, group in (tree or {}).items():
            if not isinstance(group, dict):
                continue
            variables = {}
            for key, entry in group.items():
                if not isinstance(entry, dict):
                    continue
                if "effectType" not in entry and "effect_type" not in entry:
                    continue
                try:
                    variables[key] = VariableDefinition.model_validate(entry)
                except PydanticValidationError as e:
                    raise EffectConfigurationError(
                        f"Invalid variable '{group_name}.{key}'",
                        variable=f"{group_name}.{key}",
                        details={"errors": [err["msg"] for err in e.errors()]}
                    ) from e
            if variables:
                groups[group_name] = variables
        return cls(groups=groups)

    def iter_variables(self) -> Iterator[Tuple[str, str, VariableDefinition]]:
        for group_name, variables in self.groups.items():
            for key, definition in variables.items():
                yield group_name, key, definition

    def get_variable(self, group: str, key: str) -> Optional[VariableDefinition]:
        return self.groups.get(group, {}).get(key)

    def default_selections(self) -> Selections:
        return {
            group_name: {key: definition.default for key, definition in variables.items()}
            for group_name, variables in self.groups.items()
        }


# =============================================================================
# BASE RATES
# =============================================================================


class ServicePricingConfig(BaseModel):
    """Base rates and variables for one service (or the company default)."""

    hourly_labor_rate: float = Field(default=25.0, ge=0, alias="hourlyLaborRate")
    optimal_team_size: int = Field(default=3, ge=1, alias="optimalTeamSize")
    base_productivity: float = Field(
        default=50.0,
        gt=0,
        alias="baseProductivity",
        description="Units a full team completes per day"
    )
    base_material_cost: float = Field(
        default=5.84,
        ge=0,
        alias="baseMaterialCost",
        description="Material cost per unit"
    )
    profit_margin: float = Field(default=0.20, ge=0, alias="profitMargin")
    variables: VariableConfig = Field(default_factory=VariableConfig)
    selections: Selections = Field(
        default_factory=dict,
        description="Chosen option per variable; missing entries fall back to defaults"
    )

    class Config:
        populate_by_name = True

    def resolved_selections(self) -> Selections:
        """Defaults overlaid with explicit selections."""
        resolved = self.variables.default_selections()
        for group_name, chosen in self.selections.items():
            resolved.setdefault(group_name, {}).update(chosen)
        return resolved


class IrrigationRateSchedule(BaseModel):
    """Per-setup and per-zone rates for irrigation work."""

    setup_cost: float = Field(default=450.0, ge=0, alias="setupCost")
    turf_zone_cost: float = Field(default=650.0, ge=0, alias="turfZoneCost")
    drip_zone_cost: float = Field(default=550.0, ge=0, alias="dripZoneCost")
    boring_cost: float = Field(default=300.0, ge=0, alias="boringCost")
    setup_hours: float = Field(default=4.0, ge=0, alias="setupHours")
    hours_per_zone: float = Field(default=6.0, ge=0, alias="hoursPerZone")
    boring_hours: float = Field(default=3.0, ge=0, alias="boringHours")

    class Config:
        populate_by_name = True


class CompanyPricingConfig(BaseModel):
    """Everything the pricing engine reads for one company."""

    company_id: str = Field(..., alias="companyId")
    default_service: ServicePricingConfig = Field(
        default_factory=ServicePricingConfig,
        alias="defaultService"
    )
    services: Dict[str, ServicePricingConfig] = Field(default_factory=dict)
    irrigation: IrrigationRateSchedule = Field(default_factory=IrrigationRateSchedule)

    class Config:
        populate_by_name = True

    def for_service(self, service_name: str) -> ServicePricingConfig:
        return self.services.get(service_name, self.default_service)

    def configured_services(self) -> List[str]:
        return list(self.services.keys())
