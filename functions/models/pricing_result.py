"""Pricing result Pydantic models for LandQuote.

Tier 1 carries labor hours, tier 2 carries dollars. Values are rounded
once, when the engine builds these models: money to cents, hours and
days to one decimal.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models.service_request import CollectionResult


class Tier1Result(BaseModel):
    """Labor hours for the whole quote."""

    base_hours: float = Field(default=0.0, ge=0, alias="baseHours")
    total_man_hours: float = Field(default=0.0, ge=0, alias="totalManHours")
    total_days: float = Field(default=0.0, ge=0, alias="totalDays")
    complexity_factor: float = Field(
        default=1.0,
        ge=0,
        alias="complexityFactor",
        description="Adjusted hours / base hours across generic services"
    )

    class Config:
        populate_by_name = True


class Tier2Result(BaseModel):
    """Cost breakdown for the whole quote."""

    labor_cost: float = Field(default=0.0, alias="laborCost")
    material_cost: float = Field(default=0.0, alias="materialCost")
    equipment_cost: float = Field(default=0.0, alias="equipmentCost")
    flat_additions: float = Field(default=0.0, alias="flatAdditions")
    special_services_cost: float = Field(
        default=0.0,
        alias="specialServicesCost",
        description="Irrigation and other special-schedule work"
    )
    subtotal: float = Field(default=0.0)
    profit: float = Field(default=0.0)
    total: float = Field(default=0.0)
    price_per_unit: Optional[float] = Field(
        default=None,
        alias="pricePerUnit",
        description="Set when every priced service shares one unit"
    )

    class Config:
        populate_by_name = True


class ServiceLineItem(BaseModel):
    """Per-service breakdown."""

    service_name: str = Field(..., alias="serviceName")
    quantity: float = Field(..., gt=0)
    unit: str
    row: int
    man_hours: float = Field(default=0.0, alias="manHours")
    labor_cost: float = Field(default=0.0, alias="laborCost")
    material_cost: float = Field(default=0.0, alias="materialCost")
    equipment_cost: float = Field(default=0.0, alias="equipmentCost")
    flat_additions: float = Field(default=0.0, alias="flatAdditions")
    profit: float = Field(default=0.0)
    total: float = Field(default=0.0)
    pricing_method: str = Field(
        default="two_tier",
        alias="pricingMethod",
        description="two_tier or special_schedule"
    )
    breakdown: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class PricingResult(BaseModel):
    """Final priced quote."""

    tier1: Tier1Result = Field(default_factory=Tier1Result)
    tier2: Tier2Result = Field(default_factory=Tier2Result)
    line_items: List[ServiceLineItem] = Field(default_factory=list, alias="lineItems")
    confidence: float = Field(default=0.0, ge=0, le=1)
    calculated_at: datetime = Field(default_factory=datetime.utcnow, alias="calculatedAt")

    class Config:
        populate_by_name = True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys for API responses."""
        return self.model_dump(by_alias=True, mode="json")


class QuoteOutcome(BaseModel):
    """Collection result plus pricing when the request was ready."""

    collection: CollectionResult
    pricing: Optional[PricingResult] = Field(default=None)

    class Config:
        populate_by_name = True

    @property
    def is_priced(self) -> bool:
        return self.pricing is not None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
