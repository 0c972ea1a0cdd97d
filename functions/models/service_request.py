"""Recognition and collection models for LandQuote.

Data passed between the recognizer (ServiceMappingEngine), the validator
(ParameterCollectorService) and the pricing engine.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class CollectionStatus(str, Enum):
    """Readiness of a collected service set."""

    INCOMPLETE = "incomplete"
    READY_FOR_PRICING = "ready_for_pricing"


# =============================================================================
# RECOGNIZER OUTPUT
# =============================================================================


class RawService(BaseModel):
    """One detected service mention, before validation."""

    name: str = Field(..., description="Canonical service name")
    quantity: float = Field(default=0.0, ge=0, description="Extracted quantity (0 = not found)")
    unit: str = Field(..., description="Service unit")
    confidence: float = Field(..., ge=0, le=1, description="Recognition confidence")
    original_text: str = Field(
        default="",
        alias="originalText",
        description="Segment the service was recognized in"
    )
    implicit_unit: bool = Field(
        default=False,
        alias="implicitUnit",
        description="Quantity came from a bare number with the unit assumed"
    )

    class Config:
        populate_by_name = True


class ServiceMappingResult(BaseModel):
    """Recognizer output for a whole message."""

    services: List[RawService] = Field(default_factory=list)
    unmapped_text: List[str] = Field(
        default_factory=list,
        alias="unmappedText",
        description="Segments that matched no service"
    )
    confidence: float = Field(default=0.0, ge=0, le=1)

    class Config:
        populate_by_name = True


# =============================================================================
# VALIDATOR OUTPUT
# =============================================================================


class ZoneCounts(BaseModel):
    """Irrigation zone breakdown."""

    turf: int = Field(default=0, ge=0)
    drip: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)


class SpecialRequirements(BaseModel):
    """Category-specific sub-fields parsed for special services."""

    zones: Optional[ZoneCounts] = Field(default=None)
    boring: Optional[bool] = Field(
        default=None,
        description="Boring under hardscape required; None = not stated"
    )
    setup_required: bool = Field(default=False, alias="setupRequired")
    extra: Dict[str, Any] = Field(
        default_factory=dict,
        description="Fields parsed by handlers for other special categories"
    )

    class Config:
        populate_by_name = True


class ValidatedService(RawService):
    """RawService with completeness information."""

    is_complete: bool = Field(default=False, alias="isComplete")
    missing_info: List[str] = Field(default_factory=list, alias="missingInfo")
    questions: List[str] = Field(default_factory=list)


class ExtractedService(ValidatedService):
    """ValidatedService bound to its catalog entry."""

    row: int = Field(..., ge=1, description="Legacy spreadsheet row key")
    category: str = Field(..., description="Service category")
    is_special: bool = Field(default=False, alias="isSpecial")
    special_requirements: Optional[SpecialRequirements] = Field(
        default=None,
        alias="specialRequirements"
    )

    def summary(self) -> str:
        """One-line human-readable description."""
        quantity = f"{self.quantity:g}" if self.quantity else "?"
        return f"{self.name}: {quantity} {self.unit}"


class CollectionResult(BaseModel):
    """Validator output handed to the caller and the pricing engine."""

    status: CollectionStatus = Field(default=CollectionStatus.INCOMPLETE)
    services: List[ExtractedService] = Field(default_factory=list)
    missing_info: List[str] = Field(default_factory=list, alias="missingInfo")
    clarifying_questions: List[str] = Field(default_factory=list, alias="clarifyingQuestions")
    confidence: float = Field(default=0.0, ge=0, le=1)
    suggested_response: str = Field(default="", alias="suggestedResponse")
    unmapped_text: List[str] = Field(default_factory=list, alias="unmappedText")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def validate_ready_state(self) -> "CollectionResult":
        """A ready result can carry no missing information."""
        if self.status == CollectionStatus.READY_FOR_PRICING and self.missing_info:
            raise ValueError("ready_for_pricing result cannot list missing_info")
        return self

    @property
    def is_ready(self) -> bool:
        return self.status == CollectionStatus.READY_FOR_PRICING

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys for API responses."""
        return self.model_dump(by_alias=True, mode="json")
