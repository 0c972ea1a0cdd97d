"""AI validation patch models for LandQuote.

Shape of the advisory JSON the AI clarification collaborator returns:
{validated_services: [...], missed_services: [...], validation_confidence}.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PatchedService(BaseModel):
    """One service as the AI validator sees it."""

    service_name: str = Field(..., min_length=1)
    quantity: float = Field(default=0.0, ge=0)
    unit: Optional[str] = Field(default=None)
    confidence: float = Field(default=0.8, ge=0, le=1)


class ValidationPatch(BaseModel):
    """Advisory corrections to the deterministic recognizer output."""

    validated_services: List[PatchedService] = Field(default_factory=list)
    missed_services: List[str] = Field(default_factory=list)
    validation_confidence: float = Field(default=0.8, ge=0, le=1)

    @field_validator("missed_services", mode="before")
    @classmethod
    def coerce_missed_services(cls, value):
        """Accept names or {service_name: ...} objects."""
        if value is None:
            return []
        names = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("service_name") or item.get("name")
            if item:
                names.append(str(item))
        return names
