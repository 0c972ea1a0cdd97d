"""Service catalog Pydantic models for LandQuote.

The catalog is reference data: every billable landscaping service with its
legacy row key, pricing unit and category, plus the synonym phrases the
recognizer matches against free text.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from config.errors import CatalogError


# =============================================================================
# ENUMS
# =============================================================================


class ServiceUnit(str, Enum):
    """Unit a service is priced in."""

    SQFT = "sqft"
    LINEAR_FEET = "linear_feet"
    EACH = "each"
    CUBIC_YARDS = "cubic_yards"
    SECTION = "section"
    SETUP = "setup"
    ZONE = "zone"


class ServiceCategory(str, Enum):
    """Catalog grouping of a service."""

    HARDSCAPE = "hardscape"
    DRAINAGE = "drainage"
    STRUCTURES = "structures"
    IRRIGATION = "irrigation"
    PLANTING = "planting"
    EDGING = "edging"
    MATERIALS = "materials"


# =============================================================================
# SERVICE CONFIG
# =============================================================================


class ServiceConfig(BaseModel):
    """One catalog entry.

    `row` addresses the service in the legacy estimating spreadsheet and must
    not change once published.
    """

    name: str = Field(..., min_length=1, description="Canonical service name")
    row: int = Field(..., ge=1, description="Legacy spreadsheet row key")
    unit: ServiceUnit = Field(..., description="Pricing unit")
    category: ServiceCategory = Field(..., description="Service category")
    is_special: bool = Field(
        default=False,
        alias="isSpecial",
        description="Requires category-specific handling (e.g. irrigation)"
    )

    class Config:
        populate_by_name = True
        frozen = True


# =============================================================================
# CATALOG
# =============================================================================


SynonymTable = Dict[str, List[str]]


class ServiceCatalog(BaseModel):
    """Read-only service catalog with its synonym table.

    Injected into the recognizer and validator; never held as module state.
    """

    services: Dict[str, ServiceConfig] = Field(
        default_factory=dict,
        description="Canonical name -> service config"
    )
    synonyms: SynonymTable = Field(
        default_factory=dict,
        description="Canonical name -> ordered synonym phrases"
    )

    class Config:
        frozen = True

    @model_validator(mode="after")
    def validate_synonyms(self) -> "ServiceCatalog":
        """A phrase may belong to one service only, and only to known services."""
        owners: Dict[str, str] = {}
        for service_name, phrases in self.synonyms.items():
            if service_name not in self.services:
                raise CatalogError(
                    f"Synonyms reference unknown service '{service_name}'",
                    details={"service": service_name}
                )
            for phrase in phrases:
                key = phrase.strip().lower()
                owner = owners.get(key)
                if owner is not None and owner != service_name:
                    raise CatalogError(
                        f"Synonym '{phrase}' is listed under both '{owner}' and '{service_name}'",
                        details={"synonym": phrase, "services": [owner, service_name]}
                    )
                owners[key] = service_name
        return self

    @classmethod
    def from_rows(
        cls,
        rows: List[Dict],
        synonyms: SynonymTable
    ) -> "ServiceCatalog":
        """Build a catalog from plain dict rows (Firestore or static data).

        Args:
            rows: Dicts with name/row/unit/category/isSpecial keys.
            synonyms: Canonical name -> synonym phrases.

        Returns:
            Validated ServiceCatalog.
        """
        services = {}
        for row in rows:
            config = ServiceConfig.model_validate(row)
            services[config.name] = config
        return cls(services=services, synonyms=synonyms)

    def get_service_by_name(self, name: str) -> Optional[ServiceConfig]:
        """Exact-name lookup; None when the service is not in the catalog."""
        return self.services.get(name)

    def get_synonyms(self) -> SynonymTable:
        """Return a copy of the synonym table."""
        return {name: list(phrases) for name, phrases in self.synonyms.items()}

    def is_special_service(self, name: str) -> bool:
        service = self.services.get(name)
        return bool(service and service.is_special)

    def get_all_services(self) -> List[str]:
        return list(self.services.keys())

    def get_services_by_category(self, category: ServiceCategory) -> List[str]:
        return [
            name for name, config in self.services.items()
            if config.category == category
        ]
