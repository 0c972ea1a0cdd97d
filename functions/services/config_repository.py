"""Configuration reads for LandQuote.

ConfigRepository is the read interface the pipeline uses for the service
catalog and pricing configuration. Implementations:

- StaticConfigRepository: built-in defaults (or injected objects).
- FirestoreConfigRepository: per-company documents in Firestore.
- CachedConfigRepository: read-through cache over another repository,
  backed by a process-wide ConfigCache with explicit invalidation.

Any failure to load configuration surfaces as ConfigUnavailableError.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import structlog
from pydantic import ValidationError as PydanticValidationError

from config.errors import (
    ConfigUnavailableError,
    EffectConfigurationError,
    LandQuoteError,
)
from models.pricing_config import (
    CompanyPricingConfig,
    IrrigationRateSchedule,
    ServicePricingConfig,
    VariableConfig,
)
from models.service_catalog import ServiceCatalog, ServiceConfig, SynonymTable
from services.catalog_data import (
    build_default_catalog,
    build_default_pricing_config,
    canonical_synonyms,
)
from services.firestore_service import FirestoreService

logger = structlog.get_logger()


class ConfigRepository(ABC):
    """Read-only access to catalog and pricing configuration."""

    @abstractmethod
    async def get_service_catalog(self, company_id: str) -> ServiceCatalog:
        """Catalog with synonyms for a company.

        Raises:
            ConfigUnavailableError: If the catalog cannot be loaded.
        """

    @abstractmethod
    async def get_pricing_config(self, company_id: str) -> CompanyPricingConfig:
        """Rates, variables and special schedules for a company.

        Raises:
            ConfigUnavailableError: If the configuration cannot be loaded.
        """

    async def get_service_by_name(self, company_id: str, name: str) -> Optional[ServiceConfig]:
        catalog = await self.get_service_catalog(company_id)
        return catalog.get_service_by_name(name)

    async def get_synonyms(self, company_id: str) -> SynonymTable:
        catalog = await self.get_service_catalog(company_id)
        return catalog.get_synonyms()

    async def get_variable_config(
        self,
        company_id: str,
        service_name: Optional[str] = None
    ) -> VariableConfig:
        """Variable tree for a service, or the company default."""
        pricing = await self.get_pricing_config(company_id)
        if service_name is None:
            return pricing.default_service.variables
        return pricing.for_service(service_name).variables


# =============================================================================
# STATIC
# =============================================================================


class StaticConfigRepository(ConfigRepository):
    """Serves fixed objects; falls back to the built-in defaults."""

    def __init__(
        self,
        catalog: Optional[ServiceCatalog] = None,
        pricing_configs: Optional[Dict[str, CompanyPricingConfig]] = None
    ):
        self._catalog = catalog or build_default_catalog()
        self._pricing_configs = dict(pricing_configs or {})

    async def get_service_catalog(self, company_id: str) -> ServiceCatalog:
        return self._catalog

    async def get_pricing_config(self, company_id: str) -> CompanyPricingConfig:
        config = self._pricing_configs.get(company_id)
        if config is None:
            config = build_default_pricing_config(company_id)
            self._pricing_configs[company_id] = config
        return config


# =============================================================================
# FIRESTORE
# =============================================================================


_SERVICE_CONFIG_META_KEYS = {"id", "serviceName", "service_name", "variables", "irrigation"}


def parse_service_pricing_config(doc: Dict[str, Any]) -> ServicePricingConfig:
    """Build a ServicePricingConfig from a stored document.

    Raises:
        EffectConfigurationError: If the variable tree is malformed.
        pydantic.ValidationError: If base rates are invalid.
    """
    fields = {key: value for key, value in doc.items() if key not in _SERVICE_CONFIG_META_KEYS}
    fields["variables"] = VariableConfig.from_tree(doc.get("variables") or {})
    return ServicePricingConfig.model_validate(fields)


class FirestoreConfigRepository(ConfigRepository):
    """Reads companies/{id}/serviceCatalog and companies/{id}/pricingConfig."""

    def __init__(self, firestore_service: Optional[FirestoreService] = None):
        self.firestore = firestore_service or FirestoreService()

    async def get_service_catalog(self, company_id: str) -> ServiceCatalog:
        try:
            rows = await self.firestore.list_service_catalog(company_id)
        except LandQuoteError as e:
            raise ConfigUnavailableError(
                f"Service catalog unavailable for company {company_id}",
                company_id=company_id,
                resource="serviceCatalog",
                details={"cause": e.message}
            ) from e

        if not rows:
            raise ConfigUnavailableError(
                f"No service catalog configured for company {company_id}",
                company_id=company_id,
                resource="serviceCatalog"
            )

        synonyms = {
            row["name"]: list(row.get("synonyms") or [])
            for row in rows
            if row.get("name") and row.get("synonyms")
        }
        try:
            return ServiceCatalog.from_rows(rows, canonical_synonyms(synonyms))
        except (LandQuoteError, PydanticValidationError) as e:
            raise ConfigUnavailableError(
                f"Service catalog for company {company_id} is invalid",
                company_id=company_id,
                resource="serviceCatalog",
                details={"cause": str(e)[:500]}
            ) from e

    async def get_pricing_config(self, company_id: str) -> CompanyPricingConfig:
        try:
            docs = await self.firestore.list_pricing_config(company_id)
        except LandQuoteError as e:
            raise ConfigUnavailableError(
                f"Pricing configuration unavailable for company {company_id}",
                company_id=company_id,
                resource="pricingConfig",
                details={"cause": e.message}
            ) from e

        default_doc = next((doc for doc in docs if doc.get("id") == FirestoreService.DEFAULT_PRICING_DOC), None)
        if default_doc is None:
            raise ConfigUnavailableError(
                f"No default pricing configuration for company {company_id}",
                company_id=company_id,
                resource="pricingConfig"
            )

        try:
            services = {}
            for doc in docs:
                name = doc.get("serviceName") or doc.get("service_name")
                if doc is default_doc or not name:
                    continue
                services[name] = parse_service_pricing_config(doc)

            return CompanyPricingConfig(
                company_id=company_id,
                default_service=parse_service_pricing_config(default_doc),
                services=services,
                irrigation=IrrigationRateSchedule.model_validate(default_doc.get("irrigation") or {})
            )
        except EffectConfigurationError:
            raise
        except PydanticValidationError as e:
            raise ConfigUnavailableError(
                f"Pricing configuration for company {company_id} is invalid",
                company_id=company_id,
                resource="pricingConfig",
                details={"cause": str(e)[:500]}
            ) from e


# =============================================================================
# CACHE
# =============================================================================


class ConfigCache:
    """Process-wide cache keyed by (resource, company_id)."""

    def __init__(self):
        self._entries: Dict[Tuple[str, str], Any] = {}
        self._lock = threading.Lock()

    def get(self, resource: str, company_id: str) -> Optional[Any]:
        with self._lock:
            return self._entries.get((resource, company_id))

    def set(self, resource: str, company_id: str, value: Any) -> None:
        with self._lock:
            self._entries[(resource, company_id)] = value

    def invalidate(self, company_id: Optional[str] = None) -> int:
        """Drop entries for one company, or everything when company_id is None.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            if company_id is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                keys: List[Tuple[str, str]] = [key for key in self._entries if key[1] == company_id]
                for key in keys:
                    del self._entries[key]
                removed = len(keys)

        logger.info("config_cache_invalidated", company_id=company_id, removed=removed)
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


config_cache = ConfigCache()


class CachedConfigRepository(ConfigRepository):
    """Read-through cache over another repository."""

    RESOURCE_CATALOG = "serviceCatalog"
    RESOURCE_PRICING = "pricingConfig"

    def __init__(self, inner: ConfigRepository, cache: Optional[ConfigCache] = None):
        self.inner = inner
        self.cache = cache if cache is not None else config_cache

    async def get_service_catalog(self, company_id: str) -> ServiceCatalog:
        catalog = self.cache.get(self.RESOURCE_CATALOG, company_id)
        if catalog is None:
            catalog = await self.inner.get_service_catalog(company_id)
            self.cache.set(self.RESOURCE_CATALOG, company_id, catalog)
            logger.debug("config_cache_miss", resource=self.RESOURCE_CATALOG, company_id=company_id)
        return catalog

    async def get_pricing_config(self, company_id: str) -> CompanyPricingConfig:
        pricing = self.cache.get(self.RESOURCE_PRICING, company_id)
        if pricing is None:
            pricing = await self.inner.get_pricing_config(company_id)
            self.cache.set(self.RESOURCE_PRICING, company_id, pricing)
            logger.debug("config_cache_miss", resource=self.RESOURCE_PRICING, company_id=company_id)
        return pricing

    def invalidate(self, company_id: Optional[str] = None) -> int:
        return self.cache.invalidate(company_id)
