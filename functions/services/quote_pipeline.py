"""Quote pipeline for LandQuote.

Wires the stages together for one company: loads the catalog and pricing
configuration through a ConfigRepository, runs the collector (normalizer,
recognizer, validator, optional AI pass) and prices ready results.
"""

import time
from typing import List, Optional

import structlog

from config.errors import LandQuoteError, ValidationError
from config.settings import settings
from models.pricing_config import Selections
from models.pricing_result import PricingResult, QuoteOutcome
from models.service_catalog import ServiceCatalog
from models.service_request import CollectionResult
from services.ai_validation_service import (
    LLMServiceValidator,
    NoopServiceValidator,
    ServiceValidator,
)
from services.config_repository import (
    CachedConfigRepository,
    ConfigRepository,
    StaticConfigRepository,
)
from services.parameter_collector import ParameterCollectorService
from services.pricing_engine import PricingEngine
from services.service_mapping_engine import ServiceMappingEngine
from utils.pipeline_logger import (
    log_clarification_needed,
    log_pipeline_complete,
    log_pipeline_failed,
    log_pipeline_start,
    log_stage_output,
)

logger = structlog.get_logger()


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _require_message(message: Optional[str]) -> str:
    if not message or not message.strip():
        raise ValidationError("message is required", field="message")
    return message


class QuotePipeline:
    """Entry point for collecting parameters and pricing quotes."""

    def __init__(
        self,
        repository: Optional[ConfigRepository] = None,
        validator: Optional[ServiceValidator] = None
    ):
        """Initialize QuotePipeline.

        Args:
            repository: Config source (default cached built-in defaults).
            validator: AI validator; when None, an LLM validator is used if
                settings.ai_validation_enabled, else the no-op validator.
        """
        self.repository = repository or CachedConfigRepository(StaticConfigRepository())
        self.validator = validator

    def _validator_for(self, catalog: ServiceCatalog) -> ServiceValidator:
        if self.validator is not None:
            return self.validator
        if settings.ai_validation_enabled:
            return LLMServiceValidator(catalog.get_all_services())
        return NoopServiceValidator()

    def build_collector(self, catalog: ServiceCatalog) -> ParameterCollectorService:
        """Collector configured with the thresholds from settings."""
        engine = ServiceMappingEngine(
            catalog,
            confidence_threshold=settings.recognition_confidence_threshold,
            implicit_unit_discount=settings.implicit_unit_discount
        )
        return ParameterCollectorService(
            catalog,
            mapping_engine=engine,
            validator=self._validator_for(catalog),
            recognition_threshold=settings.recognition_confidence_threshold,
            completion_threshold=settings.completion_threshold,
            special_service_discount=settings.special_service_discount,
            ai_failure_discount=settings.ai_failure_discount
        )

    # =========================================================================
    # STAGES
    # =========================================================================

    async def collect(self, message: str, company_id: str) -> CollectionResult:
        """Run recognition and validation for a message.

        Raises:
            ValidationError: If the message is empty.
            ConfigUnavailableError: If the catalog cannot be loaded.
        """
        message = _require_message(message)
        start = time.perf_counter()

        catalog = await self.repository.get_service_catalog(company_id)
        result = await self.build_collector(catalog).collect_parameters(message)

        log_stage_output("collect", company_id, result.to_dict(), _elapsed_ms(start))
        if not result.is_ready:
            log_clarification_needed(company_id, result.clarifying_questions, result.confidence)
        return result

    async def process_follow_up(
        self,
        message: str,
        previous: CollectionResult,
        company_id: str
    ) -> CollectionResult:
        """Combine a follow-up answer with the previous result and re-collect."""
        message = _require_message(message)
        catalog = await self.repository.get_service_catalog(company_id)
        result = await self.build_collector(catalog).process_follow_up(message, previous)
        logger.info(
            "follow_up_processed",
            company_id=company_id,
            status=result.status.value,
            service_count=len(result.services)
        )
        return result

    async def price(
        self,
        collection: CollectionResult,
        company_id: str,
        selections: Optional[Selections] = None
    ) -> PricingResult:
        """Price a ready collection.

        Raises:
            NotReadyForPricingError: If the collection is not priceable.
            ConfigUnavailableError: If configuration cannot be loaded.
        """
        start = time.perf_counter()
        catalog = await self.repository.get_service_catalog(company_id)
        pricing_config = await self.repository.get_pricing_config(company_id)

        result = PricingEngine(catalog).calculate(collection, pricing_config, selections)
        log_stage_output("price", company_id, result.to_dict(), _elapsed_ms(start))
        return result

    async def quote(
        self,
        message: str,
        company_id: str,
        selections: Optional[Selections] = None
    ) -> QuoteOutcome:
        """Collect and, when ready, price a message in one call.

        An incomplete collection is returned without pricing; the caller
        shows its clarifying questions.
        """
        start = time.perf_counter()
        log_pipeline_start(company_id, message or "")

        stage = "collect"
        try:
            collection = await self.collect(message, company_id)
            pricing = None
            if collection.is_ready:
                stage = "price"
                pricing = await self.price(collection, company_id, selections)
        except LandQuoteError as e:
            log_pipeline_failed(company_id, stage, e.message)
            raise

        log_pipeline_complete(
            company_id,
            collection.status.value,
            _elapsed_ms(start),
            total=pricing.tier2.total if pricing else None
        )
        return QuoteOutcome(collection=collection, pricing=pricing)

    async def suggest_services(self, partial: str, company_id: str) -> List[str]:
        """Up to five service names whose synonyms overlap `partial`."""
        catalog = await self.repository.get_service_catalog(company_id)
        return ServiceMappingEngine(catalog).get_service_suggestions(partial)
