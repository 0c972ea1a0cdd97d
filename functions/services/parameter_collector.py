"""Parameter collector for LandQuote.

Validator stage of the pipeline. Takes the recognizer output, checks each
service for completeness, binds it to its catalog entry, runs special
handlers (irrigation), applies the optional AI validation patch and
decides whether the set is ready for pricing.
"""

from typing import List, Optional, Tuple

import structlog

from models.service_catalog import ServiceCatalog
from models.service_request import (
    CollectionResult,
    CollectionStatus,
    ExtractedService,
    RawService,
    ServiceMappingResult,
    SpecialRequirements,
    ValidatedService,
)
from models.validation_patch import ValidationPatch
from services.ai_validation_service import NoopServiceValidator, ServiceValidator
from services.service_mapping_engine import ServiceMappingEngine
from services.special_requirements import SpecialRequirementsRegistry, default_registry
from services.text_normalizer import canonicalize_phrase
from services.unit_conversion import normalize_unit, units_are_compatible

logger = structlog.get_logger()


NO_SERVICES_MISSING = "No services identified"
NO_SERVICES_QUESTION = "Could you please specify what landscaping services you need?"
NO_SERVICES_RESPONSE = (
    "I need more information about the landscaping services you're looking for. "
    "Could you describe your project in more detail?"
)
MORE_DETAILS_QUESTION = "Could you provide more specific details about your project?"
READY_RESPONSE = "Great! I have all the information needed to provide your pricing."


def _dedupe(items: List[str]) -> List[str]:
    """Drop repeats, keeping first-seen order."""
    return list(dict.fromkeys(items))


class ParameterCollectorService:
    """Turns a message into a CollectionResult.

    Thresholds default to the class constants; the pipeline passes the
    values from settings.
    """

    RECOGNITION_THRESHOLD = 0.7
    COMPLETION_THRESHOLD = 0.85
    SPECIAL_SERVICE_DISCOUNT = 0.9
    AI_FAILURE_DISCOUNT = 0.9

    def __init__(
        self,
        catalog: ServiceCatalog,
        mapping_engine: Optional[ServiceMappingEngine] = None,
        validator: Optional[ServiceValidator] = None,
        registry: Optional[SpecialRequirementsRegistry] = None,
        recognition_threshold: Optional[float] = None,
        completion_threshold: Optional[float] = None,
        special_service_discount: Optional[float] = None,
        ai_failure_discount: Optional[float] = None
    ):
        """Initialize ParameterCollectorService.

        Args:
            catalog: Service catalog used for binding.
            mapping_engine: Recognizer (default built from the catalog).
            validator: AI validator (default no-op).
            registry: Special handlers by category (default irrigation).
            recognition_threshold: Minimum per-service confidence.
            completion_threshold: Minimum overall confidence to price.
            special_service_discount: Confidence factor for special services.
            ai_failure_discount: Confidence factor when the AI pass fails.
        """
        self.catalog = catalog
        self.recognition_threshold = (
            recognition_threshold if recognition_threshold is not None
            else self.RECOGNITION_THRESHOLD
        )
        self.completion_threshold = (
            completion_threshold if completion_threshold is not None
            else self.COMPLETION_THRESHOLD
        )
        self.special_service_discount = (
            special_service_discount if special_service_discount is not None
            else self.SPECIAL_SERVICE_DISCOUNT
        )
        self.ai_failure_discount = (
            ai_failure_discount if ai_failure_discount is not None
            else self.AI_FAILURE_DISCOUNT
        )
        self.mapping_engine = mapping_engine or ServiceMappingEngine(
            catalog, confidence_threshold=self.recognition_threshold
        )
        self.validator = validator or NoopServiceValidator()
        self.registry = registry or default_registry()

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    async def collect_parameters(self, message: str) -> CollectionResult:
        """Recognize, validate and assess one message.

        Args:
            message: Raw user text.

        Returns:
            CollectionResult; never raises for recognition problems.
        """
        return await self._collect(message, message)

    async def process_follow_up(
        self,
        message: str,
        previous: CollectionResult
    ) -> CollectionResult:
        """Collect again with the previous turn's services carried forward.

        Recognition runs on the previous services summary plus the new
        message. Special fields (zones, boring) are read from the new message
        only and merged over what the previous turn already knew. A service
        the new message does not name again keeps at most its previous
        confidence.
        """
        context = self.build_combined_context(previous, message)
        return await self._collect(context, message, previous)

    async def _collect(
        self,
        text: str,
        message: str,
        previous: Optional[CollectionResult] = None
    ) -> CollectionResult:
        mapping = self.mapping_engine.map_services(text)
        services = list(mapping.services)

        patch, ai_failed = await self._run_ai_validation(services, text)
        if patch is not None:
            services = self.apply_validation_patch(services, patch)

        extracted = []
        for raw in services:
            service = self.process_service(raw, message, previous)
            if service is not None:
                extracted.append(service)

        if previous is not None:
            extracted = self.cap_confidence(previous, extracted, message)
            extracted.extend(self.carry_forward(previous, extracted, message))

        result = self.assess_completion(mapping, extracted, patch, ai_failed)
        logger.info(
            "parameters_collected",
            status=result.status.value,
            service_count=len(result.services),
            missing_count=len(result.missing_info),
            confidence=result.confidence,
            follow_up=previous is not None
        )
        return result

    def carry_forward(
        self,
        previous: CollectionResult,
        current: List[ExtractedService],
        message: str
    ) -> List[ExtractedService]:
        """Previous services the new text did not mention, re-checked."""
        seen = {service.name for service in current}
        carried = []
        for prior in previous.services:
            if prior.name in seen:
                continue
            raw = RawService(**prior.model_dump(include=set(RawService.model_fields)))
            service = self.process_service(raw, message, previous, discount=False)
            if service is not None:
                carried.append(service)
                logger.debug("service_carried_forward", service=prior.name)
        return carried

    @staticmethod
    def build_combined_context(previous: CollectionResult, message: str) -> str:
        """Previous services as text the recognizer can read back."""
        understood = [
            f"{service.name} {service.quantity:g} {service.unit.replace('_', ' ')}"
            if service.quantity > 0 else service.name
            for service in previous.services
        ]
        context = "Previous services mentioned: "
        context += ", ".join(understood) if understood else "none clearly identified"
        return f"{context}\n\nNew message: {message}"

    # =========================================================================
    # PER-SERVICE STEPS
    # =========================================================================

    def validate_service(self, raw: RawService, check_quantity: bool = True) -> ValidatedService:
        """Completeness check: quantity > 0 and confidence above threshold."""
        missing_info: List[str] = []
        questions: List[str] = []

        if check_quantity and raw.quantity <= 0:
            missing_info.append(f"Quantity for {raw.name}")
            questions.append(f"How much {raw.name} do you need (in {raw.unit})?")

        if raw.confidence < self.recognition_threshold:
            missing_info.append(f"Confirmation of {raw.name}")
            questions.append(f'Did you mean {raw.name} for "{raw.original_text}"?')

        return ValidatedService(
            **raw.model_dump(),
            is_complete=not missing_info,
            missing_info=missing_info,
            questions=questions
        )

    def bind_service(self, validated: ValidatedService) -> Optional[ExtractedService]:
        """Attach catalog row/category; None when the name is not in the catalog."""
        config = self.catalog.get_service_by_name(validated.name)
        if config is None:
            logger.warning("service_not_in_catalog", service=validated.name)
            return None
        return ExtractedService(
            **validated.model_dump(),
            row=config.row,
            category=config.category.value,
            is_special=config.is_special
        )

    def process_service(
        self,
        raw: RawService,
        message: str,
        previous: Optional[CollectionResult] = None,
        discount: bool = True
    ) -> Optional[ExtractedService]:
        """Validate, bind and run the special handler for one service.

        Args:
            raw: Recognized (or carried) service.
            message: Text the special handler parses.
            previous: Earlier turn, for follow-ups.
            discount: Apply the special-service discount. Carried services
                already had it applied in the turn they were recognized.
        """
        config = self.catalog.get_service_by_name(raw.name)
        handler = None
        if config is not None and config.is_special:
            handler = self.registry.get(config.category)

        prior = None
        if previous is not None:
            prior = next((s for s in previous.services if s.name == raw.name), None)
        if prior is not None and raw.quantity <= 0 < prior.quantity:
            raw = raw.model_copy(update={
                "quantity": prior.quantity,
                "implicit_unit": prior.implicit_unit,
            })

        validated = self.validate_service(
            raw,
            check_quantity=not (handler is not None and handler.owns_quantity)
        )
        service = self.bind_service(validated)
        if service is None:
            return None

        if service.is_special:
            if handler is not None:
                requirements = self._previous_requirements(previous, service)
                service = handler.handle(service, message, requirements).service
            else:
                logger.warning(
                    "special_handler_missing",
                    service=service.name,
                    category=service.category
                )
            confidence = service.confidence
            if discount:
                confidence *= self.special_service_discount
            service = service.model_copy(update={
                "confidence": confidence,
                "is_complete": not service.missing_info and service.quantity > 0,
            })
        return service

    def _previous_requirements(
        self,
        previous: Optional[CollectionResult],
        service: ExtractedService
    ) -> Optional[SpecialRequirements]:
        """Special fields from the earlier turn: same service first, then same category."""
        if previous is None:
            return None
        candidates = []
        for prior in previous.services:
            config = self.catalog.get_service_by_name(prior.name)
            if prior.special_requirements is None or config is None:
                continue
            if config.category.value == service.category:
                candidates.append(prior)
        candidates.sort(key=lambda prior: prior.name != service.name)
        return candidates[0].special_requirements if candidates else None

    def cap_confidence(
        self,
        previous: CollectionResult,
        services: List[ExtractedService],
        message: str
    ) -> List[ExtractedService]:
        """Keep follow-up services at or below their previous confidence.

        A service the new message names again is scored on that mention.
        """
        prior_confidence = {prior.name: prior.confidence for prior in previous.services}
        restated = {raw.name for raw in self.mapping_engine.map_services(message).services}

        capped = []
        for service in services:
            ceiling = prior_confidence.get(service.name)
            if ceiling is not None and service.name not in restated and ceiling < service.confidence:
                service = service.model_copy(update={"confidence": ceiling})
            capped.append(service)
        return capped

    # =========================================================================
    # AI VALIDATION
    # =========================================================================

    async def _run_ai_validation(
        self,
        services: List[RawService],
        message: str
    ) -> Tuple[Optional[ValidationPatch], bool]:
        """Await the validator; any failure falls back to deterministic output."""
        try:
            return await self.validator.validate(services, message), False
        except Exception as e:
            logger.warning(
                "ai_validation_failed",
                error=str(e),
                error_type=type(e).__name__
            )
            return None, True

    def _resolve_service_name(self, name: str) -> Optional[str]:
        """Map an AI-supplied name to a catalog name."""
        if self.catalog.get_service_by_name(name) is not None:
            return name
        lowered = name.strip().lower()
        for service_name in self.catalog.get_all_services():
            if service_name.lower() == lowered:
                return service_name
        matches = [
            match for match in self.mapping_engine.find_service_matches(canonicalize_phrase(name))
            if match.confidence >= self.recognition_threshold
        ]
        return matches[0].service_name if matches else None

    def apply_validation_patch(
        self,
        services: List[RawService],
        patch: ValidationPatch
    ) -> List[RawService]:
        """Merge an AI patch into the recognizer output.

        Existing services can only lose confidence. Services the AI adds
        are capped at the patch's validation confidence.
        """
        by_name = {service.name: service for service in services}
        cap = patch.validation_confidence

        for entry in patch.validated_services:
            name = self._resolve_service_name(entry.service_name)
            if name is None:
                logger.info("ai_service_unresolved", service=entry.service_name)
                continue

            current = by_name.get(name)
            if current is not None:
                by_name[name] = current.model_copy(
                    update={"confidence": min(current.confidence, entry.confidence)}
                )
                continue

            unit = self.catalog.get_service_by_name(name).unit.value
            quantity = entry.quantity
            if entry.unit and not units_are_compatible(normalize_unit(entry.unit), unit):
                quantity = 0.0
            by_name[name] = RawService(
                name=name,
                quantity=quantity,
                unit=unit,
                confidence=min(entry.confidence, cap),
                original_text=entry.service_name
            )
            logger.info("ai_service_added", service=name, quantity=quantity)

        for missed in patch.missed_services:
            name = self._resolve_service_name(missed)
            if name is None or name in by_name:
                continue
            by_name[name] = RawService(
                name=name,
                quantity=0.0,
                unit=self.catalog.get_service_by_name(name).unit.value,
                confidence=cap,
                original_text=missed
            )
            logger.info("ai_service_added", service=name, quantity=0)

        return list(by_name.values())

    # =========================================================================
    # COMPLETION
    # =========================================================================

    def assess_completion(
        self,
        mapping: ServiceMappingResult,
        services: List[ExtractedService],
        patch: Optional[ValidationPatch] = None,
        ai_failed: bool = False
    ) -> CollectionResult:
        """Overall confidence, missing info and status for the service set."""
        if not services:
            return CollectionResult(
                status=CollectionStatus.INCOMPLETE,
                services=[],
                missing_info=[NO_SERVICES_MISSING],
                clarifying_questions=[NO_SERVICES_QUESTION],
                confidence=0.0,
                suggested_response=NO_SERVICES_RESPONSE,
                unmapped_text=mapping.unmapped_text
            )

        confidence = self.calculate_overall_confidence(mapping, services, patch, ai_failed)

        missing_info = _dedupe([item for service in services for item in service.missing_info])
        questions = _dedupe([question for service in services for question in service.questions])
        if confidence < self.completion_threshold:
            questions = _dedupe(questions + [MORE_DETAILS_QUESTION])

        ready = not missing_info and confidence >= self.completion_threshold
        return CollectionResult(
            status=CollectionStatus.READY_FOR_PRICING if ready else CollectionStatus.INCOMPLETE,
            services=services,
            missing_info=missing_info,
            clarifying_questions=questions,
            confidence=confidence,
            suggested_response=self.build_suggested_response(questions, services),
            unmapped_text=mapping.unmapped_text
        )

    def calculate_overall_confidence(
        self,
        mapping: ServiceMappingResult,
        services: List[ExtractedService],
        patch: Optional[ValidationPatch] = None,
        ai_failed: bool = False
    ) -> float:
        """Lowest of the recognizer, recomputed and AI confidences."""
        recomputed = self.mapping_engine.calculate_overall_confidence(
            [service.confidence for service in services]
        )
        candidates = [mapping.confidence, recomputed]
        if patch is not None:
            candidates.append(patch.validation_confidence)

        confidence = min(candidates)
        if ai_failed:
            confidence *= self.ai_failure_discount
        return confidence

    @staticmethod
    def build_suggested_response(questions: List[str], services: List[ExtractedService]) -> str:
        """Numbered questions followed by what was understood so far."""
        if not questions:
            return READY_RESPONSE

        lines = ["I need a few more details to give you accurate pricing:", ""]
        lines.extend(f"{index}. {question}" for index, question in enumerate(questions, start=1))
        if services:
            lines.extend(["", "So far I understand you need:"])
            lines.extend(f"- {service.summary()}" for service in services)
        return "\n".join(lines)
