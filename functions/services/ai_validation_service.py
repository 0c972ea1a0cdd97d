"""AI validation pass for LandQuote.

A secondary "did we miss a service" check over the deterministic
recognizer output. Validators are injected into the collector; the
default NoopServiceValidator keeps the pipeline fully offline.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import structlog

from config.errors import ErrorCode, LandQuoteError
from models.service_request import RawService
from models.validation_patch import ValidationPatch
from services.llm_service import LLMService
from validators.validation_patch_validator import validate_validation_patch

logger = structlog.get_logger()


VALIDATION_SYSTEM_PROMPT = """You validate landscaping service extraction.

Compare the user's request with the services already extracted and
identify anything missed. Focus on:
- Hardscape (patios, retaining walls, edging)
- Materials (mulch, topsoil, rock)
- Planting (trees, shrubs, sod)
- Irrigation (setup, zones)
- Drainage (downspouts, french drains)

Use exact service names from this list: {service_names}

Respond with JSON:
{{
  "validated_services": [
    {{"service_name": "exact name", "quantity": number, "unit": "sqft|linear_feet|each|...", "confidence": 0.0-1.0}}
  ],
  "missed_services": ["exact name"],
  "validation_confidence": 0.0-1.0
}}"""


def build_validation_prompt(services: List[RawService], message: str) -> str:
    """Compact user prompt: the request plus the current extraction."""
    extracted = ", ".join(
        f"{service.name}: {service.quantity:g} {service.unit}" for service in services
    )
    return (
        f'User Request: "{message}"\n\n'
        f"Currently Extracted: {extracted or 'None'}"
    )


class ServiceValidator(ABC):
    """Advisory validator interface."""

    @abstractmethod
    async def validate(
        self,
        services: List[RawService],
        message: str
    ) -> Optional[ValidationPatch]:
        """Return a patch for the extracted services, or None for no opinion.

        Raises:
            LandQuoteError: When the validator cannot produce a usable patch.
        """


class NoopServiceValidator(ServiceValidator):
    """Deterministic-only default: never patches anything."""

    async def validate(
        self,
        services: List[RawService],
        message: str
    ) -> Optional[ValidationPatch]:
        return None


class LLMServiceValidator(ServiceValidator):
    """Validator backed by an OpenAI chat model."""

    def __init__(
        self,
        service_names: List[str],
        llm_service: Optional[LLMService] = None
    ):
        """Initialize LLMServiceValidator.

        Args:
            service_names: Canonical catalog names the model may answer with.
            llm_service: LLM wrapper (default built from settings).
        """
        self.service_names = list(service_names)
        self.llm_service = llm_service or LLMService()

    async def validate(
        self,
        services: List[RawService],
        message: str
    ) -> Optional[ValidationPatch]:
        system_prompt = VALIDATION_SYSTEM_PROMPT.format(
            service_names=", ".join(self.service_names)
        )
        result = await self.llm_service.generate_json(
            system_prompt,
            build_validation_prompt(services, message)
        )

        validation = validate_validation_patch(result["content"])
        if not validation.is_valid:
            raise LandQuoteError(
                code=ErrorCode.LLM_ERROR,
                message="AI validation response did not match the expected schema",
                details={"errors": validation.errors}
            )

        patch = validation.parsed
        logger.info(
            "ai_validation_completed",
            validated_count=len(patch.validated_services),
            missed_count=len(patch.missed_services),
            validation_confidence=patch.validation_confidence,
            tokens_used=result["tokens_used"]
        )
        return patch
