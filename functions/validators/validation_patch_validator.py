"""ValidationPatch parsing and validation.

Deserializes the AI validator's JSON into a typed ValidationPatch.

LENIENT MODE: entries that do not fit the schema are dropped one by one
instead of rejecting the whole patch. Strict validation can be enabled by
setting STRICT_VALIDATION = True.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
import structlog

from models.validation_patch import PatchedService, ValidationPatch

logger = structlog.get_logger(__name__)

# Set to True to reject any patch with an invalid entry
STRICT_VALIDATION = False


@dataclass
class PatchValidationResult:
    """Result of ValidationPatch validation."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    parsed: Optional[ValidationPatch] = None
    raw_data: Any = None


def parse_validation_patch(data: Dict[str, Any]) -> ValidationPatch:
    """Parse raw JSON into a typed ValidationPatch.

    Args:
        data: Raw dictionary from the AI validator

    Returns:
        Typed ValidationPatch object
    """
    return ValidationPatch.model_validate(data)


def validate_validation_patch(data: Any) -> PatchValidationResult:
    """Validate a ValidationPatch payload.

    In LENIENT mode (default):
    - Requires a dict
    - Drops validated_services entries that fail validation
    - Clamps validation_confidence into [0, 1]

    In STRICT mode:
    - Full Pydantic validation against ValidationPatch

    Args:
        data: Raw payload from the AI validator

    Returns:
        PatchValidationResult with is_valid, errors, and parsed object
    """
    if not isinstance(data, dict):
        return PatchValidationResult(
            is_valid=False,
            errors=["validation patch must be a dictionary"],
            raw_data=data
        )

    if STRICT_VALIDATION:
        try:
            parsed = parse_validation_patch(data)
            return PatchValidationResult(is_valid=True, parsed=parsed, raw_data=data)
        except PydanticValidationError as e:
            errors = [f"{err['loc']}: {err['msg']}" for err in e.errors()]
            return PatchValidationResult(is_valid=False, errors=errors, raw_data=data)

    errors: List[str] = []
    services: List[PatchedService] = []
    for index, entry in enumerate(data.get("validated_services") or []):
        try:
            services.append(PatchedService.model_validate(entry))
        except PydanticValidationError as e:
            errors.append(f"validated_services[{index}]: {e.errors()[0]['msg']}")

    try:
        confidence = float(data.get("validation_confidence", 0.8))
    except (TypeError, ValueError):
        errors.append("validation_confidence: not a number")
        confidence = 0.8
    confidence = min(max(confidence, 0.0), 1.0)

    try:
        parsed = ValidationPatch(
            validated_services=services,
            missed_services=data.get("missed_services") or [],
            validation_confidence=confidence
        )
    except PydanticValidationError as e:
        errors.extend(f"{err['loc']}: {err['msg']}" for err in e.errors())
        return PatchValidationResult(is_valid=False, errors=errors, raw_data=data)

    if errors:
        logger.warning("lenient_patch_entries_dropped", errors=errors)

    return PatchValidationResult(is_valid=True, errors=errors, parsed=parsed, raw_data=data)
