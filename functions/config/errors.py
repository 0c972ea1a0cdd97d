"""LandQuote error handling.

Custom exceptions and error codes for the quoting pipeline.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_SCHEMA = "INVALID_SCHEMA"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"

    # Business Outcomes (2xxx) - reported, never raised by recognition
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    INCOMPLETE = "INCOMPLETE"

    # Pricing Errors (3xxx)
    NOT_READY_FOR_PRICING = "NOT_READY_FOR_PRICING"
    INVALID_EFFECT_CONFIG = "INVALID_EFFECT_CONFIG"
    PRICING_FAILED = "PRICING_FAILED"

    # Configuration Errors (4xxx)
    CONFIG_UNAVAILABLE = "CONFIG_UNAVAILABLE"
    INVALID_CATALOG = "INVALID_CATALOG"

    # Firestore Errors (5xxx)
    FIRESTORE_ERROR = "FIRESTORE_ERROR"

    # LLM Errors (6xxx)
    LLM_ERROR = "LLM_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_CONTEXT_TOO_LONG = "LLM_CONTEXT_TOO_LONG"


class LandQuoteError(Exception):
    """Base exception for LandQuote errors.

    Provides structured error information for API responses.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize LandQuoteError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"LandQuoteError(code={self.code!r}, message={self.message!r})"


class ValidationError(LandQuoteError):
    """Validation-specific error."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )


class ConfigUnavailableError(LandQuoteError):
    """Service catalog or pricing configuration could not be loaded.

    Fatal for the request that triggered the load.
    """

    def __init__(
        self,
        message: str,
        company_id: Optional[str] = None,
        resource: Optional[str] = None,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=ErrorCode.CONFIG_UNAVAILABLE,
            message=message,
            details={
                **(details or {}),
                "company_id": company_id,
                "resource": resource
            }
        )
        self.company_id = company_id
        self.resource = resource


class NotReadyForPricingError(LandQuoteError):
    """Pricing was requested for a service set that is not complete."""

    def __init__(
        self,
        message: str,
        missing_info: Optional[list] = None,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=ErrorCode.NOT_READY_FOR_PRICING,
            message=message,
            details={**(details or {}), "missing_info": missing_info or []}
        )
        self.missing_info = missing_info or []


class EffectConfigurationError(LandQuoteError):
    """Variable configuration references an unknown effect or option."""

    def __init__(
        self,
        message: str,
        variable: Optional[str] = None,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=ErrorCode.INVALID_EFFECT_CONFIG,
            message=message,
            details={**(details or {}), "variable": variable}
        )
        self.variable = variable


class CatalogError(LandQuoteError):
    """Service catalog data violates a structural rule."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.INVALID_CATALOG,
            message=message,
            details=details
        )
