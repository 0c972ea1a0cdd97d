"""Cloud Function entry points for LandQuote.

Provides HTTP endpoints for:
- Collecting service parameters from a customer message (with follow-ups)
- Calculating a priced quote
- Invalidating cached company configuration
- Suggesting catalog services for partial input
"""

import asyncio
import json
import logging
from typing import Dict, Any, Optional
from datetime import datetime, date

import structlog
from firebase_functions import https_fn, options
from firebase_admin import initialize_app

from config.settings import settings
from config.errors import (
    LandQuoteError,
    ErrorCode,
    ValidationError,
    ConfigUnavailableError,
    NotReadyForPricingError,
)
from models.service_request import CollectionResult
from services.config_repository import CachedConfigRepository, FirestoreConfigRepository
from services.quote_pipeline import QuotePipeline

# Initialize Firebase Admin SDK
try:
    initialize_app()
except ValueError:
    # Already initialized
    pass

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        getattr(logging, settings.log_level.upper(), logging.INFO)
    )
)

logger = structlog.get_logger()

pipeline = QuotePipeline(repository=CachedConfigRepository(FirestoreConfigRepository()))

# ============================================================================
# Helper Functions
# ============================================================================


def success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """Build success response."""
    return {"success": True, "data": data}


def error_response(code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    """Build error response."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }


def status_for_error(error: LandQuoteError) -> int:
    """HTTP status for a pipeline error."""
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotReadyForPricingError):
        return 422
    if isinstance(error, ConfigUnavailableError):
        return 503
    return 500


def get_request_json(req: https_fn.Request) -> Dict[str, Any]:
    """Extract JSON from request body.

    Raises:
        ValidationError: If JSON is invalid.
    """
    try:
        return req.get_json(force=True) or {}
    except Exception as e:
        raise ValidationError(
            message=f"Invalid JSON in request body: {str(e)}"
        )


def get_company_id(data: Dict[str, Any]) -> str:
    """Extract companyId from the request body.

    Raises:
        ValidationError: If companyId is missing.
    """
    company_id = data.get("companyId")
    if not company_id:
        raise ValidationError(
            message="Missing companyId in request",
            field="companyId"
        )
    return company_id


def get_selections(data: Dict[str, Any]) -> Optional[Dict[str, Dict[str, Any]]]:
    """Extract request-level variable selections: group -> variable -> choice.

    Raises:
        ValidationError: If the nesting is wrong or a choice is not an
            option key or a number.
    """
    selections = data.get("selections")
    if selections is None:
        return None
    if not isinstance(selections, dict):
        raise ValidationError(
            message="selections must be an object",
            field="selections"
        )
    for group_name, chosen in selections.items():
        if not isinstance(chosen, dict):
            raise ValidationError(
                message=f"selections.{group_name} must be an object of variable choices",
                field=f"selections.{group_name}"
            )
        for key, value in chosen.items():
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise ValidationError(
                    message=f"selections.{group_name}.{key} must be an option key or a number",
                    field=f"selections.{group_name}.{key}"
                )
    return selections


def parse_previous_result(data: Dict[str, Any]) -> Optional[CollectionResult]:
    """Parse an earlier CollectionResult sent back with a follow-up answer.

    Raises:
        ValidationError: If the payload is not a valid CollectionResult.
    """
    previous = data.get("previousResult")
    if not previous:
        return None
    try:
        return CollectionResult.model_validate(previous)
    except Exception as e:
        raise ValidationError(
            message="Invalid previousResult",
            field="previousResult",
            details={"error": str(e)[:500]}
        )


def _handle_error(error: Exception, event: str) -> https_fn.Response:
    """Map an exception to a JSON error response."""
    if isinstance(error, LandQuoteError):
        status = status_for_error(error)
        if status >= 500:
            logger.error(event, error=error.message, code=error.code)
        else:
            logger.info(event, error=error.message, code=error.code)
        return _json_response(
            error_response(error.code, error.message, error.details),
            status=status
        )

    logger.exception(event, error=str(error))
    return _json_response(
        error_response(
            ErrorCode.PRICING_FAILED,
            f"Unexpected error: {str(error)}"
        ),
        status=500
    )


# ============================================================================
# Quote Endpoints
# ============================================================================


@https_fn.on_request(
    timeout_sec=60,
    memory=options.MemoryOption.MB_512,
    region="us-central1"
)
def collect_parameters(req: https_fn.Request) -> https_fn.Response:
    """Recognize services in a customer message and check completeness.

    Request body:
    {
        "companyId": "company-123",
        "message": "45 sq ft triple ground mulch and 3 feet metal edging",
        "previousResult": {...}  // Optional: CollectionResult from the last turn
    }

    Response:
    {
        "success": true,
        "data": {
            "status": "ready_for_pricing" | "incomplete",
            "services": [...],
            "clarifyingQuestions": [...],
            "suggestedResponse": "..."
        }
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        company_id = get_company_id(data)
        previous = parse_previous_result(data)

        logger.info(
            "collect_request_received",
            company_id=company_id,
            follow_up=previous is not None
        )

        result = asyncio.run(_collect_async(
            company_id=company_id,
            message=data.get("message"),
            previous=previous
        ))
        return _json_response(success_response(result))

    except Exception as e:
        return _handle_error(e, "collect_parameters_error")


async def _collect_async(
    company_id: str,
    message: Optional[str],
    previous: Optional[CollectionResult]
) -> Dict[str, Any]:
    if previous is not None:
        result = await pipeline.process_follow_up(message, previous, company_id)
    else:
        result = await pipeline.collect(message, company_id)
    return result.to_dict()


@https_fn.on_request(
    timeout_sec=60,
    memory=options.MemoryOption.MB_512,
    region="us-central1"
)
def calculate_quote(req: https_fn.Request) -> https_fn.Response:
    """Price a quote.

    Accepts either a ready CollectionResult from collect_parameters or a raw
    message. A message that needs clarification is returned unpriced with
    its questions.

    Request body:
    {
        "companyId": "company-123",
        "collection": {...},      // Ready CollectionResult, or
        "message": "...",         // raw customer message
        "selections": {"siteAccess": {"accessDifficulty": "moderate"}}  // Optional
    }

    Response:
    {
        "success": true,
        "data": {
            "collection": {...},
            "pricing": {"tier1": {...}, "tier2": {...}, "lineItems": [...]} | null
        }
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        company_id = get_company_id(data)
        selections = get_selections(data)

        collection_data = data.get("collection")
        if collection_data is not None:
            try:
                collection = CollectionResult.model_validate(collection_data)
            except Exception as e:
                raise ValidationError(
                    message="Invalid collection",
                    field="collection",
                    details={"error": str(e)[:500]}
                )
            result = asyncio.run(_price_async(company_id, collection, selections))
        else:
            result = asyncio.run(_quote_async(company_id, data.get("message"), selections))

        return _json_response(success_response(result))

    except Exception as e:
        return _handle_error(e, "calculate_quote_error")


async def _price_async(
    company_id: str,
    collection: CollectionResult,
    selections: Optional[Dict[str, Any]]
) -> Dict[str, Any]:
    pricing = await pipeline.price(collection, company_id, selections)
    return {"collection": collection.to_dict(), "pricing": pricing.to_dict()}


async def _quote_async(
    company_id: str,
    message: Optional[str],
    selections: Optional[Dict[str, Any]]
) -> Dict[str, Any]:
    outcome = await pipeline.quote(message, company_id, selections)
    return outcome.to_dict()


@https_fn.on_request(
    timeout_sec=30,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def suggest_services(req: https_fn.Request) -> https_fn.Response:
    """Suggest catalog services for partial input.

    Request body:
    {
        "companyId": "company-123",
        "partial": "mulch"
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        company_id = get_company_id(data)
        partial = data.get("partial") or ""

        suggestions = asyncio.run(pipeline.suggest_services(partial, company_id))
        return _json_response(success_response({"suggestions": suggestions}))

    except Exception as e:
        return _handle_error(e, "suggest_services_error")


# ============================================================================
# Admin Endpoints
# ============================================================================


@https_fn.on_request(
    timeout_sec=30,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def invalidate_config_cache(req: https_fn.Request) -> https_fn.Response:
    """Drop cached catalog and pricing configuration.

    Call after a company edits its catalog or rates. Omitting companyId
    clears every company.

    Request body:
    {
        "companyId": "company-123"  // Optional
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        company_id = data.get("companyId")
        removed = pipeline.repository.invalidate(company_id)
        return _json_response(success_response({
            "companyId": company_id,
            "removed": removed
        }))

    except Exception as e:
        return _handle_error(e, "invalidate_config_cache_error")


# ============================================================================
# Response Helpers
# ============================================================================


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "3600"
}


def _cors_response() -> https_fn.Response:
    """Return CORS preflight response."""
    return https_fn.Response(
        "",
        status=204,
        headers=CORS_HEADERS
    )


def _json_response(data: dict, status: int = 200) -> https_fn.Response:
    """Return JSON response with CORS headers."""

    def _json_default(o: Any):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return str(o)

    return https_fn.Response(
        json.dumps(data, default=_json_default),
        status=status,
        mimetype="application/json",
        headers=CORS_HEADERS
    )
