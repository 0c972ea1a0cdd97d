"""Stage Logger for the LandQuote Pipeline.

Prints framed banners for each pipeline stage so a quote can be followed
in a local log stream, and mirrors every banner as a structured event.
"""

import json
import structlog
from typing import Dict, Any, List, Optional
from datetime import datetime

logger = structlog.get_logger()

BANNER_WIDTH = 80
PIPELINE_BANNER_CHAR = "█"
STAGE_BANNER_CHAR = "═"
QUESTION_BANNER_CHAR = "·"


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _format_json(data: Dict[str, Any], indent: int = 2) -> str:
    try:
        return json.dumps(data, indent=indent, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(data)


def _truncate_message(message: str, max_length: int = 120) -> str:
    if len(message) <= max_length:
        return message
    return message[:max_length] + f"... [truncated {len(message) - max_length} chars]"


def log_pipeline_start(company_id: str, message: str) -> None:
    """Log the start of a quote request."""
    timestamp = datetime.utcnow().isoformat()

    print("\n")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(PIPELINE_BANNER_CHAR, "LANDQUOTE PIPELINE STARTED"))
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Company ID : {company_id}")
    print(f"║ Timestamp  : {timestamp}")
    print(f"║ Message    : {_truncate_message(message)}")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)

    logger.info("pipeline_start_logged", company_id=company_id, message_length=len(message))


def log_stage_output(
    stage: str,
    company_id: str,
    output: Dict[str, Any],
    duration_ms: int = 0
) -> None:
    """Log one stage's output."""
    print("\n")
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(STAGE_BANNER_CHAR, f"✓ STAGE OUTPUT: {stage.upper()}"))
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Company ID : {company_id}")
    print(f"║ Duration   : {duration_ms:,} ms")
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)
    for line in _format_json(output).split("\n"):
        print(f"  {line}")
    print(STAGE_BANNER_CHAR * BANNER_WIDTH)

    logger.info(
        "stage_output_logged",
        stage=stage,
        company_id=company_id,
        duration_ms=duration_ms,
        output_keys=list(output.keys()) if isinstance(output, dict) else None
    )


def log_clarification_needed(company_id: str, questions: List[str], confidence: float) -> None:
    """Log the questions returned for an incomplete request."""
    print("\n")
    print(QUESTION_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(QUESTION_BANNER_CHAR, "CLARIFICATION NEEDED"))
    print(QUESTION_BANNER_CHAR * BANNER_WIDTH)
    print(f"· Company ID : {company_id}")
    print(f"· Confidence : {confidence:.2f}")
    for question in questions:
        print(f"·   ? {question}")
    print(QUESTION_BANNER_CHAR * BANNER_WIDTH)

    logger.info(
        "clarification_needed_logged",
        company_id=company_id,
        question_count=len(questions),
        confidence=confidence
    )


def log_pipeline_complete(
    company_id: str,
    status: str,
    duration_ms: int,
    total: Optional[float] = None
) -> None:
    """Log pipeline completion with summary."""
    print("\n")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(PIPELINE_BANNER_CHAR, f"✓ PIPELINE COMPLETED: {status.upper()}"))
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Company ID : {company_id}")
    print(f"║ Duration   : {duration_ms:,} ms ({duration_ms / 1000:.2f}s)")
    if total is not None:
        print(f"║ Total      : ${total:,.2f}")
    print(PIPELINE_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "pipeline_complete_logged",
        company_id=company_id,
        status=status,
        duration_ms=duration_ms,
        total=total
    )


def log_pipeline_failed(company_id: str, stage: str, error: str) -> None:
    """Log pipeline failure with details."""
    print("\n")
    print("!" * BANNER_WIDTH)
    print(_create_banner("!", "✗ PIPELINE FAILED"))
    print("!" * BANNER_WIDTH)
    print(f"! Company ID : {company_id}")
    print(f"! Stage      : {stage}")
    print(f"! Error      : {error}")
    print("!" * BANNER_WIDTH)
    print("\n")

    logger.error(
        "pipeline_failed_logged",
        company_id=company_id,
        stage=stage,
        error=error
    )
