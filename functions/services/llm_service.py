"""LLM service for LandQuote.

Thin LangChain/OpenAI wrapper used by the AI validation pass.
"""

import json
from typing import Any, Dict, List, Optional

import structlog
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from config.errors import ErrorCode, LandQuoteError
from config.settings import settings

logger = structlog.get_logger()

JSON_INSTRUCTION = (
    "IMPORTANT: You MUST respond with valid JSON only. "
    "No markdown, no explanation, just JSON."
)


def strip_code_fences(content: str) -> str:
    """Remove a ```json ... ``` wrapper if the model added one."""
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    elif content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


def _is_rate_limit(error: BaseException) -> bool:
    message = str(error).lower()
    return "rate_limit" in message or "rate limit" in message


def _classify_error(error: Exception) -> LandQuoteError:
    message = str(error)
    lowered = message.lower()
    if _is_rate_limit(error):
        return LandQuoteError(
            code=ErrorCode.LLM_RATE_LIMIT,
            message="OpenAI rate limit exceeded",
            details={"original_error": message}
        )
    if "context_length" in lowered or "maximum context" in lowered:
        return LandQuoteError(
            code=ErrorCode.LLM_CONTEXT_TOO_LONG,
            message="Input too long for model context",
            details={"original_error": message}
        )
    return LandQuoteError(
        code=ErrorCode.LLM_ERROR,
        message=f"LLM generation failed: {message}",
        details={"original_error": message}
    )


class LLMService:
    """Async wrapper around ChatOpenAI with token tracking."""

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        api_key: Optional[str] = None,
        max_attempts: int = 3,
        retry_wait: float = 1.0
    ):
        """Initialize LLMService.

        Args:
            model: Model name (default from settings).
            temperature: Temperature (default from settings).
            api_key: OpenAI API key (default from settings).
            max_attempts: Calls per request when OpenAI rate limits us.
            retry_wait: Exponential backoff multiplier in seconds.
        """
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self.api_key = api_key or settings.openai_api_key
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait

        self._client: Optional[ChatOpenAI] = None
        self._total_tokens_used = 0

    @property
    def client(self) -> ChatOpenAI:
        """LangChain ChatOpenAI client (lazy initialization)."""
        if self._client is None:
            self._client = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self.api_key
            )
        return self._client

    @property
    def total_tokens_used(self) -> int:
        return self._total_tokens_used

    async def generate(
        self,
        messages: List[BaseMessage],
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate a response from the LLM.

        Args:
            messages: List of LangChain messages.
            max_tokens: Optional max tokens for response.

        Returns:
            Dict with content and tokens_used.

        Raises:
            LandQuoteError: If the LLM call fails.
        """
        kwargs = {}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.retry_wait, max=10),
                retry=retry_if_exception(_is_rate_limit),
                reraise=True
            ):
                with attempt:
                    response = await self.client.ainvoke(messages, **kwargs)
        except Exception as e:
            raise _classify_error(e) from e

        tokens_used = 0
        metadata = getattr(response, "response_metadata", None)
        if isinstance(metadata, dict):
            tokens_used = metadata.get("token_usage", {}).get("total_tokens", 0)
            self._total_tokens_used += tokens_used

        logger.info(
            "llm_generated",
            model=self.model,
            tokens_used=tokens_used,
            content_length=len(response.content)
        )
        return {"content": response.content, "tokens_used": tokens_used}

    async def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """Generate and parse a JSON response.

        Raises:
            LandQuoteError: If the call fails or the response is not JSON.
        """
        messages = [
            SystemMessage(content=f"{system_prompt}\n\n{JSON_INSTRUCTION}"),
            HumanMessage(content=user_message)
        ]
        result = await self.generate(messages, max_tokens)

        try:
            parsed = json.loads(strip_code_fences(result["content"]))
        except json.JSONDecodeError as e:
            raise LandQuoteError(
                code=ErrorCode.LLM_ERROR,
                message="LLM did not return valid JSON",
                details={
                    "parse_error": str(e),
                    "raw_content": result["content"][:500]
                }
            ) from e

        return {"content": parsed, "tokens_used": result["tokens_used"]}
