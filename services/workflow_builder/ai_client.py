"""
AI Client for the Enterprise Workflow Builder

Handles Claude Messages API calls for every pipeline stage. Rate-limited and
server-side failures are retried here with exponential backoff (honouring
Retry-After); everything else surfaces as UpstreamCallError. The pipeline
itself never retries.

Any object exposing an async ``complete(system_prompt, user_prompt,
max_tokens, temperature, stage=None) -> LLMResponse`` can stand in for AIClient.
"""

import asyncio
import time
import uuid
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from httpx import HTTPStatusError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from core.config import settings
from core.logging_config import get_logger, get_llm_logger
from .errors import UpstreamCallError
from .rate_limiter import TokenBucketRateLimiter, get_global_rate_limiter

logger = get_logger(__name__)
llm_logger = get_llm_logger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504, 529}


@dataclass
class LLMResponse:
    """Text returned by one LLM call plus the metadata the stages care about"""
    text: str
    stop_reason: Optional[str] = None
    model: Optional[str] = None
    request_id: Optional[str] = None
    usage: Dict[str, Any] = field(default_factory=dict)

    @property
    def hit_token_limit(self) -> bool:
        return self.stop_reason == "max_tokens"


def _is_retryable(exception: BaseException) -> bool:
    return (
        isinstance(exception, HTTPStatusError)
        and exception.response.status_code in RETRYABLE_STATUS_CODES
    )


def _retry_after_seconds(exception: Optional[BaseException]) -> Optional[float]:
    """Seconds requested by a Retry-After header, when present and numeric"""
    if not isinstance(exception, HTTPStatusError):
        return None
    value = exception.response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class AIClient:
    """
    Client for interacting with Claude AI API.

    Responsibilities:
    - Making Claude API calls with per-stage token budgets
    - Waiting on the process-wide rate limiter
    - Retrying 429 and 5xx responses with backoff
    - Translating transport failures into UpstreamCallError
    """

    def __init__(
        self,
        anthropic_api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep=asyncio.sleep,
    ):
        self.anthropic_api_key = anthropic_api_key or settings.anthropic_api_key
        self.claude_model = model or settings.anthropic_model
        self.base_url = base_url or settings.anthropic_base_url
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self.max_attempts = max(1, max_attempts if max_attempts is not None else settings.llm_max_attempts)

        self.base_delay = settings.claude_rate_limit_delay
        self.max_delay = settings.max_rate_limit_delay
        self._backoff = wait_exponential(multiplier=self.base_delay, min=self.base_delay, max=self.max_delay)

        self._rate_limiter = rate_limiter
        self._transport = transport
        self._sleep = sleep
        self.request_count = 0

        if not self.anthropic_api_key:
            logger.warning("No Anthropic API key provided - AI client will not function")

    @property
    def rate_limiter(self) -> TokenBucketRateLimiter:
        return self._rate_limiter or get_global_rate_limiter()

    def is_configured(self) -> bool:
        return bool(self.anthropic_api_key)

    def get_model_info(self) -> dict:
        return {
            "model": self.claude_model,
            "base_url": self.base_url,
            "configured": self.is_configured(),
            "max_attempts": self.max_attempts,
            "timeout": self.timeout
        }

    def _retry_wait(self, retry_state) -> float:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after = _retry_after_seconds(exception)
        if retry_after is not None:
            logger.warning(f"Claude API asked to retry after {retry_after}s")
            return min(retry_after, self.max_delay)
        return self._backoff(retry_state)

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.anthropic_api_key,
            "anthropic-version": settings.anthropic_version
        }

        await self.rate_limiter.wait_for_token()
        self.request_count += 1

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.base_url, headers=headers, json=payload)

        if response.status_code == 429:
            self.rate_limiter.record_rate_limit()
        response.raise_for_status()

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Claude API returned a non-JSON body: {response.text[:200]}")
            raise UpstreamCallError(
                f"Claude API returned a non-JSON body: {response.text[:300]}",
                status_code=response.status_code
            ) from e
        if not isinstance(body, dict):
            logger.error(f"Claude API returned a {type(body).__name__} instead of an object")
            raise UpstreamCallError(
                f"Unexpected Claude API response shape: expected an object, got {type(body).__name__}",
                status_code=response.status_code
            )
        return body

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
        stage: Optional[str] = None,
    ) -> LLMResponse:
        """
        Send one system + user prompt pair to Claude.

        Args:
            system_prompt: Stage instructions
            user_prompt: Request-specific content
            max_tokens: Output token budget for this call
            temperature: Sampling temperature
            stage: Stage name, used only for logging

        Returns:
            LLMResponse with the concatenated text blocks and stop_reason

        Raises:
            UpstreamCallError: the call failed after any permitted retries
        """
        if not self.anthropic_api_key:
            raise UpstreamCallError("Anthropic API key is required for Claude access")

        request_id = str(uuid.uuid4())[:8]
        payload = {
            "model": self.claude_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": [
                {
                    "role": "user",
                    "content": user_prompt
                }
            ]
        }

        llm_logger.log_llm_request(
            model=self.claude_model,
            prompt=user_prompt,
            request_id=request_id,
            stage=stage,
            max_tokens=max_tokens
        )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.INFO),
            sleep=self._sleep,
            reraise=True
        )

        start_time = time.time()
        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._post(payload)
        except HTTPStatusError as e:
            status = e.response.status_code
            llm_logger.log_llm_error(self.claude_model, f"HTTP {status}", request_id)
            raise UpstreamCallError(
                f"Claude API returned HTTP {status}: {e.response.text[:300]}",
                status_code=status,
                retryable=status in RETRYABLE_STATUS_CODES
            ) from e
        except httpx.TimeoutException as e:
            llm_logger.log_llm_error(self.claude_model, f"timeout: {e}", request_id)
            raise UpstreamCallError(
                f"Claude API call timed out after {self.timeout}s", retryable=True
            ) from e
        except httpx.HTTPError as e:
            llm_logger.log_llm_error(self.claude_model, f"connection error: {e}", request_id)
            raise UpstreamCallError(f"Connection error to Claude API: {e}", retryable=True) from e

        duration_ms = (time.time() - start_time) * 1000

        try:
            blocks = result["content"]
            text = "".join(block.get("text", "") for block in blocks if block.get("type") == "text")
        except (KeyError, TypeError, AttributeError) as e:
            llm_logger.log_llm_error(self.claude_model, "unexpected response shape", request_id)
            raise UpstreamCallError(f"Unexpected Claude API response shape: {e}") from e

        response = LLMResponse(
            text=text,
            stop_reason=result.get("stop_reason"),
            model=result.get("model", self.claude_model),
            request_id=result.get("id", request_id),
            usage=result.get("usage") or {}
        )

        llm_logger.log_llm_response(
            model=self.claude_model,
            response=text,
            request_id=request_id,
            duration_ms=duration_ms,
            stop_reason=response.stop_reason
        )
        return response
