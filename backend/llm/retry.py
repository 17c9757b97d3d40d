"""Retry-with-backoff wrapper and user-facing error messages for LLM calls."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from backend.config import settings
from backend.llm.client import LLMError, ProcessedContent, process_content

logger = logging.getLogger(__name__)


def process_with_retry(
    content: Any,
    instructions: str,
    *,
    max_retries: Optional[int] = None,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    backoff_factor: float = 2.0,
) -> ProcessedContent:
    """Call :func:`process_content`, retrying failures with exponential backoff.

    Errors marked non-retryable (missing key, 4xx other than 429) stop the
    loop immediately.

    Raises:
        LLMError: After the last attempt fails.
    """
    retries = max(0, settings.llm_max_retries if max_retries is None else max_retries)
    delay = initial_delay
    attempts = 0
    last_error: Optional[LLMError] = None

    for attempt in range(retries + 1):
        attempts = attempt + 1
        if attempt > 0:
            logger.info("LLM retry %d/%d after %.1fs", attempt, retries, delay)
            time.sleep(delay)
            delay = min(delay * backoff_factor, max_delay)
        try:
            return process_content(content, instructions)
        except LLMError as exc:
            logger.warning("LLM attempt %d/%d failed: %s", attempt + 1, retries + 1, exc)
            last_error = exc
            if not exc.retryable:
                break

    if last_error is None:
        raise LLMError("LLM call was never attempted", retryable=False)
    raise LLMError(
        f"Failed after {attempts} attempts: {last_error}",
        status=last_error.status,
        retryable=False,
    ) from last_error


def describe_llm_error(exc: Exception) -> str:
    """Translate an LLM failure into a message fit for end users."""
    status = getattr(exc, "status", None)
    message = str(exc) or "Unknown error"
    if status == 401 or "401" in message:
        return "Authentication error: invalid API key or unauthorized access. Check GROQ_API_KEY."
    if status == 429 or "429" in message:
        return "Rate limit exceeded: too many requests to the LLM API. Please try again later."
    if (status is not None and status >= 500) or " 500" in message:
        return "LLM API server error: the service is experiencing issues. Please try again later."
    if "timeout" in message.lower():
        return "Request timeout: the LLM request took too long. Try again or reduce the content size."
    if "GROQ_API_KEY" in message:
        return message
    return f"LLM API error: {message}"
