"""LLM post-processing through Groq's OpenAI-compatible chat API.

The scraper never depends on this module; it only receives whatever content
the caller hands over (usually a trimmed :class:`NormalizedPage` dict) plus
free-text instructions.

Configure via ``GROQ_API_KEY``, ``GROQ_MODEL`` and ``GROQ_BASE_URL``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from backend.config import settings

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = "You are a helpful assistant that processes and structures web content."


class LLMError(Exception):
    """The LLM API could not be reached or answered with an error."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        retryable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        if retryable is None:
            retryable = status is None or status == 429 or status >= 500
        self.retryable = retryable


@dataclass
class ProcessedContent:
    raw: str
    structured: Optional[Any] = None
    text: Optional[str] = None
    usage: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"raw": self.raw, "usage": self.usage}
        if self.structured is not None:
            data["structured"] = self.structured
        else:
            data["text"] = self.text
        return data


def _build_prompt(content: Any, instructions: str) -> str:
    body = json.dumps(content, indent=2, default=str) if not isinstance(content, str) else content
    return (
        "You are a web scraping assistant that helps extract and structure data "
        "from web content.\n\n"
        f"CONTENT:\n{body}\n\n"
        f"INSTRUCTIONS:\n{instructions}\n\n"
        "Please process the content according to the instructions and provide a "
        "structured response."
    )


def _interpret(reply: str, usage: dict[str, Any]) -> ProcessedContent:
    """Parse *reply* as JSON when it looks like JSON, else keep it as text."""
    stripped = reply.strip()
    if stripped.startswith(("{", "[")):
        try:
            return ProcessedContent(raw=reply, structured=json.loads(stripped), usage=usage)
        except json.JSONDecodeError:
            logger.debug("reply looked like JSON but did not parse; returning text")
    return ProcessedContent(raw=reply, text=reply, usage=usage)


def process_content(
    content: Any,
    instructions: str,
    *,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
) -> ProcessedContent:
    """Send *content* and *instructions* to the LLM and return its answer.

    Raises:
        LLMError: If no API key is configured, the request fails, or the API
            returns a non-2xx status.
    """
    key = api_key or settings.groq_api_key
    if not key:
        raise LLMError("GROQ_API_KEY environment variable is not set", retryable=False)

    payload = {
        "model": model or settings.groq_model,
        "messages": [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": _build_prompt(content, instructions)},
        ],
        "temperature": 0.2,
        "max_tokens": 4000,
    }

    try:
        with httpx.Client(timeout=settings.llm_timeout) as client:
            response = client.post(
                f"{settings.groq_base_url.rstrip('/')}/chat/completions",
                headers={"Authorization": f"Bearer {key}"},
                json=payload,
            )
    except httpx.TimeoutException as exc:
        raise LLMError(f"LLM request timeout: {exc}") from exc
    except httpx.HTTPError as exc:
        raise LLMError(f"LLM request failed: {exc}") from exc

    if not response.is_success:
        raise LLMError(
            f"LLM API error: {response.status_code} {response.reason_phrase} - {response.text[:500]}",
            status=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise LLMError(
            "LLM API returned an invalid response", status=response.status_code, retryable=True
        ) from exc
    if not isinstance(data, dict):
        raise LLMError(
            "LLM API returned an invalid response", status=response.status_code, retryable=True
        )

    choices = data.get("choices") or []
    reply = (choices[0].get("message") or {}).get("content", "") if choices else ""
    return _interpret(reply or "", data.get("usage") or {})
