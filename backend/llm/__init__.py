"""LLM post-processing of scraped content."""

from backend.llm.client import LLMError, ProcessedContent, process_content
from backend.llm.retry import describe_llm_error, process_with_retry

__all__ = [
    "LLMError",
    "ProcessedContent",
    "process_content",
    "process_with_retry",
    "describe_llm_error",
]
