"""URL policy and request rate limiting."""

from backend.security.policy import UrlPolicy
from backend.security.ratelimit import RateLimitDecision, RateLimiter

__all__ = ["UrlPolicy", "RateLimiter", "RateLimitDecision"]
