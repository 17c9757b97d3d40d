"""Static HTTP fetcher plus the heuristic that decides when a page needs a browser."""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from backend.config import settings
from backend.scraper.models import FetchError, FetchErrorKind, FetchResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SPA / JS-rendered page detection heuristics
# ---------------------------------------------------------------------------
_SPA_PATTERNS = [
    re.compile(r'<div[^>]+id=["\'](?:root|app|__next)["\']\s*>\s*</div>', re.IGNORECASE),
    re.compile(r"window\.__NEXT_DATA__", re.IGNORECASE),
    re.compile(r"ng-version=", re.IGNORECASE),
    re.compile(r"data-reactroot", re.IGNORECASE),
]


def _default_headers() -> dict[str, str]:
    return {"User-Agent": settings.user_agent}


def looks_like_spa(html: str) -> bool:
    """Return ``True`` if *html* looks like a JavaScript SPA that needs rendering."""
    for pattern in _SPA_PATTERNS:
        if pattern.search(html):
            return True
    # Heuristic: very little visible text relative to total HTML size.
    # Strip <script> and <style> blocks first so their source code doesn't
    # count as visible text, then strip remaining tags.
    no_scripts = re.sub(r"<(script|style)[^>]*>.*?</(script|style)>", "", html, flags=re.IGNORECASE | re.DOTALL)
    stripped = re.sub(r"<[^>]+>", "", no_scripts).strip()
    if len(html) > 2000 and len(stripped) < 200:
        return True
    return False


def fetch_static(url: str, *, timeout: Optional[float] = None) -> FetchResult:
    """Fetch *url* with a single GET and return a :class:`FetchResult`.

    No retries are attempted here; that policy belongs to the caller.

    Raises:
        FetchError: ``UNREACHABLE`` for non-2xx statuses and transport
            failures, ``TIMEOUT`` when the request exceeds *timeout*.
    """
    budget = timeout if timeout is not None else settings.request_timeout
    logger.debug("static fetch %s (timeout=%.1fs)", url, budget)

    try:
        with httpx.Client(
            headers=_default_headers(),
            timeout=budget,
            follow_redirects=True,
        ) as client:
            response = client.get(url)
    except httpx.TimeoutException as exc:
        raise FetchError(FetchErrorKind.TIMEOUT, f"Timed out fetching {url}: {exc}") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FetchError(FetchErrorKind.UNREACHABLE, f"Failed to fetch {url}: {exc}") from exc

    if not response.is_success:
        raise FetchError(
            FetchErrorKind.UNREACHABLE,
            f"Failed to fetch {url}: {response.status_code} {response.reason_phrase}",
            status=response.status_code,
        )

    return FetchResult(url=url, html=response.text, status_code=response.status_code)
