"""Scrape orchestration: policy check → cache → fetch → normalize → cache.

The service owns no global state.  Its cache and URL policy are handed in by
whoever constructs it (the FastAPI lifespan, the CLI, or a test).
"""

from __future__ import annotations

import logging
from time import time
from typing import Optional

from backend.cache import ResultCache
from backend.scraper import browser, fetcher
from backend.scraper.extractor import extract, normalize
from backend.scraper.models import ExtractedElement, FetchResult, ScrapeMode, ScrapeResult
from backend.security.policy import UrlPolicy

logger = logging.getLogger(__name__)


class UrlNotAllowed(Exception):
    """The URL policy refused the requested URL."""


def cache_key(url: str, wait_selector: Optional[str], mode: ScrapeMode) -> str:
    """Fingerprint identifying one acquisition request."""
    return f"scrape:{mode.value}:{url}:{wait_selector or ''}"


class ScrapeService:
    """Acquire and normalize pages, memoising results in a :class:`ResultCache`.

    Args:
        cache: Shared result cache.
        policy: URL allow/block list consulted before every fetch.
        ttl: Seconds a fresh result stays cached (``None`` → cache default).
    """

    def __init__(
        self,
        cache: ResultCache,
        policy: Optional[UrlPolicy] = None,
        ttl: Optional[float] = None,
    ) -> None:
        self.cache = cache
        self.policy = policy or UrlPolicy()
        self.ttl = ttl

    # ------------------------------------------------------------------
    # Acquisition strategies
    # ------------------------------------------------------------------
    def _acquire(
        self,
        url: str,
        wait_selector: Optional[str],
        mode: ScrapeMode,
        timeout: Optional[float],
    ) -> FetchResult:
        if mode is ScrapeMode.STATIC:
            return fetcher.fetch_static(url, timeout=timeout)
        if mode is ScrapeMode.RENDERED:
            return browser.fetch_rendered(url, wait_selector, timeout)
        if mode is ScrapeMode.STEALTH:
            return browser.fetch_rendered(url, wait_selector, timeout, stealth=True)

        raw = fetcher.fetch_static(url, timeout=timeout)
        if fetcher.looks_like_spa(raw.html):
            logger.info("%s looks script-rendered; switching to browser", url)
            return browser.fetch_rendered(url, wait_selector, timeout)
        if wait_selector and not extract(raw.html, wait_selector):
            logger.info("%r absent from static HTML of %s; switching to browser", wait_selector, url)
            return browser.fetch_rendered(url, wait_selector, timeout)
        return raw

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def scrape(
        self,
        url: str,
        wait_selector: Optional[str] = None,
        *,
        mode: ScrapeMode = ScrapeMode.AUTO,
        timeout: Optional[float] = None,
        use_cache: bool = True,
    ) -> ScrapeResult:
        """Return the normalized page for *url*.

        Raises:
            UrlNotAllowed: If the URL policy refuses *url*.
            FetchError: If acquisition fails (never retried here).
            ValueError: If *wait_selector* is not a valid CSS selector
                (``AUTO`` mode only, where it is checked against static HTML).
        """
        if not self.policy.is_allowed(url):
            raise UrlNotAllowed(f"URL is not allowed for scraping: {url}")

        key = cache_key(url, wait_selector, mode)
        if use_cache:
            hit = self.cache.get(key)
            if hit is not None:
                logger.info("cache hit for %s", url)
                return ScrapeResult(
                    url=hit.url,
                    mode=hit.mode,
                    page=hit.page,
                    fetched_at=hit.fetched_at,
                    screenshot=hit.screenshot,
                    cached=True,
                )

        logger.info("scraping %s (mode=%s)", url, mode.value)
        raw = self._acquire(url, wait_selector, mode, timeout)
        result = ScrapeResult(
            url=url,
            mode=mode,
            page=normalize(raw.html),
            fetched_at=int(time()),
            screenshot=raw.screenshot,
        )
        self.cache.set(key, result, self.ttl)
        return result

    def extract(
        self,
        url: str,
        selector: str,
        wait_selector: Optional[str] = None,
        *,
        mode: ScrapeMode = ScrapeMode.AUTO,
        timeout: Optional[float] = None,
    ) -> list[ExtractedElement]:
        """Scrape *url* (through the cache) and return the elements matching *selector*."""
        result = self.scrape(url, wait_selector, mode=mode, timeout=timeout)
        return extract(result.page.html, selector)
