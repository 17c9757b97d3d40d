"""Headless-browser fetcher for JavaScript-rendered pages.

Every call starts its own Playwright driver and Chromium process and tears
both down before returning, whatever the outcome.  Browsers are never shared
between calls: parallel fetches run parallel browsers.

Two flavours
------------
plain
    Desktop viewport + spoofed user agent, wait for network idle, optional
    selector wait, capture DOM and screenshot.

stealth
    Adds realistic request headers, rewrites the ``Referer`` of document/XHR
    requests through a header transform, pauses like a human after the page
    settles and scrolls down in small jittered steps to trigger lazy loading.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Mapping, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from backend.config import settings
from backend.scraper.models import FetchError, FetchErrorKind, FetchResult

logger = logging.getLogger(__name__)

# (headers, resource_type) -> replacement headers, or None to pass through.
HeaderTransform = Callable[[Mapping[str, str], str], Optional[dict[str, str]]]

SEARCH_REFERER = "https://www.google.com/"

_VIEWPORT = {"width": 1280, "height": 800}
_STEALTH_VIEWPORT = {"width": 1920, "height": 1080}

_LAUNCH_ARGS = ["--disable-dev-shm-usage"]
_STEALTH_LAUNCH_ARGS = _LAUNCH_ARGS + [
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
    "--window-size=1920,1080",
]

_STEALTH_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Upgrade-Insecure-Requests": "1",
}

# Resource types whose headers the default stealth transform rewrites.
_REFERER_RESOURCE_TYPES = frozenset({"document", "xhr"})

# Jittered pauses, in seconds.
_SETTLE_PAUSE = (1.0, 2.0)
_SCROLL_PAUSE = (0.1, 0.3)


# ---------------------------------------------------------------------------
# Header transforms
# ---------------------------------------------------------------------------

def add_search_referer(headers: Mapping[str, str], resource_type: str) -> Optional[dict[str, str]]:
    """Pretend document and XHR requests were reached from a search page."""
    if resource_type not in _REFERER_RESOURCE_TYPES:
        return None
    return {**headers, "referer": SEARCH_REFERER}


def _install_header_transform(page: Any, transform: HeaderTransform) -> None:
    """Route every outbound request through *transform* before it is sent."""

    def _handle(route: Any) -> None:
        request = route.request
        headers = transform(request.headers, request.resource_type)
        if headers is None:
            route.continue_()
        else:
            route.continue_(headers=headers)

    page.route("**/*", _handle)


# ---------------------------------------------------------------------------
# Human-like behaviour
# ---------------------------------------------------------------------------

def _pause(page: Any, bounds: tuple[float, float], cap: float) -> None:
    seconds = min(random.uniform(*bounds), max(cap, 0.0))
    if seconds > 0:
        page.wait_for_timeout(seconds * 1000)


def human_scroll(
    page: Any,
    *,
    step: Optional[int] = None,
    max_ticks: Optional[int] = None,
    budget: Optional[float] = None,
) -> int:
    """Scroll *page* down in small jittered steps and return the tick count.

    The target distance is the document scroll height measured once before
    the first tick.  The loop also stops after *max_ticks* ticks or once
    *budget* seconds have elapsed, so infinitely growing feeds terminate.
    """
    step = step or settings.scroll_step
    max_ticks = max_ticks if max_ticks is not None else settings.scroll_max_ticks
    budget = budget if budget is not None else settings.scroll_budget
    deadline = time.monotonic() + budget

    target = int(page.evaluate("() => document.body ? document.body.scrollHeight : 0") or 0)
    travelled = 0
    ticks = 0
    while travelled < target and ticks < max_ticks:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.debug("scroll budget exhausted after %d ticks", ticks)
            break
        page.evaluate("(dy) => window.scrollBy(0, dy)", step)
        travelled += step
        ticks += 1
        _pause(page, _SCROLL_PAUSE, remaining)
    return ticks


# ---------------------------------------------------------------------------
# Browser lifecycle
# ---------------------------------------------------------------------------

def _launch_browser(pw: Any, stealth: bool) -> Any:
    try:
        return pw.chromium.launch(
            headless=True,
            args=_STEALTH_LAUNCH_ARGS if stealth else _LAUNCH_ARGS,
        )
    except PlaywrightError as exc:
        raise FetchError(FetchErrorKind.LAUNCH_FAILURE, f"Could not launch browser: {exc}") from exc


def _close_browser(browser: Any) -> None:
    try:
        browser.close()
    except PlaywrightError as exc:
        # The process is already gone; nothing left to tear down.
        logger.warning("browser close failed: %s", exc)


def _render(
    browser: Any,
    url: str,
    wait_selector: Optional[str],
    budget: float,
    stealth: bool,
    header_transform: Optional[HeaderTransform],
) -> FetchResult:
    started = time.monotonic()
    timeout_ms = budget * 1000
    stage = "navigation"
    try:
        context = browser.new_context(
            viewport=_STEALTH_VIEWPORT if stealth else _VIEWPORT,
            user_agent=settings.user_agent,
            java_script_enabled=True,
            extra_http_headers=_STEALTH_HEADERS if stealth else None,
        )
        page = context.new_page()
        if header_transform is not None:
            _install_header_transform(page, header_transform)

        response = page.goto(url, wait_until="networkidle", timeout=timeout_ms)

        if stealth:
            stage = "scroll"
            _pause(page, _SETTLE_PAUSE, budget - (time.monotonic() - started))
            remaining = budget - (time.monotonic() - started)
            human_scroll(page, budget=min(settings.scroll_budget, max(remaining, 0.0)))

        if wait_selector:
            stage = f"selector {wait_selector!r}"
            page.wait_for_selector(wait_selector, timeout=timeout_ms)

        stage = "capture"
        html = page.content()
        screenshot = page.screenshot(type="png", timeout=timeout_ms)
    except PlaywrightTimeoutError as exc:
        raise FetchError(
            FetchErrorKind.TIMEOUT,
            f"Timed out during {stage} of {url} after {budget:.1f}s",
        ) from exc
    except PlaywrightError as exc:
        raise FetchError(FetchErrorKind.UNREACHABLE, f"Failed to render {url}: {exc}") from exc

    status = response.status if response is not None else 200
    return FetchResult(url=url, html=html, status_code=status, screenshot=screenshot)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def fetch_rendered(
    url: str,
    wait_selector: Optional[str] = None,
    timeout: Optional[float] = None,
    *,
    stealth: bool = False,
    header_transform: Optional[HeaderTransform] = None,
) -> FetchResult:
    """Render *url* in a dedicated headless Chromium and return its DOM.

    Args:
        url: Absolute URL to load.
        wait_selector: CSS selector that must appear before the DOM is
            captured.  Not appearing within *timeout* is fatal.
        timeout: Seconds allowed for navigation and, separately, for the
            selector wait.  Defaults to ``settings.render_timeout``.
        stealth: Enable the anti-detection behaviour described in the
            module docstring.
        header_transform: Per-request header rewrite.  Defaults to
            :func:`add_search_referer` in stealth mode, none otherwise.

    Returns:
        A :class:`FetchResult` with rendered HTML and a PNG screenshot.

    Raises:
        FetchError: ``LAUNCH_FAILURE``, ``TIMEOUT`` or ``UNREACHABLE``.
    """
    budget = timeout if timeout is not None else settings.render_timeout
    if stealth and header_transform is None:
        header_transform = add_search_referer

    logger.info("rendering %s (stealth=%s, wait_for=%r, timeout=%.1fs)", url, stealth, wait_selector, budget)

    try:
        pw = sync_playwright().start()
    except PlaywrightError as exc:
        raise FetchError(FetchErrorKind.LAUNCH_FAILURE, f"Could not start Playwright: {exc}") from exc

    try:
        browser = _launch_browser(pw, stealth)
        try:
            return _render(browser, url, wait_selector, budget, stealth, header_transform)
        finally:
            _close_browser(browser)
    finally:
        pw.stop()
