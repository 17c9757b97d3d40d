"""Scrape endpoints.

Routes
------
POST /scrape           Acquire + normalize one page (optionally saved to history,
                       optionally with main-content text)
POST /scrape/extract   Elements of a page matching a CSS selector

Both handlers are plain ``def`` so FastAPI runs them in its threadpool; the
Playwright sync API must not be driven from the event loop thread.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from backend.api.deps import current_user, rate_limit, record
from backend.config import settings
from backend.db import history
from backend.db.models import User
from backend.scraper.extractor import readable_text, summarize_page
from backend.scraper.models import FetchError, FetchErrorKind, ScrapeMode
from backend.scraper.service import UrlNotAllowed

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class ScrapeRequest(BaseModel):
    url: str
    instructions: Optional[str] = None
    wait_for: Optional[str] = None
    mode: ScrapeMode = ScrapeMode.AUTO
    timeout: Optional[float] = Field(default=None, gt=0)
    include_html: bool = False
    readable: bool = False
    save: bool = False


class ExtractRequest(BaseModel):
    url: str
    selector: str
    wait_for: Optional[str] = None
    mode: ScrapeMode = ScrapeMode.AUTO


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

def _to_http(exc: Exception) -> HTTPException:
    if isinstance(exc, UrlNotAllowed):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, FetchError):
        if exc.kind is FetchErrorKind.TIMEOUT:
            return HTTPException(status_code=504, detail=f"Fetch timed out: {exc.message}")
        return HTTPException(status_code=502, detail=f"Fetch failed: {exc.message}")
    return HTTPException(status_code=422, detail=str(exc))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    dependencies=[Depends(rate_limit("scrape", settings.scrape_rate_limit))],
)
def scrape_endpoint(
    body: ScrapeRequest,
    request: Request,
    user: Optional[User] = Depends(current_user),
) -> dict[str, Any]:
    """Scrape ``body.url`` and return a trimmed view of the normalized page."""
    scraper = request.app.state.scraper
    try:
        result = scraper.scrape(body.url, body.wait_for, mode=body.mode, timeout=body.timeout)
    except (UrlNotAllowed, FetchError, ValueError) as exc:
        record(request, "scrape_failed", {"url": body.url, "error": str(exc)}, user)
        raise _to_http(exc) from exc

    summary = summarize_page(result.page)
    if body.include_html:
        summary["html"] = result.page.html
    if body.readable:
        summary["readable_text"] = readable_text(result.page.html, result.url)

    response: dict[str, Any] = {
        "url": result.url,
        "mode": result.mode.value,
        "fetched_at": result.fetched_at,
        "cached": result.cached,
        "page": summary,
        "screenshot": result.screenshot_data_uri(),
    }

    if body.save:
        task = history.save_task(
            request.app.state.db,
            result.url,
            user_id=user.id if user else None,
            instructions=body.instructions,
            wait_for=body.wait_for,
            results={"page": summary},
        )
        response["task_id"] = task.id

    record(
        request,
        "scrape",
        {"url": result.url, "mode": result.mode.value, "cached": result.cached},
        user,
    )
    return response


@router.post(
    "/extract",
    dependencies=[Depends(rate_limit("scrape", settings.scrape_rate_limit))],
)
def extract_endpoint(body: ExtractRequest, request: Request) -> dict[str, Any]:
    """Return the inner HTML and text of every element matching ``body.selector``."""
    scraper = request.app.state.scraper
    try:
        elements = scraper.extract(body.url, body.selector, body.wait_for, mode=body.mode)
    except (UrlNotAllowed, FetchError, ValueError) as exc:
        raise _to_http(exc) from exc
    return {
        "url": body.url,
        "selector": body.selector,
        "count": len(elements),
        "elements": [{"text": e.text, "inner_html": e.inner_html} for e in elements],
    }
