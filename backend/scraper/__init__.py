"""Scraper package: page acquisition & content normalization."""

from backend.scraper.browser import fetch_rendered
from backend.scraper.extractor import extract, extract_structured_data, normalize
from backend.scraper.fetcher import fetch_static
from backend.scraper.models import (
    FetchError,
    FetchErrorKind,
    FetchResult,
    NormalizedPage,
    ScrapeMode,
    ScrapeResult,
)
from backend.scraper.service import ScrapeService, UrlNotAllowed

__all__ = [
    "fetch_static",
    "fetch_rendered",
    "normalize",
    "extract",
    "extract_structured_data",
    "FetchError",
    "FetchErrorKind",
    "FetchResult",
    "NormalizedPage",
    "ScrapeMode",
    "ScrapeResult",
    "ScrapeService",
    "UrlNotAllowed",
]
