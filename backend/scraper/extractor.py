"""Content normalization: turns raw HTML into a :class:`NormalizedPage`.

Everything here is a pure function of its input markup.  The only failure
that is tolerated silently is a malformed JSON-LD block, which is dropped
from ``structured_data`` and logged.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import soupsieve
import trafilatura
from bs4 import BeautifulSoup, Tag

from backend.scraper.models import ExtractedElement, Image, Link, NormalizedPage

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_JSON_LD_TYPE = re.compile(r"^\s*application/ld\+json\s*$", re.IGNORECASE)
_INVISIBLE_TAGS = ["script", "style", "noscript", "template"]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space and trim the ends."""
    return _WHITESPACE.sub(" ", text).strip()


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if value is None:
        return ""
    # Multi-valued attributes (e.g. ``rel``) come back as lists.
    if isinstance(value, list):
        return " ".join(value)
    return str(value).strip()


def _extract_title(soup: BeautifulSoup) -> str:
    tag = soup.find("title")
    return collapse_whitespace(tag.get_text()) if tag else ""


def _extract_meta_description(soup: BeautifulSoup) -> str:
    tag = soup.find("meta", attrs={"name": re.compile(r"^description$", re.IGNORECASE)})
    return _attr(tag, "content") if tag else ""


def _extract_links(soup: BeautifulSoup) -> tuple[Link, ...]:
    return tuple(
        Link(href=_attr(a, "href"), text=collapse_whitespace(a.get_text(" ")))
        for a in soup.find_all("a")
    )


def _extract_images(soup: BeautifulSoup) -> tuple[Image, ...]:
    return tuple(
        Image(src=_attr(img, "src"), alt=_attr(img, "alt"))
        for img in soup.find_all("img")
    )


def _parse_json_ld(raw: str) -> Optional[Any]:
    """Parse one JSON-LD block; ``None`` when it is empty or malformed."""
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError, oversized integers and pathological nesting.
        logger.warning("skipping malformed JSON-LD block: %s", exc)
        return None


def _structured_data(soup: BeautifulSoup) -> list[Any]:
    blocks: list[Any] = []
    for script in soup.find_all("script", attrs={"type": _JSON_LD_TYPE}):
        parsed = _parse_json_ld(script.string or script.get_text())
        if parsed is not None:
            blocks.append(parsed)
    return blocks


def _body_text(soup: BeautifulSoup) -> str:
    """Visible text of ``<body>`` (whole document when there is none).

    Mutates *soup*; call it last.
    """
    root = soup.body or soup
    for tag in root(_INVISIBLE_TAGS):
        tag.decompose()
    if root is soup:
        for tag in soup(["head", "title"]):
            tag.decompose()
    return collapse_whitespace(root.get_text(" "))


def _bs4_fallback(html: str) -> str:
    """Extract readable text using BeautifulSoup ``<main>``/``<article>`` heuristics."""
    soup = _soup(html)
    # Strip non-content elements
    for tag in soup(["script", "style", "nav", "footer", "header"]):
        tag.decompose()
    # Prefer structural content containers
    container = soup.find("main") or soup.find("article") or soup.body
    if container is None:
        return soup.get_text(separator=" ", strip=True)
    return container.get_text(separator=" ", strip=True)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_structured_data(html: str) -> list[Any]:
    """Return every parseable JSON-LD block in document order."""
    return _structured_data(_soup(html))


def normalize(html: str) -> NormalizedPage:
    """Build the canonical :class:`NormalizedPage` for *html*.

    Missing title / description / ``href`` / ``src`` become empty strings.
    ``body_text`` never contains consecutive whitespace.
    """
    soup = _soup(html)
    title = _extract_title(soup)
    meta_description = _extract_meta_description(soup)
    links = _extract_links(soup)
    images = _extract_images(soup)
    structured = tuple(_structured_data(soup))
    body_text = _body_text(soup)

    return NormalizedPage(
        title=title,
        meta_description=meta_description,
        body_text=body_text,
        links=links,
        images=images,
        structured_data=structured,
        html=html,
    )


def extract(html: str, selector: str) -> list[ExtractedElement]:
    """Return one :class:`ExtractedElement` per element matching *selector*.

    Returns ``[]`` when nothing matches.

    Raises:
        ValueError: If *selector* is not a valid CSS selector.
    """
    soup = _soup(html)
    try:
        matches = soup.select(selector)
    except soupsieve.SelectorSyntaxError as exc:
        raise ValueError(f"Invalid CSS selector {selector!r}: {exc}") from exc
    return [
        ExtractedElement(
            text=collapse_whitespace(el.get_text(" ")),
            inner_html=el.decode_contents(),
        )
        for el in matches
    ]


def readable_text(html: str, url: Optional[str] = None) -> str:
    """Main-content text suitable for LLM input.

    Tries ``trafilatura`` first.  Falls back to a BeautifulSoup heuristic when
    trafilatura returns ``None`` or an empty string (e.g. highly dynamic or
    minimal pages).
    """
    text: Optional[str] = trafilatura.extract(
        html,
        include_links=False,
        include_images=False,
        include_tables=True,
        no_fallback=False,
        url=url,
    )
    if not text:
        text = _bs4_fallback(html)
    return text or ""


def summarize_page(
    page: NormalizedPage,
    text_limit: int = 1000,
    item_limit: int = 20,
) -> dict[str, Any]:
    """Trimmed JSON view of *page* for API responses."""
    body = page.body_text
    if len(body) > text_limit:
        body = body[:text_limit] + "..."
    data = page.to_dict(include_html=False)
    data["body_text"] = body
    data["links"] = data["links"][:item_limit]
    data["images"] = data["images"][:item_limit]
    return data
