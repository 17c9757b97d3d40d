"""Data models for the scraper pipeline."""

from __future__ import annotations

import base64
import enum
from dataclasses import dataclass, field
from typing import Any, Optional


class FetchErrorKind(str, enum.Enum):
    """Why an acquisition attempt failed."""

    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    LAUNCH_FAILURE = "launch_failure"


class FetchError(Exception):
    """Raised by the fetchers; never swallowed inside the acquisition layer."""

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status

    def __repr__(self) -> str:
        return f"FetchError(kind={self.kind.value!r}, status={self.status!r}, message={self.message!r})"


class ScrapeMode(str, enum.Enum):
    """Acquisition strategy requested by the caller."""

    AUTO = "auto"
    STATIC = "static"
    RENDERED = "rendered"
    STEALTH = "stealth"


@dataclass
class FetchResult:
    """The raw material from a single acquisition attempt."""

    url: str
    html: str
    status_code: int
    screenshot: Optional[bytes] = None


@dataclass(frozen=True)
class Link:
    href: str
    text: str


@dataclass(frozen=True)
class Image:
    src: str
    alt: str


@dataclass(frozen=True)
class ExtractedElement:
    """One element matched by a CSS selector."""

    text: str
    inner_html: str


@dataclass(frozen=True)
class NormalizedPage:
    """Canonical page record, independent of how the HTML was acquired."""

    title: str = ""
    meta_description: str = ""
    body_text: str = ""
    links: tuple[Link, ...] = ()
    images: tuple[Image, ...] = ()
    structured_data: tuple[Any, ...] = ()
    html: str = ""

    def to_dict(self, include_html: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "meta_description": self.meta_description,
            "body_text": self.body_text,
            "links": [{"href": l.href, "text": l.text} for l in self.links],
            "images": [{"src": i.src, "alt": i.alt} for i in self.images],
            "structured_data": list(self.structured_data),
        }
        if include_html:
            data["html"] = self.html
        return data


@dataclass(frozen=True)
class ScrapeResult:
    """A normalized page plus acquisition metadata, as stored in the cache."""

    url: str
    mode: ScrapeMode
    page: NormalizedPage
    fetched_at: int
    screenshot: Optional[bytes] = field(default=None, repr=False)
    cached: bool = False

    def screenshot_data_uri(self) -> Optional[str]:
        """Return the screenshot as an embeddable ``data:`` URI, if any."""
        if self.screenshot is None:
            return None
        return screenshot_data_uri(self.screenshot)


def screenshot_data_uri(png: bytes) -> str:
    """Encode PNG bytes as ``data:image/png;base64,<payload>``."""
    payload = base64.b64encode(png).decode("ascii")
    return f"data:image/png;base64,{payload}"
