"""Domain allow/block list consulted before any page is fetched."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import urlsplit

from backend.config import settings

logger = logging.getLogger(__name__)

_SCHEMES = ("http", "https")


def _matches(hostname: str, domain: str) -> bool:
    return hostname == domain or hostname.endswith("." + domain)


@dataclass(frozen=True)
class UrlPolicy:
    """Decide whether a URL may be scraped.

    * Only ``http``/``https`` URLs with a hostname are considered.
    * A blocked domain (or any of its subdomains) is always refused.
    * An empty allow list allows every domain that is not blocked.
    """

    allowed_domains: tuple[str, ...] = field(default_factory=tuple)
    blocked_domains: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_domains(
        cls,
        allowed: Optional[Iterable[str]] = None,
        blocked: Optional[Iterable[str]] = None,
    ) -> UrlPolicy:
        def _clean(items: Optional[Iterable[str]]) -> tuple[str, ...]:
            return tuple(d.strip().lower().lstrip(".") for d in (items or ()) if d.strip())

        return cls(allowed_domains=_clean(allowed), blocked_domains=_clean(blocked))

    @classmethod
    def from_settings(cls) -> UrlPolicy:
        return cls.from_domains(settings.allowed_domains, settings.blocked_domains)

    def is_allowed(self, url: str) -> bool:
        try:
            parts = urlsplit(url)
            hostname = parts.hostname
        except ValueError:
            logger.debug("unparsable URL refused: %r", url)
            return False
        if parts.scheme.lower() not in _SCHEMES or not hostname:
            return False

        hostname = hostname.lower()
        if any(_matches(hostname, d) for d in self.blocked_domains):
            return False
        if not self.allowed_domains:
            return True
        return any(_matches(hostname, d) for d in self.allowed_domains)
