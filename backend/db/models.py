"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class User:
    id: str
    email: str
    created_at: int

    def public(self) -> dict[str, Any]:
        return {"id": self.id, "email": self.email, "created_at": self.created_at}


@dataclass
class ScrapeTask:
    """One saved scrape (history entry)."""

    id: str
    url: str
    created_at: int
    user_id: Optional[str] = None
    instructions: Optional[str] = None
    wait_for: Optional[str] = None
    results: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuditEntry:
    id: int
    action: str
    details: dict[str, Any]
    created_at: int
    user_id: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
