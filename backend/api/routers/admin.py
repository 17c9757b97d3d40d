"""Cache and audit endpoints (authentication required).

Routes
------
GET    /cache/stats   Size and capacity of the result cache
DELETE /cache         Drop every cached result
GET    /audit         The caller's audit trail, newest first
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from backend.api.deps import record, require_user
from backend.db import audit
from backend.db.models import User

router = APIRouter()


@router.get("/cache/stats")
def cache_stats_endpoint(request: Request, user: User = Depends(require_user)) -> dict[str, Any]:
    cache = request.app.state.cache
    cache.purge_expired()
    return cache.stats()


@router.delete("/cache")
def clear_cache_endpoint(request: Request, user: User = Depends(require_user)) -> dict[str, Any]:
    request.app.state.cache.clear()
    record(request, "cache_cleared", {}, user)
    return {"cleared": True}


@router.get("/audit")
def audit_endpoint(
    request: Request,
    limit: int = 100,
    user: User = Depends(require_user),
) -> dict[str, Any]:
    entries = audit.list_actions(request.app.state.db, user_id=user.id, limit=limit)
    return {
        "entries": [
            {
                "id": e.id,
                "action": e.action,
                "details": e.details,
                "ip": e.ip,
                "user_agent": e.user_agent,
                "created_at": e.created_at,
            }
            for e in entries
        ]
    }
