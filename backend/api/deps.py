"""Request-scoped dependencies shared by the routers."""

from __future__ import annotations

from typing import Any, Callable, Optional

from fastapi import HTTPException, Request

from backend.auth import get_user_for_token
from backend.config import settings
from backend.db import audit
from backend.db.models import User

SESSION_COOKIE = "session"


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(bucket: str, limit: int, window: Optional[float] = None) -> Callable[[Request], None]:
    """Build a dependency that allows *limit* hits per client per *window*.

    Exceeding the limit answers 429 with a ``Retry-After`` header.
    """
    span = window if window is not None else settings.rate_limit_window

    def _dependency(request: Request) -> None:
        limiter = request.app.state.rate_limiter
        decision = limiter.hit(f"{bucket}:{client_ip(request)}", limit, span)
        if not decision.allowed:
            raise HTTPException(
                status_code=429,
                detail="Too many requests, please try again later",
                headers={"Retry-After": str(decision.retry_after)},
            )

    return _dependency


def current_user(request: Request) -> Optional[User]:
    """The user behind the ``session`` cookie, or ``None`` for anonymous calls."""
    return get_user_for_token(
        request.app.state.db,
        request.app.state.sessions,
        request.cookies.get(SESSION_COOKIE),
    )


def require_user(request: Request) -> User:
    user = current_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def record(request: Request, action: str, details: dict[str, Any], user: Optional[User]) -> None:
    """Write an audit entry for the current request."""
    audit.log_action(
        request.app.state.db,
        action,
        details,
        user_id=user.id if user else None,
        ip=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
