"""Account endpoints.

Routes
------
POST /auth/register   Create an account
POST /auth/login      Verify credentials, set the ``session`` cookie
POST /auth/logout     Drop the current session
GET  /auth/me         The logged-in user
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from backend.api.deps import SESSION_COOKIE, rate_limit, record, require_user
from backend.auth import AuthError, get_user_for_token, login_user, logout, register_user
from backend.config import settings
from backend.db.models import User

router = APIRouter(dependencies=[Depends(rate_limit("auth", settings.auth_rate_limit))])


class Credentials(BaseModel):
    email: str
    password: str


@router.post("/register", status_code=201)
def register_endpoint(body: Credentials, request: Request) -> dict[str, Any]:
    try:
        user = register_user(request.app.state.db, body.email, body.password)
    except AuthError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    record(request, "register", {"email": user.email}, user)
    return user.public()


@router.post("/login")
def login_endpoint(body: Credentials, request: Request, response: Response) -> dict[str, Any]:
    state = request.app.state
    try:
        token = login_user(state.db, state.sessions, body.email, body.password, settings.session_ttl)
    except AuthError as exc:
        record(request, "login_failed", {"email": body.email}, None)
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=int(settings.session_ttl),
        httponly=True,
        samesite="lax",
    )
    user = get_user_for_token(state.db, state.sessions, token)
    record(request, "login", {"email": user.email if user else body.email}, user)
    return {"ok": True, "user": user.public() if user else None}


@router.post("/logout")
def logout_endpoint(request: Request, response: Response) -> dict[str, Any]:
    logout(request.app.state.sessions, request.cookies.get(SESSION_COOKIE))
    response.delete_cookie(SESSION_COOKIE)
    return {"ok": True}


@router.get("/me")
def me_endpoint(user: User = Depends(require_user)) -> dict[str, Any]:
    return user.public()
