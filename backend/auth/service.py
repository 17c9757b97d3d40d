"""Password hashing and session tokens.

Users live in SQLite; sessions live only in a :class:`ResultCache` with a
TTL, so a restart logs everybody out.

Stored hash format: ``<salt hex>:<pbkdf2-sha512 hex>``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import sqlite3
from time import time
from typing import Optional

from backend.cache import ResultCache
from backend.db import users as users_db
from backend.db.models import User

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 210_000
MIN_PASSWORD_LENGTH = 8
_SESSION_PREFIX = "session:"


class AuthError(Exception):
    """Registration or login failed."""


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def _derive(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha512", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    return f"{salt.hex()}:{_derive(password, salt).hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        salt_hex, hash_hex = stored.split(":", 1)
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False
    return hmac.compare_digest(_derive(password, salt).hex(), hash_hex)


# ---------------------------------------------------------------------------
# Users & sessions
# ---------------------------------------------------------------------------

def register_user(conn: sqlite3.Connection, email: str, password: str) -> User:
    """Create a user account.

    Raises:
        AuthError: If the email is empty or taken, or the password is too short.
    """
    email = email.strip().lower()
    if not email or "@" not in email:
        raise AuthError("A valid email address is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if users_db.get_user_by_email(conn, email) is not None:
        raise AuthError("User already exists")
    try:
        user = users_db.create_user(conn, email, hash_password(password))
    except sqlite3.IntegrityError as exc:
        raise AuthError("User already exists") from exc
    logger.info("registered user %s", user.id)
    return user


def login_user(
    conn: sqlite3.Connection,
    sessions: ResultCache,
    email: str,
    password: str,
    ttl: Optional[float] = None,
) -> str:
    """Verify credentials and return a new session token.

    Raises:
        AuthError: On unknown email or wrong password (same message for both).
    """
    found = users_db.get_password_hash(conn, email.strip().lower())
    if found is None or not verify_password(password, found[1]):
        raise AuthError("Invalid email or password")
    user = found[0]
    token = secrets.token_hex(32)
    sessions.set(
        _SESSION_PREFIX + token,
        {"user_id": user.id, "created_at": int(time())},
        ttl,
    )
    return token


def get_user_for_token(
    conn: sqlite3.Connection,
    sessions: ResultCache,
    token: Optional[str],
) -> Optional[User]:
    """Resolve a session token to its user; ``None`` if unknown or expired."""
    if not token:
        return None
    session = sessions.get(_SESSION_PREFIX + token)
    if session is None:
        return None
    return users_db.get_user(conn, session["user_id"])


def logout(sessions: ResultCache, token: Optional[str]) -> None:
    if token:
        sessions.delete(_SESSION_PREFIX + token)
