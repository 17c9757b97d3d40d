"""CRUD helpers for the ``users`` table.

Password hashes never leave this module except through
:func:`get_password_hash`; everything else returns :class:`User` objects.
"""

from __future__ import annotations

import sqlite3
import uuid
from time import time
from typing import Optional

from backend.db.models import User


def _row_to_user(row: sqlite3.Row) -> User:
    return User(id=row["id"], email=row["email"], created_at=row["created_at"])


def create_user(conn: sqlite3.Connection, email: str, password_hash: str) -> User:
    """Insert a user.

    Raises:
        sqlite3.IntegrityError: If *email* is already registered.
    """
    user_id = str(uuid.uuid4())
    with conn:
        conn.execute(
            "INSERT INTO users (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
            (user_id, email, password_hash, int(time())),
        )
    return get_user(conn, user_id)  # type: ignore[return-value]


def get_user(conn: sqlite3.Connection, user_id: str) -> Optional[User]:
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return _row_to_user(row) if row else None


def get_user_by_email(conn: sqlite3.Connection, email: str) -> Optional[User]:
    row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
    return _row_to_user(row) if row else None


def get_password_hash(conn: sqlite3.Connection, email: str) -> Optional[tuple[User, str]]:
    """Return ``(user, stored_hash)`` for *email*, or ``None``."""
    row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
    if row is None:
        return None
    return _row_to_user(row), row["password_hash"]
