"""CRUD operations for the ``tasks`` table (scrape history)."""

from __future__ import annotations

import json
import sqlite3
import uuid
from time import time
from typing import Any, Optional

from backend.db.models import ScrapeTask


def _row_to_task(row: sqlite3.Row) -> ScrapeTask:
    return ScrapeTask(
        id=row["id"],
        user_id=row["user_id"],
        url=row["url"],
        instructions=row["instructions"],
        wait_for=row["wait_for"],
        results=json.loads(row["results"] or "{}"),
        created_at=row["created_at"],
    )


def save_task(
    conn: sqlite3.Connection,
    url: str,
    *,
    user_id: Optional[str] = None,
    instructions: Optional[str] = None,
    wait_for: Optional[str] = None,
    results: Optional[dict[str, Any]] = None,
) -> ScrapeTask:
    """Insert a history entry under a freshly generated id and return it."""
    task_id = uuid.uuid4().hex
    with conn:
        conn.execute(
            """
            INSERT INTO tasks (id, user_id, url, instructions, wait_for, results, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (task_id, user_id, url, instructions, wait_for, json.dumps(results or {}), int(time())),
        )
    return get_task(conn, task_id)  # type: ignore[return-value]


def get_task(conn: sqlite3.Connection, task_id: str) -> Optional[ScrapeTask]:
    """Fetch one history entry.  Returns ``None`` if not found."""
    row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
    return _row_to_task(row) if row else None


def list_tasks(
    conn: sqlite3.Connection,
    user_id: Optional[str] = None,
    limit: int = 100,
) -> list[ScrapeTask]:
    """Return the newest *limit* entries, optionally only those of *user_id*."""
    if user_id:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE user_id = ? ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (user_id, limit),
        ).fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM tasks ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()
    return [_row_to_task(r) for r in rows]


def delete_task(conn: sqlite3.Connection, task_id: str) -> bool:
    """Delete one entry; return whether a row was removed."""
    with conn:
        cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
    return cursor.rowcount > 0
