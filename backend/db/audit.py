"""Append-only audit trail stored in the ``audit_log`` table."""

from __future__ import annotations

import json
import logging
import sqlite3
from time import time
from typing import Any, Optional

from backend.db.models import AuditEntry

logger = logging.getLogger(__name__)


def _row_to_entry(row: sqlite3.Row) -> AuditEntry:
    return AuditEntry(
        id=row["id"],
        user_id=row["user_id"],
        action=row["action"],
        details=json.loads(row["details"] or "{}"),
        ip=row["ip"],
        user_agent=row["user_agent"],
        created_at=row["created_at"],
    )


def log_action(
    conn: sqlite3.Connection,
    action: str,
    details: Optional[dict[str, Any]] = None,
    *,
    user_id: Optional[str] = None,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditEntry:
    """Record *action* and return the stored entry."""
    payload = json.dumps(details or {}, default=str)
    with conn:
        cursor = conn.execute(
            """
            INSERT INTO audit_log (user_id, action, details, ip, user_agent, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user_id, action, payload, ip, user_agent, int(time())),
        )
    logger.info("audit: action=%s user=%s ip=%s", action, user_id, ip)
    row = conn.execute("SELECT * FROM audit_log WHERE id = ?", (cursor.lastrowid,)).fetchone()
    return _row_to_entry(row)


def list_actions(
    conn: sqlite3.Connection,
    user_id: Optional[str] = None,
    limit: int = 100,
) -> list[AuditEntry]:
    """Most recent entries first, optionally only those of *user_id*."""
    if user_id:
        rows = conn.execute(
            "SELECT * FROM audit_log WHERE user_id = ? ORDER BY id DESC LIMIT ?",
            (user_id, limit),
        ).fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM audit_log ORDER BY id DESC LIMIT ?", (limit,)
        ).fetchall()
    return [_row_to_entry(r) for r in rows]
