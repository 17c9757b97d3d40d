"""Scrape history endpoints (authentication required).

Routes
------
GET    /history          List the caller's tasks, or one task with ``?id=``
POST   /history          Save a task
DELETE /history/{id}     Delete one of the caller's tasks
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from backend.api.deps import rate_limit, record, require_user
from backend.config import settings
from backend.db import history
from backend.db.models import ScrapeTask, User

router = APIRouter()


class TaskCreate(BaseModel):
    url: str
    instructions: Optional[str] = None
    wait_for: Optional[str] = None
    results: dict[str, Any] = Field(default_factory=dict)


def _task_dict(task: ScrapeTask) -> dict[str, Any]:
    return {
        "id": task.id,
        "url": task.url,
        "instructions": task.instructions,
        "wait_for": task.wait_for,
        "results": task.results,
        "created_at": task.created_at,
    }


def _owned_task(request: Request, task_id: str, user: User) -> ScrapeTask:
    task = history.get_task(request.app.state.db, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id!r} not found")
    if task.user_id != user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    return task


@router.get(
    "",
    dependencies=[Depends(rate_limit("history_read", settings.history_read_rate_limit))],
)
def list_history_endpoint(
    request: Request,
    id: Optional[str] = None,
    limit: int = 100,
    user: User = Depends(require_user),
) -> Any:
    """Return the caller's tasks (newest first) or a single task."""
    if id:
        return _task_dict(_owned_task(request, id, user))
    tasks = history.list_tasks(request.app.state.db, user_id=user.id, limit=limit)
    return {"tasks": [_task_dict(t) for t in tasks]}


@router.post(
    "",
    status_code=201,
    dependencies=[Depends(rate_limit("history_write", settings.write_rate_limit))],
)
def save_history_endpoint(
    body: TaskCreate,
    request: Request,
    user: User = Depends(require_user),
) -> dict[str, Any]:
    if not body.url.strip():
        raise HTTPException(status_code=400, detail="url must not be empty")
    task = history.save_task(
        request.app.state.db,
        body.url,
        user_id=user.id,
        instructions=body.instructions,
        wait_for=body.wait_for,
        results=body.results,
    )
    record(request, "task_saved", {"task_id": task.id, "url": task.url}, user)
    return _task_dict(task)


@router.delete(
    "/{task_id}",
    dependencies=[Depends(rate_limit("history_write", settings.write_rate_limit))],
)
def delete_history_endpoint(
    task_id: str,
    request: Request,
    user: User = Depends(require_user),
) -> dict[str, Any]:
    _owned_task(request, task_id, user)
    history.delete_task(request.app.state.db, task_id)
    record(request, "task_deleted", {"task_id": task_id}, user)
    return {"deleted": task_id}
