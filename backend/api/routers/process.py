"""LLM post-processing and format conversion.

Routes
------
POST /process   Restructure content with the LLM (cached by content hash)
POST /convert   Reshape JSON (or CSV) rows and render them as csv / xml / html / markdown
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from backend.api.deps import current_user, rate_limit, record
from backend.config import settings
from backend.data import (
    ConversionError,
    clean,
    convert,
    csv_to_json,
    extract_fields,
    group_by,
    normalize_strings,
    remove_duplicates,
    rename_fields,
    sort_rows,
)
from backend.db.models import User
from backend.llm import LLMError, describe_llm_error, process_with_retry

router = APIRouter()

_MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
    "xml": "application/xml",
    "html": "text/html",
    "markdown": "text/markdown",
}


class ProcessRequest(BaseModel):
    content: Any
    instructions: str


class ConvertRequest(BaseModel):
    data: Any
    format: str = "csv"
    input_format: Literal["json", "csv"] = "json"
    clean: bool = False
    normalize: bool = False
    normalize_fields: Optional[list[str]] = None
    dedupe_key: Optional[str] = None
    dedupe: bool = False
    rename: Optional[dict[str, str]] = None
    fields: Optional[list[str]] = None
    sort_by: Optional[str] = None
    descending: bool = False
    group_by: Optional[str] = None


def _process_key(content: Any, instructions: str) -> str:
    serialised = json.dumps(content, sort_keys=True, default=str)
    digest = hashlib.sha256(serialised.encode("utf-8")).hexdigest()
    return f"process:{digest}:{instructions}"


@router.post(
    "/process",
    dependencies=[Depends(rate_limit("process", settings.process_rate_limit))],
)
def process_endpoint(
    body: ProcessRequest,
    request: Request,
    user: Optional[User] = Depends(current_user),
) -> dict[str, Any]:
    """Run ``body.instructions`` over ``body.content`` with the LLM."""
    if not body.instructions.strip():
        raise HTTPException(status_code=400, detail="instructions must not be empty")

    cache = request.app.state.cache
    key = _process_key(body.content, body.instructions)
    hit = cache.get(key)
    if hit is not None:
        return {**hit, "cached": True}

    try:
        processed = process_with_retry(body.content, body.instructions)
    except LLMError as exc:
        record(request, "process_failed", {"error": str(exc)}, user)
        raise HTTPException(status_code=502, detail=describe_llm_error(exc)) from exc

    result = processed.to_dict()
    cache.set(key, result, settings.process_cache_ttl)
    record(request, "process", {"instructions": body.instructions[:200]}, user)
    return {**result, "cached": False}


def _prepare(body: ConvertRequest) -> Any:
    """Apply the requested parsing, cleaning and reshaping steps in order."""
    data = body.data
    if body.input_format == "csv":
        if not isinstance(data, str):
            raise ConversionError("CSV input must be sent as a string")
        data = csv_to_json(data)
    if body.clean:
        data = clean(data)
    if body.normalize:
        data = normalize_strings(data, body.normalize_fields)
    if (body.dedupe or body.dedupe_key) and isinstance(data, list):
        data = remove_duplicates(data, body.dedupe_key)
    if body.rename:
        data = rename_fields(data, body.rename)
    if body.fields:
        data = extract_fields(data, body.fields)
    if body.sort_by:
        data = sort_rows(data, body.sort_by, descending=body.descending)
    if body.group_by:
        data = group_by(data, body.group_by)
    return data


@router.post("/convert")
def convert_endpoint(body: ConvertRequest) -> PlainTextResponse:
    """Return ``body.data`` reshaped as requested and rendered in ``body.format``."""
    try:
        text = convert(_prepare(body), body.format)
    except ConversionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return PlainTextResponse(text, media_type=_MEDIA_TYPES[body.format.lower()])
