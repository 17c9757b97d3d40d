"""Tidy LLM or scraper output before it is stored or converted."""

from __future__ import annotations

import json
import re
from typing import Any, Optional, Sequence

_NUMERIC = re.compile(r"^-?\d+(\.\d+)?$")
_WHITESPACE = re.compile(r"\s+")
_DROP = object()


def _clean_value(value: Any, *, remove_empty_strings: bool, trim_strings: bool, convert_numbers: bool) -> Any:
    if not isinstance(value, str):
        return value
    cleaned = value.strip() if trim_strings else value
    if remove_empty_strings and cleaned == "":
        return _DROP
    if convert_numbers and _NUMERIC.match(cleaned):
        return float(cleaned) if "." in cleaned else int(cleaned)
    return cleaned


def clean(
    data: Any,
    *,
    remove_nulls: bool = True,
    remove_empty_strings: bool = True,
    trim_strings: bool = True,
    convert_numbers: bool = True,
) -> Any:
    """Recursively clean *data*.

    Nulls and empty strings are dropped from objects (and lists), strings are
    trimmed, and purely numeric strings become ``int``/``float``.
    """
    opts = {
        "remove_empty_strings": remove_empty_strings,
        "trim_strings": trim_strings,
        "convert_numbers": convert_numbers,
    }

    def _walk(node: Any) -> Any:
        if isinstance(node, dict):
            out: dict[str, Any] = {}
            for key, value in node.items():
                if remove_nulls and value is None:
                    continue
                cleaned = _walk(value)
                if cleaned is not _DROP:
                    out[key] = cleaned
            return out
        if isinstance(node, list):
            items = [_walk(v) for v in node if not (remove_nulls and v is None)]
            return [v for v in items if v is not _DROP]
        return _clean_value(node, **opts)

    result = _walk(data)
    return None if result is _DROP else result


def remove_duplicates(rows: list[Any], key: Optional[str] = None) -> list[Any]:
    """Drop repeated rows, keeping the first occurrence.

    With *key*, rows are compared by that field only; otherwise by their full
    JSON serialisation.
    """
    seen: set[str] = set()
    unique: list[Any] = []
    for row in rows:
        if key is not None and isinstance(row, dict):
            marker = json.dumps(row.get(key), sort_keys=True, default=str)
        else:
            marker = json.dumps(row, sort_keys=True, default=str)
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(row)
    return unique


def _normalize_string(value: str) -> str:
    return _WHITESPACE.sub(" ", value.lower().strip())


def normalize_strings(data: Any, fields: Optional[Sequence[str]] = None) -> Any:
    """Lowercase, trim and collapse whitespace in string values.

    With *fields*, only string values stored under those keys (at any depth)
    are touched; a bare top-level string is always normalized.
    """
    if isinstance(data, str):
        return _normalize_string(data)
    if isinstance(data, list):
        return [normalize_strings(item, fields) for item in data]
    if isinstance(data, dict):
        out: dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, str):
                out[key] = _normalize_string(value) if fields is None or key in fields else value
            elif isinstance(value, (dict, list)):
                out[key] = normalize_strings(value, fields)
            else:
                out[key] = value
        return out
    return data
