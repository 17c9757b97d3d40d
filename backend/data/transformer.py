"""Row-level reshaping of JSON data: pick, rename, sort and group fields.

Every function takes a list of objects and returns new containers; the input
rows are never mutated.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from backend.data.converter import ConversionError


def _require_rows(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, list):
        raise ConversionError(f"Expected a list of objects, got {type(data).__name__}")
    for row in data:
        if not isinstance(row, dict):
            raise ConversionError(f"Expected objects, got {type(row).__name__}")
    return data


def extract_fields(data: Any, fields: Sequence[str]) -> list[dict[str, Any]]:
    """Keep only *fields* (in that order) on every row; absent fields stay absent."""
    return [{f: row[f] for f in fields if f in row} for row in _require_rows(data)]


def rename_fields(data: Any, mapping: Mapping[str, str]) -> list[dict[str, Any]]:
    """Rename keys per *mapping* (old -> new), leaving other keys untouched."""
    renamed = []
    for row in _require_rows(data):
        out = dict(row)
        for old, new in mapping.items():
            if old in out:
                out[new] = out.pop(old)
        renamed.append(out)
    return renamed


def _sort_key(value: Any) -> tuple[int, Any]:
    # Numbers order numerically and before everything else, which orders as text.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


def sort_rows(data: Any, key: str, *, descending: bool = False) -> list[dict[str, Any]]:
    """Stable sort by *key*.  Rows where *key* is missing or null go last."""
    rows = _require_rows(data)
    present = [r for r in rows if r.get(key) is not None]
    missing = [r for r in rows if r.get(key) is None]
    present.sort(key=lambda r: _sort_key(r[key]), reverse=descending)
    return present + missing


def group_by(data: Any, key: str) -> dict[str, list[dict[str, Any]]]:
    """Bucket rows by the string form of *key*, in first-seen group order.

    Rows without *key* (or with null) land in the ``"null"`` group.
    """
    groups: dict[str, list[dict[str, Any]]] = {}
    for row in _require_rows(data):
        value = row.get(key)
        groups.setdefault("null" if value is None else str(value), []).append(row)
    return groups
