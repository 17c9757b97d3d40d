"""Convert row-shaped JSON data to and from tabular text formats.

Every ``json_to_*`` function accepts a single object or a list of objects.
Columns are the union of keys across rows, in first-seen order.
"""

from __future__ import annotations

import csv
import io
import json
from html import escape as html_escape
from typing import Any, Iterable
from xml.sax.saxutils import escape as xml_escape

FORMATS = ("json", "csv", "xml", "html", "markdown")

# Key under which cells beyond the header width are collected, as a list.
EXTRA_FIELDS_KEY = "_extra"


class ConversionError(ValueError):
    """The input could not be converted to the requested format."""


def _rows(data: Any) -> list[dict[str, Any]]:
    rows = data if isinstance(data, list) else [data]
    for row in rows:
        if not isinstance(row, dict):
            raise ConversionError(f"Expected objects, got {type(row).__name__}")
    return rows


def _columns(rows: Iterable[dict[str, Any]]) -> list[str]:
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(str(key), None)
    return list(seen)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def json_to_csv(data: Any, include_headers: bool = True, delimiter: str = ",") -> str:
    rows = _rows(data)
    columns = _columns(rows)
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    if include_headers:
        writer.writerow(columns)
    for row in rows:
        writer.writerow([_cell(row.get(col)) for col in columns])
    return buffer.getvalue()


def _is_blank(value: Any) -> bool:
    if isinstance(value, list):
        return all(_is_blank(v) for v in value)
    return not (value or "").strip()


def csv_to_json(text: str, delimiter: str = ",", skip_empty_lines: bool = True) -> list[dict[str, Any]]:
    """Parse CSV with a header row into a list of dicts.

    Rows longer than the header keep their surplus cells under
    :data:`EXTRA_FIELDS_KEY`; rows shorter than it get ``None`` for the
    missing columns.
    """
    reader = csv.DictReader(io.StringIO(text), delimiter=delimiter, restkey=EXTRA_FIELDS_KEY)
    try:
        records = [dict(row) for row in reader]
    except csv.Error as exc:
        raise ConversionError(f"Failed to parse CSV: {exc}") from exc
    if skip_empty_lines:
        records = [r for r in records if not all(_is_blank(v) for v in r.values())]
    return records


def json_to_excel_xml(data: Any) -> str:
    """SpreadsheetML 2003 workbook that Excel opens directly."""
    rows = _rows(data)
    columns = _columns(rows)
    lines = [
        '<?xml version="1.0"?>',
        '<Workbook xmlns="urn:schemas-microsoft-com:office:spreadsheet" '
        'xmlns:ss="urn:schemas-microsoft-com:office:spreadsheet">',
        '<Worksheet ss:Name="Sheet1">',
        "<Table>",
        "<Row>",
    ]
    lines += [f'<Cell><Data ss:Type="String">{xml_escape(c)}</Data></Cell>' for c in columns]
    lines.append("</Row>")
    for row in rows:
        lines.append("<Row>")
        for col in columns:
            value = row.get(col)
            kind = "Number" if isinstance(value, (int, float)) and not isinstance(value, bool) else "String"
            lines.append(f'<Cell><Data ss:Type="{kind}">{xml_escape(_cell(value))}</Data></Cell>')
        lines.append("</Row>")
    lines += ["</Table>", "</Worksheet>", "</Workbook>"]
    return "\n".join(lines)


def json_to_html_table(data: Any) -> str:
    rows = _rows(data)
    columns = _columns(rows)
    lines = ['<table border="1" cellpadding="5" cellspacing="0">', "<thead>", "<tr>"]
    lines += [f"<th>{html_escape(c)}</th>" for c in columns]
    lines += ["</tr>", "</thead>", "<tbody>"]
    for row in rows:
        lines.append("<tr>")
        lines += [f"<td>{html_escape(_cell(row.get(c)))}</td>" for c in columns]
        lines.append("</tr>")
    lines += ["</tbody>", "</table>"]
    return "\n".join(lines)


def _md_cell(value: Any) -> str:
    return _cell(value).replace("|", "\\|").replace("\n", " ")


def json_to_markdown_table(data: Any) -> str:
    rows = _rows(data)
    columns = _columns(rows)
    if not columns:
        return ""
    lines = [
        "| " + " | ".join(_md_cell(c) for c in columns) + " |",
        "| " + " | ".join("---" for _ in columns) + " |",
    ]
    for row in rows:
        lines.append("| " + " | ".join(_md_cell(row.get(c)) for c in columns) + " |")
    return "\n".join(lines)


def convert(data: Any, fmt: str) -> str:
    """Dispatch to the converter for *fmt* (one of :data:`FORMATS`)."""
    fmt = fmt.lower()
    if fmt == "json":
        return json.dumps(data, indent=2, ensure_ascii=False)
    if fmt == "csv":
        return json_to_csv(data)
    if fmt == "xml":
        return json_to_excel_xml(data)
    if fmt == "html":
        return json_to_html_table(data)
    if fmt == "markdown":
        return json_to_markdown_table(data)
    raise ConversionError(f"Unsupported format {fmt!r}; expected one of {', '.join(FORMATS)}")
