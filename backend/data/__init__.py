"""Data conversion, cleaning and reshaping helpers."""

from backend.data.cleaner import clean, normalize_strings, remove_duplicates
from backend.data.converter import (
    EXTRA_FIELDS_KEY,
    FORMATS,
    ConversionError,
    convert,
    csv_to_json,
    json_to_csv,
    json_to_excel_xml,
    json_to_html_table,
    json_to_markdown_table,
)
from backend.data.transformer import extract_fields, group_by, rename_fields, sort_rows

__all__ = [
    "EXTRA_FIELDS_KEY",
    "FORMATS",
    "ConversionError",
    "convert",
    "csv_to_json",
    "json_to_csv",
    "json_to_excel_xml",
    "json_to_html_table",
    "json_to_markdown_table",
    "clean",
    "normalize_strings",
    "remove_duplicates",
    "extract_fields",
    "group_by",
    "rename_fields",
    "sort_rows",
]
