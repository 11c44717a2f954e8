"""Render report rows to CSV, TXT, JSON, XML and XLSX bytes."""
from __future__ import annotations

import codecs
import csv
import io
import json
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Iterable, Sequence

import pandas as pd
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "csv": "text/csv",
    "json": "application/json",
    "xml": "application/xml",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "txt": "text/plain",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

SEPARATOR_ALIASES = {
    "tab": "\t",
    "\\t": "\t",
    "tabulation": "\t",
    "semicolon": ";",
    "comma": ",",
    "pipe": "|",
}

_XML_TAG_INVALID = re.compile(r"[^A-Za-z0-9_.-]")


class ReportGenerationError(Exception):
    """Raised when report content cannot be produced."""


class UnsupportedFormatError(ReportGenerationError):
    """Raised when a report format has no renderer."""


def content_type_for(fmt: str | None) -> str:
    """Map a report format to its MIME type, defaulting to octet-stream."""
    return CONTENT_TYPES.get((fmt or "").lower(), DEFAULT_CONTENT_TYPE)


def file_extension_for(fmt: str) -> str:
    return (fmt or "").lower()


def resolve_separator(value: str | None, default: str = ",") -> str:
    if value is None or value == "":
        return default
    if value in SEPARATOR_ALIASES:
        return SEPARATOR_ALIASES[value]
    lowered = value.strip().lower()
    if lowered in SEPARATOR_ALIASES:
        return SEPARATOR_ALIASES[lowered]
    if len(value) == 1:
        return value
    logger.warning("Unsupported separator %r; falling back to %r", value, default)
    return default


def resolve_encoding(value: str | None) -> str:
    if not value:
        return "utf-8"
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        logger.warning("Unknown encoding %r; falling back to UTF-8", value)
        return "utf-8"


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def render_delimited(
    columns: Sequence[str],
    rows: Iterable[dict[str, Any]],
    *,
    separator: str = ",",
    encoding: str = "utf-8",
) -> bytes:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, delimiter=separator, lineterminator="\r\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([_cell(row.get(column)) for column in columns])
    return buffer.getvalue().encode(encoding, errors="replace")


def render_json(columns: Sequence[str], rows: Iterable[dict[str, Any]], metadata: dict[str, Any]) -> bytes:
    payload = {
        "report": metadata,
        "columns": list(columns),
        "rows": [{column: row.get(column) for column in columns} for row in rows],
    }
    return json.dumps(payload, cls=DjangoJSONEncoder, ensure_ascii=False, indent=2).encode("utf-8")


def _xml_tag(name: str) -> str:
    tag = _XML_TAG_INVALID.sub("_", name.strip()) or "field"
    if not (tag[0].isalpha() or tag[0] == "_"):
        tag = f"_{tag}"
    return tag


def render_xml(columns: Sequence[str], rows: Iterable[dict[str, Any]], metadata: dict[str, Any]) -> bytes:
    root = ET.Element("report", {
        _xml_tag(key): "" if value is None else str(value)
        for key, value in metadata.items()
    })
    for row in rows:
        row_el = ET.SubElement(root, "row")
        for column in columns:
            child = ET.SubElement(row_el, _xml_tag(column))
            value = _cell(row.get(column))
            child.text = str(value)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def render_xlsx(
    columns: Sequence[str],
    rows: Iterable[dict[str, Any]],
    metadata: dict[str, Any],
    *,
    sheet_name: str = "Report",
) -> bytes:
    df_rows = pd.DataFrame(
        [{column: row.get(column) for column in columns} for row in rows],
        columns=list(columns),
    )
    df_summary = pd.DataFrame(
        [{"field": key, "value": "" if value is None else str(value)} for key, value in metadata.items()],
        columns=["field", "value"],
    )

    sheet_name = (sheet_name or "Report")[:31]
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df_rows.to_excel(writer, sheet_name=sheet_name, index=False)
        df_summary.to_excel(writer, sheet_name="Summary", index=False)
        writer.sheets[sheet_name].freeze_panes = "A2"
    return buffer.getvalue()


def render(
    fmt: str,
    columns: Sequence[str],
    rows: list[dict[str, Any]],
    metadata: dict[str, Any],
    *,
    separator: str | None = None,
    encoding: str | None = None,
    sheet_name: str = "Report",
) -> bytes:
    """Dispatch to the renderer for ``fmt`` (case-insensitive)."""

    key = (fmt or "").lower()
    if key == "csv":
        return render_delimited(
            columns, rows,
            separator=resolve_separator(separator, ","),
            encoding=resolve_encoding(encoding),
        )
    if key == "txt":
        return render_delimited(
            columns, rows,
            separator=resolve_separator(separator, "\t"),
            encoding=resolve_encoding(encoding),
        )
    if key == "json":
        return render_json(columns, rows, metadata)
    if key == "xml":
        return render_xml(columns, rows, metadata)
    if key == "xlsx":
        return render_xlsx(columns, rows, metadata, sheet_name=sheet_name)
    raise UnsupportedFormatError(f"Unsupported report format: {fmt!r}")
