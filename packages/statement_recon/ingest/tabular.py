"""Turn statement bytes into a rectangular grid of raw cells.

CSV
---
Decoded as UTF-8 (BOM tolerated) with a ``cp1258`` fallback for legacy
Vietnamese Windows exports. Records are split with the stdlib ``csv`` module
(RFC 4180: ``,`` delimiter, ``"`` quote, ``""`` escape, quoted delimiters and
newlines kept verbatim). Cells are trimmed and blank lines dropped; a line of
bare commas is *not* blank and keeps its position.

XLSX
----
Opened with openpyxl (``data_only=True`` so formulas yield cached values).
Dates become ISO ``yyyy-mm-dd`` strings, numbers stay numbers, strings are
trimmed with embedded newlines collapsed. Merged ranges are handled by
:mod:`statement_recon.ingest.merged_cells`; this module only reads values.
"""

from __future__ import annotations

import csv
import io
import zipfile
from collections.abc import Sequence
from datetime import date, datetime, time
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from ..errors import EmptyInputError, SheetNotFoundError, UnreadableInputError
from ..models import CellValue, ParsedTable
from .header_locator import cell_text

_ENCODINGS = ("utf-8-sig", "cp1258")


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


def decode_text(data: bytes) -> str:
    for encoding in _ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise UnreadableInputError(
        f"Could not decode CSV bytes with any of: {', '.join(_ENCODINGS)}"
    )


def read_csv_grid(data: bytes | str) -> list[list[str]]:
    """Split CSV content into trimmed rows, dropping blank lines."""

    text = decode_text(data) if isinstance(data, bytes) else data
    try:
        records = list(csv.reader(io.StringIO(text, newline="")))
    except csv.Error as e:
        raise UnreadableInputError(f"Failed to parse CSV: {e}") from e

    rows: list[list[str]] = []
    for record in records:
        # ``[]`` for an empty line, ``["   "]`` for a whitespace-only one.
        if len(record) <= 1 and not "".join(record).strip():
            continue
        rows.append([c.strip() for c in record])
    if not rows:
        raise EmptyInputError("CSV file is empty")
    return rows


# ---------------------------------------------------------------------------
# XLSX
# ---------------------------------------------------------------------------


def open_workbook(data: bytes) -> Workbook:
    # Merged ranges are only available in the full (non read-only) mode.
    try:
        return load_workbook(io.BytesIO(data), data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise UnreadableInputError(f"Failed to open XLSX workbook: {e}") from e


def list_sheets(data: bytes) -> list[str]:
    """Return the workbook's worksheet names in tab order."""

    return list(open_workbook(data).sheetnames)


def select_worksheet(workbook: Workbook, sheet_name: str | None = None) -> Worksheet:
    names = list(workbook.sheetnames)
    if not names:
        raise SheetNotFoundError(None, names)
    if sheet_name is None:
        return workbook[names[0]]
    if sheet_name not in names:
        raise SheetNotFoundError(sheet_name, names)
    return workbook[sheet_name]


def xlsx_value(value: Any) -> CellValue:
    """Normalize one openpyxl cell value into a raw table value."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int | float):
        return value
    text = cell_text(value)
    return text or None


def worksheet_grid(ws: Worksheet) -> list[list[CellValue]]:
    """Read every row of ``ws`` from sheet row 1 (index ``i`` is row ``i + 1``)."""

    if ws.max_row < 1 or ws.max_column < 1:
        return []
    return [
        [xlsx_value(v) for v in row]
        for row in ws.iter_rows(
            min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column, values_only=True
        )
    ]


def is_blank_row(row: Sequence[CellValue]) -> bool:
    return all(not cell_text(v) for v in row)


# ---------------------------------------------------------------------------
# Header row -> table
# ---------------------------------------------------------------------------


def clean_headers(cells: Sequence[Any]) -> list[str]:
    """Single-line header labels; blanks become ``Column {n}`` (1-based)."""

    return [cell_text(v) or f"Column {i + 1}" for i, v in enumerate(cells)]


def uniquify_headers(headers: Sequence[str]) -> list[str]:
    """Suffix repeated names with ``" (n)"``, n starting at 2."""

    seen: dict[str, int] = {}
    taken = set(headers)
    out: list[str] = []
    for name in headers:
        count = seen.get(name, 0) + 1
        seen[name] = count
        if count == 1:
            out.append(name)
            continue
        n = count
        candidate = f"{name} ({n})"
        while candidate in taken:
            n += 1
            candidate = f"{name} ({n})"
        taken.add(candidate)
        out.append(candidate)
    return out


def _cell_or_none(value: CellValue) -> CellValue:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def rows_to_maps(
    headers: Sequence[str], rows: Sequence[Sequence[CellValue]]
) -> list[dict[str, CellValue]]:
    """Align positional rows to headers; short rows are padded with ``None``."""

    out: list[dict[str, CellValue]] = []
    for row in rows:
        out.append(
            {h: (_cell_or_none(row[i]) if i < len(row) else None) for i, h in enumerate(headers)}
        )
    return out


def table_from_grid(grid: Sequence[Sequence[CellValue]], header_index: int) -> ParsedTable:
    headers = uniquify_headers(clean_headers(grid[header_index]))
    return ParsedTable(
        headers=tuple(headers),
        rows=rows_to_maps(headers, grid[header_index + 1 :]),
        detected_header_row_index=header_index,
    )


__all__ = [
    "clean_headers",
    "decode_text",
    "is_blank_row",
    "list_sheets",
    "open_workbook",
    "read_csv_grid",
    "rows_to_maps",
    "select_worksheet",
    "table_from_grid",
    "uniquify_headers",
    "worksheet_grid",
    "xlsx_value",
]
