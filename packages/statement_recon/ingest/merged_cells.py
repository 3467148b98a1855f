"""Flatten merged cells and related spreadsheet artifacts.

Bank XLSX exports merge cells vertically (one date spanning several
transactions) and horizontally (a header label spanning two columns). The
resolver runs once the header row is known, in five steps:

1. Unmerge every range starting at or below the header row, copying the
   anchor cell's value and number format into the whole range. Ranges that
   start above the header (titles, account blocks) are left alone.
2. Forward-fill data columns that are more than 20% empty. Columns whose
   values are all amounts are never filled.
3. Drop rows that are entirely empty, keeping track of where the header
   row ends up.
4. Collapse repeated header names whose columns hold identical values in
   every non-footer row; otherwise suffix them ``" (2)"``, ``" (3)"``...
5. Drop data rows that are exact duplicates of an earlier row.

The resolver touches spreadsheets only; CSV has no merged cells.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Sequence
from dataclasses import dataclass

from openpyxl.worksheet.worksheet import Worksheet

from ..diagnostics import DiagnosticsSink
from ..models import CellValue, ParsedTable
from .amounts import parse_amount
from .header_locator import cell_text
from .tabular import clean_headers, is_blank_row, rows_to_maps, uniquify_headers, worksheet_grid

_FILL_THRESHOLD = 0.2

FOOTER_PHRASES: tuple[str, ...] = (
    "total",
    "tổng",
    "tổng cộng",
    "tổng phát sinh",
    "cộng phát sinh",
    "số dư cuối kỳ",
    "closing balance",
    "ending balance",
    "grand total",
)

_STAGE = "merged_cells"


@dataclass(frozen=True, slots=True)
class ResolvedSheet:
    """Worksheet grid after steps 1-3.

    ``grid`` keeps the pre-header rows; ``header_index`` points into it.
    """

    grid: list[list[CellValue]]
    header_index: int
    merges_applied: int = 0
    merges_skipped: int = 0


# ---------------------------------------------------------------------------
# Step 1: unmerge
# ---------------------------------------------------------------------------


def unmerge_from_header(ws: Worksheet, header_row: int) -> tuple[int, int]:
    """Unmerge ranges whose top row is ``header_row`` (1-based) or later.

    Returns ``(applied, skipped)`` range counts.
    """

    applied = skipped = 0
    for rng in sorted(ws.merged_cells.ranges, key=lambda r: (r.min_row, r.min_col)):
        if rng.min_row < header_row:
            skipped += 1
            continue
        anchor = ws.cell(row=rng.min_row, column=rng.min_col)
        value, number_format = anchor.value, anchor.number_format
        bounds = (rng.min_row, rng.min_col, rng.max_row, rng.max_col)
        ws.unmerge_cells(rng.coord)
        min_row, min_col, max_row, max_col = bounds
        for r in range(min_row, max_row + 1):
            for c in range(min_col, max_col + 1):
                cell = ws.cell(row=r, column=c)
                cell.value = value
                cell.number_format = number_format
        applied += 1
    return applied, skipped


# ---------------------------------------------------------------------------
# Step 2: forward-fill sparse columns
# ---------------------------------------------------------------------------


def _is_amount_column(values: Sequence[CellValue]) -> bool:
    present = [v for v in values if cell_text(v)]
    return bool(present) and all(parse_amount(v) is not None for v in present)


def forward_fill(
    rows: list[list[CellValue]], header_index: int, sink: DiagnosticsSink | None = None
) -> list[str]:
    """Fill empty data cells from above in sparse non-amount columns (in place).

    Returns the labels of the columns that were filled.
    """

    data = rows[header_index + 1 :]
    if not data:
        return []
    header = rows[header_index]
    width = max(len(r) for r in rows[header_index:])
    filled: list[str] = []
    for col in range(width):
        values = [r[col] if col < len(r) else None for r in data]
        empty = sum(1 for v in values if not cell_text(v))
        if empty in (0, len(values)) or empty / len(values) <= _FILL_THRESHOLD:
            continue
        if _is_amount_column(values):
            continue
        last: CellValue = None
        for r in data:
            if col >= len(r):
                r.extend([None] * (col + 1 - len(r)))
            if cell_text(r[col]):
                last = r[col]
            elif last is not None:
                r[col] = last
        label = cell_text(header[col]) if col < len(header) else ""
        filled.append(label or f"Column {col + 1}")
    if filled and sink is not None:
        sink.info(_STAGE, f"Forward-filled sparse columns: {', '.join(filled)}")
    return filled


# ---------------------------------------------------------------------------
# Step 3: empty rows
# ---------------------------------------------------------------------------


def drop_empty_rows(
    rows: Sequence[list[CellValue]], header_index: int
) -> tuple[list[list[CellValue]], int]:
    kept: list[list[CellValue]] = []
    new_header = 0
    for i, row in enumerate(rows):
        if i == header_index:
            new_header = len(kept)
            kept.append(row)
        elif not is_blank_row(row):
            kept.append(row)
    return kept, new_header


# ---------------------------------------------------------------------------
# Step 4: duplicate columns
# ---------------------------------------------------------------------------


def is_footer_row(row: Sequence[CellValue]) -> bool:
    for value in row:
        text = cell_text(value).lower()
        if text and any(text.startswith(p) for p in FOOTER_PHRASES):
            return True
    return False


def _same_cell(a: CellValue, b: CellValue) -> bool:
    return type(a) is type(b) and a == b


def collapse_duplicate_columns(
    labels: Sequence[str],
    rows: Sequence[Sequence[CellValue]],
    sink: DiagnosticsSink | None = None,
) -> tuple[list[str], list[list[CellValue]]]:
    """Drop repeated columns that are copies of the first same-named column."""

    def at(row: Sequence[CellValue], col: int) -> CellValue:
        return row[col] if col < len(row) else None

    body = [r for r in rows if not is_footer_row(r)]
    first_seen: dict[str, int] = {}
    keep: list[int] = []
    dropped: list[str] = []
    for col, label in enumerate(labels):
        first = first_seen.get(label)
        if first is None:
            first_seen[label] = col
            keep.append(col)
        elif all(_same_cell(at(r, first), at(r, col)) for r in body):
            dropped.append(label)
        else:
            keep.append(col)

    if dropped and sink is not None:
        sink.info(_STAGE, f"Collapsed duplicate columns: {', '.join(dropped)}")
    headers = uniquify_headers([labels[c] for c in keep])
    return headers, [[at(r, c) for c in keep] for r in rows]


# ---------------------------------------------------------------------------
# Step 5: duplicate rows
# ---------------------------------------------------------------------------


def _row_hash(row: dict[str, CellValue]) -> str:
    payload = json.dumps(
        row, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def drop_duplicate_rows(
    rows: Sequence[dict[str, CellValue]], sink: DiagnosticsSink | None = None
) -> list[dict[str, CellValue]]:
    seen: set[str] = set()
    out: list[dict[str, CellValue]] = []
    for row in rows:
        digest = _row_hash(row)
        if digest in seen:
            continue
        seen.add(digest)
        out.append(row)
    removed = len(rows) - len(out)
    if removed and sink is not None:
        sink.info(_STAGE, f"Dropped {removed} duplicate row(s)")
    return out


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def resolve_worksheet(
    ws: Worksheet, *, header_row: int, sink: DiagnosticsSink | None = None
) -> ResolvedSheet:
    """Run steps 1-3 for a worksheet whose header sits on sheet row ``header_row``."""

    applied, skipped = unmerge_from_header(ws, header_row)
    if sink is not None and (applied or skipped):
        sink.info(
            _STAGE,
            f"Unmerged {applied} range(s) at or below the header; "
            f"left {skipped} pre-header range(s) untouched",
        )
    grid = worksheet_grid(ws)
    header_index = header_row - 1
    forward_fill(grid, header_index, sink)
    grid, header_index = drop_empty_rows(grid, header_index)
    return ResolvedSheet(grid, header_index, applied, skipped)


def build_resolved_table(
    resolved: ResolvedSheet, sink: DiagnosticsSink | None = None
) -> ParsedTable:
    """Run steps 4-5 and produce the header-aligned table."""

    header_cells = resolved.grid[resolved.header_index]
    data = resolved.grid[resolved.header_index + 1 :]
    headers, data = collapse_duplicate_columns(clean_headers(header_cells), data, sink)
    rows = drop_duplicate_rows(rows_to_maps(headers, data), sink)
    return ParsedTable(
        headers=tuple(headers),
        rows=rows,
        detected_header_row_index=resolved.header_index,
    )


__all__ = [
    "FOOTER_PHRASES",
    "ResolvedSheet",
    "build_resolved_table",
    "collapse_duplicate_columns",
    "drop_duplicate_rows",
    "drop_empty_rows",
    "forward_fill",
    "is_footer_row",
    "resolve_worksheet",
    "unmerge_from_header",
]
