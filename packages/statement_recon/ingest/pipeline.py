"""End-to-end statement parsing: bytes in, reviewed-ready table out.

Flow
----
CSV:  decode -> split records -> locate header -> header-aligned table.

XLSX (two passes):
1. read the raw sheet, locate the header among its non-empty rows;
2. resolve merged cells with that header as the boundary (ranges above it are
   metadata and stay merged), then build the table. The header index is
   carried through the resolver, so it is reported in the same non-empty-row
   space the locator scanned.

Both: classify columns, detect the date format, extract statement metadata.
Every decision is recorded in the :class:`DiagnosticsSink` returned on the
result. Nothing here touches the ledger.
"""

from __future__ import annotations

from collections.abc import Mapping

from ..diagnostics import DiagnosticsSink
from ..errors import EmptyInputError
from ..models import (
    INPUT_KINDS,
    CandidateRow,
    ColumnMapping,
    DateFormatDetection,
    ParsedTable,
    ParseResult,
)
from .column_classifier import (
    SAMPLE_ROWS,
    apply_overrides,
    build_column_mapping,
    classify_columns,
)
from .dates import UNKNOWN_FORMAT, detect_date_format
from .header_locator import CSV_SCAN_ROWS, XLSX_SCAN_ROWS, locate_header_row
from .mapping import map_rows
from .merged_cells import build_resolved_table, resolve_worksheet
from .metadata import extract_statement_metadata
from .tabular import (
    is_blank_row,
    open_workbook,
    read_csv_grid,
    select_worksheet,
    table_from_grid,
    worksheet_grid,
)


def _read_csv(data: bytes | str, sink: DiagnosticsSink) -> ParsedTable:
    grid = read_csv_grid(data)
    sink.debug("tabular", f"CSV has {len(grid)} non-blank row(s)")
    detection = locate_header_row(grid, max_rows=CSV_SCAN_ROWS, sink=sink)
    return table_from_grid(grid, detection.index)


def _read_xlsx(data: bytes, sheet_name: str | None, sink: DiagnosticsSink) -> ParsedTable:
    ws = select_worksheet(open_workbook(data), sheet_name)
    raw = worksheet_grid(ws)
    positions = [i for i, row in enumerate(raw) if not is_blank_row(row)]
    if not positions:
        raise EmptyInputError(f"worksheet {ws.title!r} has no non-blank rows")
    sink.debug("tabular", f"Sheet {ws.title!r} has {len(positions)} non-blank row(s)")

    detection = locate_header_row(
        [raw[i] for i in positions], max_rows=XLSX_SCAN_ROWS, sink=sink
    )
    header_row = positions[detection.index] + 1
    resolved = resolve_worksheet(ws, header_row=header_row, sink=sink)
    return build_resolved_table(resolved, sink)


def _detect_table_date_format(
    table: ParsedTable, date_column: str | None
) -> DateFormatDetection:
    if date_column is None:
        return DateFormatDetection(UNKNOWN_FORMAT, 0.0, ("No date column detected",))
    return detect_date_format(table.column(date_column)[:SAMPLE_ROWS])


def parse_statement(
    data: bytes | str,
    kind: str,
    *,
    sheet_name: str | None = None,
    sink: DiagnosticsSink | None = None,
) -> ParseResult:
    """Parse a CSV or XLSX statement into a :class:`ParseResult`.

    Raises :class:`~statement_recon.errors.InputError` subclasses for empty,
    undecodable or unopenable input and ``ValueError`` for an unknown
    ``kind``. Heuristic doubts are diagnostics, never exceptions.
    """

    if kind not in INPUT_KINDS:
        raise ValueError(f"Unsupported input kind {kind!r}. Allowed: {list(INPUT_KINDS)}")
    sink = sink if sink is not None else DiagnosticsSink()

    if kind == "csv":
        table = _read_csv(data, sink)
    else:
        if isinstance(data, str):
            raise ValueError("XLSX input must be bytes")
        table = _read_xlsx(data, sheet_name, sink)
    sink.info(
        "tabular",
        f"{len(table.headers)} column(s), {len(table.rows)} data row(s), "
        f"header at row {table.detected_header_row_index}",
    )

    classifications = classify_columns(table.headers, table.rows)
    for c in classifications:
        for w in c.warnings:
            sink.warning("columns", f"{c.name}: {w}")
        if c.needs_manual_mapping:
            sink.warning("columns", f"{c.name}: {c.justification}")

    date_column = next((c.name for c in classifications if c.suggested_role == "date"), None)
    date_format = _detect_table_date_format(table, date_column)
    if date_column is None:
        sink.warning("dates", "No date column detected")

    fmt = date_format.format if date_format.format != UNKNOWN_FORMAT else None
    metadata = extract_statement_metadata(table, date_format=fmt)
    if metadata.detected_end_date is not None:
        sink.info(
            "metadata",
            f"Statement covers {metadata.detected_start_date} to {metadata.detected_end_date}",
        )

    return ParseResult(
        table=table,
        metadata=metadata,
        classifications=classifications,
        date_format=date_format,
        diagnostics=sink.records,
    )


def candidate_transactions(
    result: ParseResult,
    mapping: ColumnMapping | None = None,
    overrides: Mapping[str, str] | None = None,
    *,
    date_format: str | None = None,
) -> list[CandidateRow]:
    """Map a parse result into candidate rows.

    Without an explicit ``mapping`` the suggested classifications are used,
    with ``overrides`` (column -> role) applied on top.
    """

    if date_format is None and result.date_format.format != UNKNOWN_FORMAT:
        date_format = result.date_format.format
    if mapping is None:
        classifications = apply_overrides(result.classifications, overrides or {})
        mapping = build_column_mapping(classifications, date_format=date_format)
    return map_rows(result.table, mapping, date_format=date_format)


__all__ = ["candidate_transactions", "parse_statement"]
