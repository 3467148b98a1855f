"""Statement-level metadata derived from parsed rows.

The values are advisory pre-fill suggestions for checkpoint creation; they are
never persisted on their own.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime

from ..models import CheckpointDraft, ParsedTable, StatementMetadata
from .amounts import parse_amount
from .dates import parse_date

_EFFECTIVE_DATE_HINTS = ("effective", "hiệu lực", "hieu luc")
_DATE_HINTS = ("date", "ngày", "ngay", "giao dich")
_BALANCE_HINTS = ("balance", "số dư", "so du", "sodu", "running")


def _normalize(header: str) -> str:
    return " ".join(header.lower().split())


def _matching(headers: Sequence[str], hints: Sequence[str]) -> list[str]:
    return [h for h in headers if any(k in _normalize(h) for k in hints)]


def _find_header(headers: Sequence[str], hints: Sequence[str]) -> str | None:
    return next(iter(_matching(headers, hints)), None)


def find_date_columns(headers: Sequence[str]) -> list[str]:
    """Date-like headers, "effective date" columns first, each listed once."""

    ordered = _matching(headers, _EFFECTIVE_DATE_HINTS) + _matching(headers, _DATE_HINTS)
    return list(dict.fromkeys(ordered))


def find_date_column(headers: Sequence[str]) -> str | None:
    """Prefer an "effective date" column over a generic date column."""

    return next(iter(find_date_columns(headers)), None)


def _parsed_dates(
    table: ParsedTable, column: str, date_format: str | None
) -> list[tuple[date, int]]:
    dated: list[tuple[date, int]] = []
    for index, row in enumerate(table.rows):
        parsed = parse_date(row.get(column), date_format)
        if parsed is not None:
            dated.append((parsed, index))
    return dated


def find_balance_column(headers: Sequence[str]) -> str | None:
    return _find_header(headers, _BALANCE_HINTS)


def extract_statement_metadata(
    table: ParsedTable, *, date_format: str | None = None
) -> StatementMetadata:
    """Derive the statement's date range and ending balance.

    Dates are parsed with ``date_format`` (falling back to the whole date
    catalogue) from the first date-like column that yields any date; a
    header such as "Mã giao dịch" can look date-like and hold none. The
    ending balance is read from the row holding the latest date; among rows
    sharing that date the last one in file order wins.
    """

    dated: list[tuple[date, int]] = []
    for column in find_date_columns(table.headers):
        dated = _parsed_dates(table, column, date_format)
        if dated:
            break
    if not dated:
        return StatementMetadata()

    # Stable sort on the date only: ties keep file order.
    dated.sort(key=lambda pair: pair[0])
    start, _ = dated[0]
    end, end_row = dated[-1]

    ending_balance = None
    balance_column = find_balance_column(table.headers)
    if balance_column is not None:
        ending_balance = parse_amount(table.rows[end_row].get(balance_column))

    return StatementMetadata(
        detected_start_date=start,
        detected_end_date=end,
        detected_ending_balance=ending_balance,
    )


def suggest_checkpoint(metadata: StatementMetadata, *, now: datetime) -> CheckpointDraft | None:
    """Build a checkpoint suggestion from statement metadata.

    The date defaults to ``now``'s calendar date when the statement has no
    recognizable dates. Without an ending balance there is nothing to declare,
    so ``None`` is returned.
    """

    if metadata.detected_ending_balance is None:
        return None
    checkpoint_date = metadata.detected_end_date or now.date()
    return CheckpointDraft(
        checkpoint_date=checkpoint_date,
        declared_balance=metadata.detected_ending_balance,
        notes="Ending balance detected from statement",
    )


__all__ = [
    "extract_statement_metadata",
    "find_balance_column",
    "find_date_column",
    "find_date_columns",
    "suggest_checkpoint",
]
