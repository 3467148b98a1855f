"""Map table rows onto typed candidate transactions.

Rows that cannot be fully mapped are returned flagged (``errors`` set), never
dropped, so a reviewer can see exactly what was skipped and why. Footer rows
such as "Tổng cộng" end up flagged as missing a date.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal

from ..errors import RowMappingError
from ..logging_setup import get_logger
from ..models import (
    CandidateRow,
    CandidateTransaction,
    CellValue,
    ColumnMapping,
    ColumnMappingEntry,
    ParsedTable,
)
from .amounts import amount_to_debit_credit, parse_amount
from .dates import parse_date
from .header_locator import cell_text

logger = get_logger("statement_recon.mapping")

MAX_DESCRIPTION = 500
MAX_REFERENCE = 100

_AMOUNT_ROLES = ("debit", "credit", "amount")


def _text(value: CellValue, limit: int | None = None) -> str | None:
    text = cell_text(value)
    if not text:
        return None
    return text[:limit] if limit is not None else text


def _row_date(
    index: int,
    row: Mapping[str, CellValue],
    entries: list[ColumnMappingEntry],
    default_format: str | None,
) -> date:
    first_bad: str | None = None
    for entry in entries:
        raw = cell_text(row.get(entry.column))
        if not raw:
            continue
        parsed = parse_date(raw, entry.date_format or default_format)
        if parsed is not None:
            return parsed
        if first_bad is None:
            first_bad = raw
    if first_bad is not None:
        raise RowMappingError(index, f"Invalid date format: {first_bad}")
    raise RowMappingError(index, "Missing transaction date")


def _first[T](values: Iterable[T | None]) -> T | None:
    return next((v for v in values if v is not None), None)


def _entry_amounts(
    entry: ColumnMappingEntry, value: CellValue, has_negative_debits: bool
) -> tuple[Decimal | None, Decimal | None] | None:
    amount = parse_amount(value)
    if amount is None or amount == 0:
        return None
    if entry.role == "debit":
        return abs(amount), None
    if entry.role == "credit":
        return None, abs(amount)
    negative = entry.negative_debits if entry.negative_debits is not None else has_negative_debits
    return amount_to_debit_credit(amount, negative)


def map_row(
    index: int,
    row: Mapping[str, CellValue],
    mapping: ColumnMapping,
    *,
    date_format: str | None = None,
    has_negative_debits: bool | None = None,
) -> CandidateRow:
    """Map one row; problems become ``errors``/``warnings`` on the result."""

    default_format = date_format or mapping.date_format
    negative = mapping.has_negative_debits if has_negative_debits is None else has_negative_debits
    errors: list[str] = []
    warnings: list[str] = []

    tx_date: date | None = None
    try:
        tx_date = _row_date(index, row, mapping.columns_for("date"), default_format)
    except RowMappingError as e:
        errors.append(e.reason)

    debit: Decimal | None = None
    credit: Decimal | None = None
    source: str | None = None
    for entry in mapping.columns:
        if entry.role not in _AMOUNT_ROLES:
            continue
        split = _entry_amounts(entry, row.get(entry.column), negative)
        if split is None:
            continue
        if source is not None:
            warnings.append(
                f"Both {source!r} and {entry.column!r} hold amounts; using {entry.column!r}"
            )
        debit, credit = split
        source = entry.column
    if source is None:
        errors.append("Missing debit or credit amount")

    descriptions = [
        t for t in (_text(row.get(e.column)) for e in mapping.columns_for("description")) if t
    ]
    balance = _first(parse_amount(row.get(e.column)) for e in mapping.columns_for("balance"))
    reference = _first(
        _text(row.get(e.column), MAX_REFERENCE) for e in mapping.columns_for("reference")
    )
    branch = _first(_text(row.get(e.column)) for e in mapping.columns_for("branch"))

    transaction = CandidateTransaction(
        date=tx_date,
        description=" ".join(descriptions)[:MAX_DESCRIPTION] if descriptions else None,
        debit_amount=debit,
        credit_amount=credit,
        running_balance=balance,
        reference=reference,
        branch=branch,
    )
    return CandidateRow(index, transaction, tuple(errors), tuple(warnings))


def map_rows(
    table: ParsedTable,
    mapping: ColumnMapping,
    *,
    date_format: str | None = None,
    has_negative_debits: bool | None = None,
) -> list[CandidateRow]:
    """Map every data row of ``table``; flagged rows are kept in order."""

    missing = [e.column for e in mapping.columns if e.column not in table.headers]
    if missing:
        raise ValueError(f"Mapped column(s) not in table: {missing}")

    rows = [
        map_row(
            i,
            row,
            mapping,
            date_format=date_format,
            has_negative_debits=has_negative_debits,
        )
        for i, row in enumerate(table.rows)
    ]
    flagged = sum(1 for r in rows if not r.is_valid)
    logger.info("mapped %d row(s), %d flagged", len(rows), flagged)
    return rows


__all__ = ["MAX_DESCRIPTION", "MAX_REFERENCE", "map_row", "map_rows"]
