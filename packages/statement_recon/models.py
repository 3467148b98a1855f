"""Value types shared by the parsing pipeline and the ledger.

Parsing side
------------
- ``CellValue`` / ``RowMap``: raw cells keyed by header name.
- ``ParsedTable``: headers, data rows and the detected header row index.
- ``CandidateTransaction`` / ``CandidateRow``: typed rows produced from a
  ``RowMap`` under a ``ColumnMapping``; flagged rows are kept, not dropped.
- ``ColumnClassification``: advisory column role with confidence and a
  human-readable justification.
- ``ColumnMapping``: the confirmed (possibly hand-edited) role per column.
  Validated with pydantic because it is usually loaded from a JSON file.

Ledger side
-----------
Immutable snapshots returned by ledger operations so callers never hold live
ORM objects after the unit of work has closed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .diagnostics import Diagnostic

if TYPE_CHECKING:
    from db.models.ledger import SrCheckpoint

# ---------------------------------------------------------------------------
# Raw tabular values
# ---------------------------------------------------------------------------

# Strings for CSV cells; XLSX cells keep numbers as numbers and dates as ISO
# ``yyyy-mm-dd`` strings. Empty cells are ``None``.
type CellValue = str | int | float | Decimal | None

type RowMap = Mapping[str, CellValue]
"""One data row keyed by (unique) header name. Every header has a value."""

type InputKind = Literal["csv", "xlsx"]
INPUT_KINDS: tuple[str, ...] = ("csv", "xlsx")

# Plain alias (not a ``type`` statement) so pydantic can validate against it.
ColumnRole = Literal[
    "date",
    "description",
    "debit",
    "credit",
    "balance",
    "amount",
    "reference",
    "branch",
    "ignore",
]
COLUMN_ROLES: tuple[str, ...] = (
    "date",
    "description",
    "debit",
    "credit",
    "balance",
    "amount",
    "reference",
    "branch",
    "ignore",
)


@dataclass(frozen=True, slots=True)
class ParsedTable:
    """Header-aligned table produced by the reader stages.

    ``detected_header_row_index`` counts non-blank rows of the source (the
    same row space the header locator scanned).
    """

    headers: tuple[str, ...]
    rows: list[dict[str, CellValue]]
    detected_header_row_index: int

    def column(self, name: str) -> list[CellValue]:
        return [row.get(name) for row in self.rows]


# ---------------------------------------------------------------------------
# Column classification and mapping
# ---------------------------------------------------------------------------


class ColumnClassification(BaseModel):
    """Advisory role suggestion for one column."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    suggested_role: ColumnRole
    confidence: float
    justification: str
    sample_values: tuple[str, ...] = ()
    # Only set for date columns.
    date_format: str | None = None
    warnings: tuple[str, ...] = ()
    needs_manual_mapping: bool = False

    @field_validator("confidence")
    @classmethod
    def _confidence_in_unit_interval(cls, v: float) -> float:
        fv = float(v)
        if 0.0 <= fv <= 1.0:
            return fv
        raise ValueError("confidence must be within [0,1]")


class ColumnMappingEntry(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid", str_strip_whitespace=True)

    column: str
    role: ColumnRole
    # Per-column overrides; fall back to the mapping-level settings.
    date_format: str | None = None
    negative_debits: bool | None = None


class ColumnMapping(BaseModel):
    """Confirmed column roles for a statement, usually reviewed by a human."""

    model_config = ConfigDict(strict=True, extra="forbid")

    columns: list[ColumnMappingEntry]
    date_format: str | None = None
    has_negative_debits: bool = True

    @model_validator(mode="after")
    def _columns_unique(self) -> ColumnMapping:
        seen: set[str] = set()
        for entry in self.columns:
            if entry.column in seen:
                raise ValueError(f"column {entry.column!r} is mapped more than once")
            seen.add(entry.column)
        return self

    def columns_for(self, role: str) -> list[ColumnMappingEntry]:
        return [c for c in self.columns if c.role == role]


# ---------------------------------------------------------------------------
# Candidate transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CandidateTransaction:
    """Typed statement row, not yet persisted.

    ``debit_amount`` and ``credit_amount`` are non-negative and mutually
    exclusive: exactly one is set, or both are ``None`` (unclassified).
    """

    date: date | None
    description: str | None = None
    debit_amount: Decimal | None = None
    credit_amount: Decimal | None = None
    running_balance: Decimal | None = None
    reference: str | None = None
    branch: str | None = None

    def __post_init__(self) -> None:
        if self.debit_amount is not None and self.credit_amount is not None:
            raise ValueError("a candidate transaction cannot carry both debit and credit")
        for name in ("debit_amount", "credit_amount"):
            val = getattr(self, name)
            if val is not None and val < 0:
                raise ValueError(f"{name} must be non-negative")

    @property
    def direction(self) -> Literal["debit", "credit"] | None:
        if self.debit_amount is not None:
            return "debit"
        if self.credit_amount is not None:
            return "credit"
        return None

    @property
    def amount(self) -> Decimal | None:
        return self.debit_amount if self.debit_amount is not None else self.credit_amount

    @property
    def signed_amount(self) -> Decimal | None:
        if self.debit_amount is not None:
            return -self.debit_amount
        return self.credit_amount


@dataclass(frozen=True, slots=True)
class CandidateRow:
    """A mapped row plus the problems found while mapping it."""

    row_index: int
    transaction: CandidateTransaction
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


# ---------------------------------------------------------------------------
# Detection results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DateFormatDetection:
    format: str
    confidence: float
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class StatementMetadata:
    """Advisory pre-fill values for checkpoint creation (never persisted)."""

    detected_start_date: date | None = None
    detected_end_date: date | None = None
    detected_ending_balance: Decimal | None = None


@dataclass(frozen=True, slots=True)
class ParseResult:
    table: ParsedTable
    metadata: StatementMetadata
    classifications: list[ColumnClassification]
    date_format: DateFormatDetection
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def headers(self) -> tuple[str, ...]:
        return self.table.headers

    @property
    def rows(self) -> list[dict[str, CellValue]]:
        return self.table.rows

    @property
    def detected_header_row_index(self) -> int:
        return self.table.detected_header_row_index

    @property
    def warnings(self) -> list[str]:
        return [d.message for d in self.diagnostics if d.severity in ("warning", "error")]


# ---------------------------------------------------------------------------
# Ledger snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CheckpointDraft:
    """Checkpoint values to create, e.g. suggested from statement metadata."""

    checkpoint_date: date
    declared_balance: Decimal
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class CheckpointView:
    id: int
    account_id: int
    checkpoint_date: date
    declared_balance: Decimal
    calculated_balance: Decimal
    adjustment_amount: Decimal
    is_reconciled: bool
    import_batch_id: int | None
    notes: str | None

    @classmethod
    def from_row(cls, cp: SrCheckpoint) -> CheckpointView:
        return cls(
            id=cp.id,
            account_id=cp.account_id,
            checkpoint_date=cp.checkpoint_date,
            declared_balance=cp.declared_balance,
            calculated_balance=cp.calculated_balance,
            adjustment_amount=cp.adjustment_amount,
            is_reconciled=cp.is_reconciled,
            import_batch_id=cp.import_batch_id,
            notes=cp.notes,
        )


@dataclass(frozen=True, slots=True)
class CheckpointSummary:
    total_checkpoints: int
    reconciled_count: int
    unreconciled_count: int
    total_adjustment: Decimal
    earliest_date: date | None
    latest_date: date | None


@dataclass(frozen=True, slots=True)
class ImportOutcome:
    batch_id: int
    inserted: int
    # Candidates matching a transaction already in the ledger.
    duplicates_skipped: int
    out_of_range_skipped: int
    checkpoint_id: int | None


@dataclass(frozen=True, slots=True)
class RollbackResult:
    deleted_transaction_count: int
    message: str


@dataclass(frozen=True, slots=True)
class TransactionView:
    id: int
    transaction_date: date
    direction: str
    amount: Decimal
    description: str | None
    reference: str | None
    running_balance: Decimal | None
    is_balance_adjustment: bool


@dataclass(frozen=True, slots=True)
class DailyActivity:
    date: date
    credits: Decimal
    debits: Decimal
    net_change: Decimal
    running_calculated: Decimal
    # Printed running balance of the day's last transaction, when available.
    statement_balance: Decimal | None
    balance_mismatch: Decimal | None
    transactions: tuple[TransactionView, ...] = ()


@dataclass(frozen=True, slots=True)
class Discrepancy:
    """Explanation of one checkpoint's adjustment over its period."""

    checkpoint_id: int
    period_start: date | None
    period_end: date
    period_start_balance: Decimal
    total_credits: Decimal
    total_debits: Decimal
    expected_change: Decimal
    actual_change: Decimal
    difference: Decimal
    daily: tuple[DailyActivity, ...] = ()

    @property
    def mismatched_days(self) -> list[DailyActivity]:
        return [d for d in self.daily if d.balance_mismatch not in (None, Decimal("0"))]


__all__ = [
    "COLUMN_ROLES",
    "INPUT_KINDS",
    "CandidateRow",
    "CandidateTransaction",
    "CellValue",
    "CheckpointDraft",
    "CheckpointSummary",
    "CheckpointView",
    "ColumnClassification",
    "ColumnMapping",
    "ColumnMappingEntry",
    "ColumnRole",
    "DailyActivity",
    "DateFormatDetection",
    "Discrepancy",
    "ImportOutcome",
    "InputKind",
    "ParseResult",
    "ParsedTable",
    "RollbackResult",
    "RowMap",
    "StatementMetadata",
    "TransactionView",
]
