"""Typed errors raised by ``statement_recon``.

Contract
--------
- Input errors are fatal for a parse call: no partial table is returned.
- Heuristic uncertainty (ambiguous dates, low-confidence columns) is never an
  error; it is reported through diagnostics and warnings instead.
- Ledger errors are raised before any write, so the store is left untouched.
- Invalid caller arguments (unknown role, unknown kind) raise ``ValueError``.
"""

from __future__ import annotations


class StatementReconError(Exception):
    """Base class for all errors raised by this package."""


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------


class InputError(StatementReconError):
    """The statement file cannot be turned into a table."""


class EmptyInputError(InputError):
    def __init__(self, detail: str = "file contains no non-blank rows") -> None:
        super().__init__(f"Empty statement: {detail}")


class UnreadableInputError(InputError):
    pass


class SheetNotFoundError(InputError):
    def __init__(self, sheet_name: str | None, available: list[str]) -> None:
        self.sheet_name = sheet_name
        self.available = list(available)
        if sheet_name is None:
            msg = "Workbook contains no worksheets"
        else:
            msg = (
                f"Worksheet {sheet_name!r} not found. "
                f"Available sheets: {', '.join(self.available) or '(none)'}"
            )
        super().__init__(msg)


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


class RowMappingError(StatementReconError):
    """A single row could not be mapped into a candidate transaction."""

    def __init__(self, row_index: int, reason: str) -> None:
        self.row_index = row_index
        self.reason = reason
        super().__init__(f"Row {row_index}: {reason}")


# ---------------------------------------------------------------------------
# Ledger errors
# ---------------------------------------------------------------------------


class LedgerError(StatementReconError):
    pass


class AccountNotFoundError(LedgerError):
    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class CheckpointNotFoundError(LedgerError):
    def __init__(self, checkpoint_id: int) -> None:
        self.checkpoint_id = checkpoint_id
        super().__init__(f"Checkpoint {checkpoint_id} not found")


class CheckpointLockedError(LedgerError):
    """Import-owned checkpoints change only through import rollback."""

    def __init__(self, checkpoint_id: int, import_batch_id: int) -> None:
        self.checkpoint_id = checkpoint_id
        self.import_batch_id = import_batch_id
        super().__init__(
            f"Checkpoint {checkpoint_id} belongs to import batch {import_batch_id}; "
            "roll back the import instead of editing or deleting the checkpoint"
        )


class TransactionNotFoundError(LedgerError):
    def __init__(self, transaction_id: int) -> None:
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class ImportBatchNotFoundError(LedgerError):
    def __init__(self, batch_id: int) -> None:
        self.batch_id = batch_id
        super().__init__(f"Import batch {batch_id} not found")


class ImportAlreadyRolledBackError(LedgerError):
    def __init__(self, batch_id: int) -> None:
        self.batch_id = batch_id
        super().__init__(f"Import batch {batch_id} has already been rolled back")


__all__ = [
    "AccountNotFoundError",
    "CheckpointLockedError",
    "CheckpointNotFoundError",
    "EmptyInputError",
    "ImportAlreadyRolledBackError",
    "ImportBatchNotFoundError",
    "InputError",
    "LedgerError",
    "RowMappingError",
    "SheetNotFoundError",
    "StatementReconError",
    "TransactionNotFoundError",
    "UnreadableInputError",
]
