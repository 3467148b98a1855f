"""Public API for ``statement_recon``.

Parsing functions are pure and re-exported from :mod:`statement_recon.ingest`.
Ledger functions open their own unit of work: each mutation holds the
account's lock (:func:`~statement_recon.ledger.locks.account_lock`) and runs in
one ``session_scope`` so that a failure leaves the store exactly as it was.
Results are immutable snapshots, never live ORM objects.

The database defaults to ``DATABASE_URL``; every ledger function also accepts
an explicit ``database_url``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from db.client import session_scope
from db.models.ledger import SrCheckpoint, SrImportBatch, SrTransaction

from . import ledger
from .errors import (
    CheckpointNotFoundError,
    ImportBatchNotFoundError,
    StatementReconError,
    TransactionNotFoundError,
)
from .ingest import (
    candidate_transactions,
    classify_columns,
    detect_date_format,
    extract_statement_metadata,
    list_sheets,
    parse_amount,
    parse_date,
    parse_statement,
    suggest_checkpoint,
)
from .ledger.locks import account_lock
from .models import (
    CandidateTransaction,
    CheckpointDraft,
    CheckpointSummary,
    CheckpointView,
    Discrepancy,
    ImportOutcome,
    RollbackResult,
    TransactionView,
)

type _Owned = type[SrCheckpoint] | type[SrImportBatch] | type[SrTransaction]


def _owning_account(
    model: _Owned,
    row_id: int,
    not_found: type[StatementReconError],
    database_url: str | None,
) -> int:
    with session_scope(database_url=database_url) as session:
        row = session.get(model, row_id)
        if row is None:
            raise not_found(row_id)
        return row.account_id


# ---------------------------------------------------------------------------
# Accounts and imports
# ---------------------------------------------------------------------------


def create_account(
    name: str,
    *,
    bank_name: str | None = None,
    currency_code: str = "VND",
    database_url: str | None = None,
) -> int:
    with session_scope(database_url=database_url) as session:
        return ledger.create_account(
            session, name, bank_name=bank_name, currency_code=currency_code
        )


def commit_import(
    account_id: int,
    transactions: Iterable[CandidateTransaction],
    checkpoint: CheckpointDraft | None = None,
    *,
    file_name: str,
    statement_start: date | None = None,
    statement_end: date | None = None,
    total_records: int | None = None,
    database_url: str | None = None,
) -> ImportOutcome:
    """Persist reviewed candidates (and an optional checkpoint) as one batch."""

    with account_lock(account_id), session_scope(database_url=database_url) as session:
        return ledger.commit_import(
            session,
            account_id,
            transactions,
            checkpoint,
            file_name=file_name,
            statement_start=statement_start,
            statement_end=statement_end,
            total_records=total_records,
        )


def rollback_import(import_batch_id: int, *, database_url: str | None = None) -> RollbackResult:
    account_id = _owning_account(
        SrImportBatch, import_batch_id, ImportBatchNotFoundError, database_url
    )
    with account_lock(account_id), session_scope(database_url=database_url) as session:
        return ledger.rollback_import(session, import_batch_id)


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


def recalculate(account_id: int, *, database_url: str | None = None) -> list[CheckpointView]:
    """Recompute every checkpoint's derived balance for ``account_id``."""

    with account_lock(account_id), session_scope(database_url=database_url) as session:
        return ledger.recalculate_checkpoints(session, account_id)


def investigate_discrepancy(
    account_id: int, checkpoint_id: int, *, database_url: str | None = None
) -> list[Discrepancy]:
    with session_scope(database_url=database_url) as session:
        return ledger.investigate_discrepancy(session, account_id, checkpoint_id)


# ---------------------------------------------------------------------------
# Checkpoints
# ---------------------------------------------------------------------------


def create_checkpoint(
    account_id: int,
    checkpoint_date: date,
    declared_balance: Decimal | int | str,
    *,
    notes: str | None = None,
    database_url: str | None = None,
) -> CheckpointView:
    """Create a manual checkpoint (never owned by an import)."""

    with account_lock(account_id), session_scope(database_url=database_url) as session:
        return ledger.create_checkpoint(
            session, account_id, checkpoint_date, declared_balance, notes=notes
        )


def update_checkpoint(
    checkpoint_id: int,
    *,
    declared_balance: Decimal | int | str | None = None,
    checkpoint_date: date | None = None,
    notes: str | None = None,
    database_url: str | None = None,
) -> CheckpointView:
    account_id = _owning_account(
        SrCheckpoint, checkpoint_id, CheckpointNotFoundError, database_url
    )
    with account_lock(account_id), session_scope(database_url=database_url) as session:
        return ledger.update_checkpoint(
            session,
            checkpoint_id,
            declared_balance=declared_balance,
            checkpoint_date=checkpoint_date,
            notes=notes,
        )


def delete_checkpoint(checkpoint_id: int, *, database_url: str | None = None) -> None:
    account_id = _owning_account(
        SrCheckpoint, checkpoint_id, CheckpointNotFoundError, database_url
    )
    with account_lock(account_id), session_scope(database_url=database_url) as session:
        ledger.delete_checkpoint(session, checkpoint_id)


def list_checkpoints(account_id: int, *, database_url: str | None = None) -> list[CheckpointView]:
    with session_scope(database_url=database_url) as session:
        return ledger.list_checkpoints(session, account_id)


def checkpoint_summary(account_id: int, *, database_url: str | None = None) -> CheckpointSummary:
    with session_scope(database_url=database_url) as session:
        return ledger.checkpoint_summary(session, account_id)


def current_balance(account_id: int, *, database_url: str | None = None) -> Decimal:
    with session_scope(database_url=database_url) as session:
        return ledger.current_balance(session, account_id)


# ---------------------------------------------------------------------------
# Manual transactions
# ---------------------------------------------------------------------------


def add_transaction(
    account_id: int,
    transaction: CandidateTransaction,
    *,
    is_balance_adjustment: bool = False,
    database_url: str | None = None,
) -> TransactionView:
    with account_lock(account_id), session_scope(database_url=database_url) as session:
        return ledger.add_transaction(
            session, account_id, transaction, is_balance_adjustment=is_balance_adjustment
        )


def update_transaction(
    transaction_id: int,
    *,
    transaction_date: date | None = None,
    direction: str | None = None,
    amount: Decimal | int | str | None = None,
    description: str | None = None,
    reference: str | None = None,
    database_url: str | None = None,
) -> TransactionView:
    account_id = _owning_account(
        SrTransaction, transaction_id, TransactionNotFoundError, database_url
    )
    with account_lock(account_id), session_scope(database_url=database_url) as session:
        return ledger.update_transaction(
            session,
            transaction_id,
            transaction_date=transaction_date,
            direction=direction,
            amount=amount,
            description=description,
            reference=reference,
        )


def delete_transaction(transaction_id: int, *, database_url: str | None = None) -> None:
    account_id = _owning_account(
        SrTransaction, transaction_id, TransactionNotFoundError, database_url
    )
    with account_lock(account_id), session_scope(database_url=database_url) as session:
        ledger.delete_transaction(session, transaction_id)


__all__ = [
    "add_transaction",
    "candidate_transactions",
    "checkpoint_summary",
    "classify_columns",
    "commit_import",
    "create_account",
    "create_checkpoint",
    "current_balance",
    "delete_checkpoint",
    "delete_transaction",
    "detect_date_format",
    "extract_statement_metadata",
    "investigate_discrepancy",
    "list_checkpoints",
    "list_sheets",
    "parse_amount",
    "parse_date",
    "parse_statement",
    "recalculate",
    "rollback_import",
    "suggest_checkpoint",
    "update_checkpoint",
    "update_transaction",
]
