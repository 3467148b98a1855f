"""Manual transaction edits with reconciliation kept current.

Amounts are stored non-negative with an explicit ``direction``. Each account
keeps an increasing ``sequence`` so same-date transactions have a stable
order. A change dated on or before the latest checkpoint re-runs
reconciliation; later changes cannot affect any checkpoint.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.ledger import SrTransaction

from ..errors import TransactionNotFoundError
from ..ingest.mapping import MAX_REFERENCE
from ..logging_setup import get_logger
from ..models import CandidateTransaction, TransactionView
from .checkpoints import latest_checkpoint, to_decimal
from .reconcile import recalculate_checkpoints, require_account

logger = get_logger("statement_recon.ledger.transactions")

_ALLOWED_DIRECTIONS = ("debit", "credit")


def transaction_view(tx: SrTransaction) -> TransactionView:
    return TransactionView(
        id=tx.id,
        transaction_date=tx.transaction_date,
        direction=tx.direction,
        amount=tx.amount,
        description=tx.description,
        reference=tx.reference,
        running_balance=tx.running_balance,
        is_balance_adjustment=tx.is_balance_adjustment,
    )


def next_sequence(session: Session, account_id: int) -> int:
    stmt = select(func.max(SrTransaction.sequence)).where(
        SrTransaction.account_id == account_id
    )
    current = session.execute(stmt).scalar()
    return (current or 0) + 1


def _affects_checkpoints(session: Session, account_id: int, *dates: date) -> bool:
    latest = latest_checkpoint(session, account_id)
    return latest is not None and any(d <= latest.checkpoint_date for d in dates)


def _validate_direction(direction: str) -> str:
    if direction not in _ALLOWED_DIRECTIONS:
        raise ValueError(f"direction must be one of {_ALLOWED_DIRECTIONS}, got {direction!r}")
    return direction


def add_transaction(
    session: Session,
    account_id: int,
    transaction: CandidateTransaction,
    *,
    is_balance_adjustment: bool = False,
) -> TransactionView:
    """Insert one classified, dated transaction entered by hand."""

    require_account(session, account_id)
    if transaction.date is None:
        raise ValueError("transaction date is required")
    if transaction.direction is None or transaction.amount is None:
        raise ValueError("transaction needs a debit or credit amount")

    tx = SrTransaction(
        account_id=account_id,
        transaction_date=transaction.date,
        sequence=next_sequence(session, account_id),
        direction=transaction.direction,
        amount=transaction.amount,
        description=transaction.description,
        reference=transaction.reference,
        branch=transaction.branch,
        running_balance=transaction.running_balance,
        is_balance_adjustment=is_balance_adjustment,
    )
    session.add(tx)
    session.flush()
    logger.info("added transaction %d to account %d", tx.id, account_id)
    if _affects_checkpoints(session, account_id, tx.transaction_date):
        recalculate_checkpoints(session, account_id)
    return transaction_view(tx)


def get_transaction(session: Session, transaction_id: int) -> SrTransaction:
    tx = session.get(SrTransaction, transaction_id)
    if tx is None:
        raise TransactionNotFoundError(transaction_id)
    return tx


def update_transaction(
    session: Session,
    transaction_id: int,
    *,
    transaction_date: date | None = None,
    direction: str | None = None,
    amount: Decimal | int | str | None = None,
    description: str | None = None,
    reference: str | None = None,
) -> TransactionView:
    """Edit a transaction; ``None`` leaves a field unchanged."""

    tx = get_transaction(session, transaction_id)
    old_date = tx.transaction_date
    if amount is not None:
        value = to_decimal(amount, "amount")
        if value < 0:
            raise ValueError("amount must be non-negative; use direction for the sign")
        tx.amount = value
    if direction is not None:
        tx.direction = _validate_direction(direction)
    if transaction_date is not None:
        tx.transaction_date = transaction_date
    if description is not None:
        tx.description = description
    if reference is not None:
        tx.reference = reference[:MAX_REFERENCE]
    session.flush()
    if _affects_checkpoints(session, tx.account_id, old_date, tx.transaction_date):
        recalculate_checkpoints(session, tx.account_id)
    return transaction_view(tx)


def delete_transaction(session: Session, transaction_id: int) -> None:
    tx = get_transaction(session, transaction_id)
    account_id, tx_date = tx.account_id, tx.transaction_date
    session.delete(tx)
    session.flush()
    logger.info("deleted transaction %d of account %d", transaction_id, account_id)
    if _affects_checkpoints(session, account_id, tx_date):
        recalculate_checkpoints(session, account_id)


__all__ = [
    "add_transaction",
    "delete_transaction",
    "get_transaction",
    "next_sequence",
    "transaction_view",
    "update_transaction",
]
