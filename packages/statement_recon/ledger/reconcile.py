"""Recompute derived checkpoint balances from the transaction ledger.

For an account, checkpoints are taken in ``(checkpoint_date, id)`` order. Each
checkpoint's calculated balance is the previous checkpoint's *declared*
balance (0 for the first) plus the signed sum of transactions dated after the
previous checkpoint date, up to and including its own date:

    calculated[i] = declared[i-1] + sum(signed amounts in (date[i-1], date[i]])
    adjustment[i] = declared[i] - calculated[i]
    is_reconciled[i] = adjustment[i] == 0

Balance-adjustment transactions count like any other transaction. Arithmetic
is exact ``Decimal``; nothing is rounded or tolerance-compared. Running the
recalculation twice without intervening changes writes nothing the second time.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.ledger import SrAccount, SrCheckpoint, SrTransaction

from ..errors import AccountNotFoundError
from ..logging_setup import get_logger
from ..models import CheckpointView

logger = get_logger("statement_recon.ledger.reconcile")

_ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class CheckpointBalance:
    calculated_balance: Decimal
    adjustment_amount: Decimal
    is_reconciled: bool


def compute_checkpoint_balances(
    checkpoints: Sequence[tuple[date, Decimal]],
    transactions: Sequence[tuple[date, Decimal]],
) -> list[CheckpointBalance]:
    """Derive balances for ``(date, declared)`` checkpoints, already in order.

    ``transactions`` are ``(date, signed_amount)`` pairs in any order.
    """

    out: list[CheckpointBalance] = []
    prev_date: date | None = None
    prev_declared = _ZERO
    for cp_date, declared in checkpoints:
        window = sum(
            (
                amount
                for tx_date, amount in transactions
                if tx_date <= cp_date and (prev_date is None or tx_date > prev_date)
            ),
            _ZERO,
        )
        calculated = prev_declared + window
        adjustment = declared - calculated
        out.append(CheckpointBalance(calculated, adjustment, adjustment == _ZERO))
        prev_date, prev_declared = cp_date, declared
    return out


def ordered_checkpoints(session: Session, account_id: int) -> list[SrCheckpoint]:
    stmt = (
        select(SrCheckpoint)
        .where(SrCheckpoint.account_id == account_id)
        .order_by(SrCheckpoint.checkpoint_date, SrCheckpoint.id)
    )
    return list(session.execute(stmt).scalars().all())


def ordered_transactions(
    session: Session,
    account_id: int,
    *,
    after: date | None = None,
    until: date | None = None,
) -> list[SrTransaction]:
    """Transactions in ``(after, until]`` ordered by date, sequence and id."""

    stmt = select(SrTransaction).where(SrTransaction.account_id == account_id)
    if after is not None:
        stmt = stmt.where(SrTransaction.transaction_date > after)
    if until is not None:
        stmt = stmt.where(SrTransaction.transaction_date <= until)
    stmt = stmt.order_by(
        SrTransaction.transaction_date, SrTransaction.sequence, SrTransaction.id
    )
    return list(session.execute(stmt).scalars().all())


def require_account(session: Session, account_id: int) -> SrAccount:
    account = session.get(SrAccount, account_id)
    if account is None:
        raise AccountNotFoundError(account_id)
    return account


def recalculate_checkpoints(session: Session, account_id: int) -> list[CheckpointView]:
    """Recompute and store derived checkpoint fields for one account.

    Only checkpoints whose derived values actually changed are written. The
    caller owns the transaction (and the account lock).
    """

    require_account(session, account_id)
    session.flush()
    checkpoints = ordered_checkpoints(session, account_id)
    transactions = ordered_transactions(session, account_id)
    balances = compute_checkpoint_balances(
        [(cp.checkpoint_date, cp.declared_balance) for cp in checkpoints],
        [(tx.transaction_date, tx.signed_amount) for tx in transactions],
    )

    changed = 0
    for cp, bal in zip(checkpoints, balances, strict=True):
        if (
            cp.calculated_balance == bal.calculated_balance
            and cp.adjustment_amount == bal.adjustment_amount
            and cp.is_reconciled == bal.is_reconciled
        ):
            continue
        cp.calculated_balance = bal.calculated_balance
        cp.adjustment_amount = bal.adjustment_amount
        cp.is_reconciled = bal.is_reconciled
        cp.updated_at = func.now()
        changed += 1
    session.flush()

    logger.info(
        "recalculated account %d: %d checkpoint(s), %d updated",
        account_id,
        len(checkpoints),
        changed,
    )
    return [
        CheckpointView(
            id=cp.id,
            account_id=cp.account_id,
            checkpoint_date=cp.checkpoint_date,
            declared_balance=cp.declared_balance,
            calculated_balance=bal.calculated_balance,
            adjustment_amount=bal.adjustment_amount,
            is_reconciled=bal.is_reconciled,
            import_batch_id=cp.import_batch_id,
            notes=cp.notes,
        )
        for cp, bal in zip(checkpoints, balances, strict=True)
    ]


__all__ = [
    "CheckpointBalance",
    "compute_checkpoint_balances",
    "ordered_checkpoints",
    "ordered_transactions",
    "recalculate_checkpoints",
    "require_account",
]
