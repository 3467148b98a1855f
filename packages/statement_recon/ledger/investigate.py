"""Explain a checkpoint's adjustment, day by day.

For the target checkpoint the period runs from the previous checkpoint's date
(exclusive; open-ended for the first checkpoint) to its own date (inclusive).
The report lists the totals the reconciler used plus, per transaction date,
the day's credits, debits and running calculated balance. Where the statement
printed a running balance, the day's last printed value is compared with the
calculated one, which usually pinpoints the day a transaction went missing.

Read-only: nothing here writes to the store.
"""

from __future__ import annotations

from decimal import Decimal
from itertools import groupby

from sqlalchemy.orm import Session

from ..errors import CheckpointNotFoundError
from ..models import DailyActivity, Discrepancy
from .reconcile import ordered_checkpoints, ordered_transactions, require_account
from .transactions import transaction_view

_ZERO = Decimal("0")


def investigate_discrepancy(
    session: Session, account_id: int, checkpoint_id: int
) -> list[Discrepancy]:
    require_account(session, account_id)
    checkpoints = ordered_checkpoints(session, account_id)
    position = next((i for i, cp in enumerate(checkpoints) if cp.id == checkpoint_id), None)
    if position is None:
        raise CheckpointNotFoundError(checkpoint_id)

    target = checkpoints[position]
    previous = checkpoints[position - 1] if position > 0 else None
    period_start = previous.checkpoint_date if previous is not None else None
    start_balance = previous.declared_balance if previous is not None else _ZERO

    txs = ordered_transactions(
        session, account_id, after=period_start, until=target.checkpoint_date
    )
    credits = sum((tx.amount for tx in txs if tx.direction == "credit"), _ZERO)
    debits = sum((tx.amount for tx in txs if tx.direction == "debit"), _ZERO)

    daily: list[DailyActivity] = []
    running = start_balance
    for day, group in groupby(txs, key=lambda tx: tx.transaction_date):
        day_txs = list(group)
        day_credits = sum((t.amount for t in day_txs if t.direction == "credit"), _ZERO)
        day_debits = sum((t.amount for t in day_txs if t.direction == "debit"), _ZERO)
        running = running + day_credits - day_debits
        printed = day_txs[-1].running_balance
        daily.append(
            DailyActivity(
                date=day,
                credits=day_credits,
                debits=day_debits,
                net_change=day_credits - day_debits,
                running_calculated=running,
                statement_balance=printed,
                balance_mismatch=printed - running if printed is not None else None,
                transactions=tuple(transaction_view(t) for t in day_txs),
            )
        )

    # Expected from the ledger's own activity; actual from the declared balances.
    expected = credits - debits
    actual = target.declared_balance - start_balance
    return [
        Discrepancy(
            checkpoint_id=target.id,
            period_start=period_start,
            period_end=target.checkpoint_date,
            period_start_balance=start_balance,
            total_credits=credits,
            total_debits=debits,
            expected_change=expected,
            actual_change=actual,
            difference=actual - expected,
            daily=tuple(daily),
        )
    ]


__all__ = ["investigate_discrepancy"]
