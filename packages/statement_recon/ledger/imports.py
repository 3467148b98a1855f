"""Commit reviewed candidate transactions to the ledger as one import batch.

Rules applied before anything is written:

- every candidate must carry a date and a debit or credit amount
  (``ValueError`` otherwise; the store is left untouched);
- with both ``statement_start`` and ``statement_end`` given, candidates
  outside that inclusive range are dropped;
- candidates already in the ledger (same date, direction and amount, plus
  the same description ignoring case or the same reference) are skipped.

Identical rows inside one batch are all kept: two equal ATM withdrawals on
the same day are two transactions. Exact-row dedupe belongs to spreadsheet
cleanup, before mapping.

Statements listed newest-first are inserted oldest-first so that the
per-account ``sequence`` follows the calendar. The optional checkpoint is
owned by the batch: only rolling back the import removes it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from typing import Literal

from sqlalchemy.orm import Session

from db.models.ledger import SrImportBatch, SrTransaction

from ..logging_setup import get_logger
from ..models import CandidateTransaction, CheckpointDraft, ImportOutcome
from .checkpoints import create_checkpoint
from .reconcile import ordered_transactions, recalculate_checkpoints, require_account
from .transactions import next_sequence

logger = get_logger("statement_recon.ledger.imports")

type _Dated = tuple[CandidateTransaction, date, Literal["debit", "credit"], Decimal]


def _validated(candidates: Sequence[CandidateTransaction]) -> list[_Dated]:
    """Pair each candidate with its date, direction and amount, rejecting incomplete ones."""

    out: list[_Dated] = []
    for i, tx in enumerate(candidates):
        if tx.date is None:
            raise ValueError(f"Transaction {i} has no date")
        if tx.direction is None or tx.amount is None:
            raise ValueError(f"Transaction {i} has no debit or credit amount")
        out.append((tx, tx.date, tx.direction, tx.amount))
    return out


def _norm_description(text: str | None) -> str:
    return (text or "").strip().lower()


def _matches_existing(tx: CandidateTransaction, existing: SrTransaction) -> bool:
    if existing.transaction_date != tx.date:
        return False
    if existing.direction != tx.direction or existing.amount != tx.amount:
        return False
    if _norm_description(existing.description) == _norm_description(tx.description):
        return True
    return bool(tx.reference and existing.reference and tx.reference == existing.reference)


def commit_import(
    session: Session,
    account_id: int,
    transactions: Iterable[CandidateTransaction],
    checkpoint: CheckpointDraft | None = None,
    *,
    file_name: str,
    statement_start: date | None = None,
    statement_end: date | None = None,
    total_records: int | None = None,
) -> ImportOutcome:
    """Write one import batch; the caller owns the transaction and the lock."""

    candidates = list(transactions)
    dated = _validated(candidates)
    require_account(session, account_id)

    in_range = dated
    if statement_start is not None and statement_end is not None:
        in_range = [d for d in dated if statement_start <= d[1] <= statement_end]
    out_of_range = len(candidates) - len(in_range)

    fresh = in_range
    if in_range:
        dates = [d[1] for d in in_range]
        existing = ordered_transactions(session, account_id, after=None, until=max(dates))
        existing = [e for e in existing if e.transaction_date >= min(dates)]
        fresh = [d for d in in_range if not any(_matches_existing(d[0], e) for e in existing)]
    duplicates = len(in_range) - len(fresh)

    # Newest-first statements are inserted oldest-first.
    if len(fresh) > 1 and fresh[0][1] > fresh[-1][1]:
        fresh = list(reversed(fresh))

    batch = SrImportBatch(
        account_id=account_id,
        file_name=file_name,
        total_records=total_records if total_records is not None else len(candidates),
        transaction_count=len(fresh),
        duplicate_count=duplicates,
        status="completed",
    )
    session.add(batch)
    session.flush()

    sequence = next_sequence(session, account_id)
    for offset, (tx, tx_date, direction, amount) in enumerate(fresh):
        session.add(
            SrTransaction(
                account_id=account_id,
                transaction_date=tx_date,
                sequence=sequence + offset,
                direction=direction,
                amount=amount,
                description=tx.description,
                reference=tx.reference,
                branch=tx.branch,
                running_balance=tx.running_balance,
                is_balance_adjustment=False,
                import_batch_id=batch.id,
            )
        )
    session.flush()

    checkpoint_id: int | None = None
    if checkpoint is not None:
        view = create_checkpoint(
            session,
            account_id,
            checkpoint.checkpoint_date,
            checkpoint.declared_balance,
            notes=checkpoint.notes,
            import_batch_id=batch.id,
        )
        checkpoint_id = view.id
    else:
        recalculate_checkpoints(session, account_id)

    logger.info(
        "import batch %d: %d inserted, %d duplicate(s), %d out of range",
        batch.id,
        len(fresh),
        duplicates,
        out_of_range,
    )
    return ImportOutcome(
        batch_id=batch.id,
        inserted=len(fresh),
        duplicates_skipped=duplicates,
        out_of_range_skipped=out_of_range,
        checkpoint_id=checkpoint_id,
    )


__all__ = ["commit_import"]
