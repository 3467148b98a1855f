"""Balance checkpoint CRUD and account balance queries.

Ownership rule: a checkpoint created by an import (``import_batch_id`` set)
can only disappear through rollback of that import. Editing or deleting it
directly raises :class:`~statement_recon.errors.CheckpointLockedError` before
anything is written. Manual checkpoints (``import_batch_id is None``) are
freely editable.

Every mutation re-runs reconciliation for the account in the same session.
Functions here take an open ``Session`` and never commit or lock; see
:mod:`statement_recon.api` for the locked, transactional entry points.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.ledger import SrCheckpoint, SrTransaction

from ..errors import CheckpointLockedError, CheckpointNotFoundError
from ..logging_setup import get_logger
from ..models import CheckpointSummary, CheckpointView
from .reconcile import (
    ordered_checkpoints,
    ordered_transactions,
    recalculate_checkpoints,
    require_account,
)

logger = get_logger("statement_recon.ledger.checkpoints")

_ZERO = Decimal("0")


def to_decimal(value: Any, field: str) -> Decimal:
    """Coerce a caller-supplied money value to ``Decimal`` (``ValueError`` if not)."""

    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value).strip())
        except ArithmeticError as e:
            raise ValueError(f"{field} must be a number, got {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"{field} must be finite")
    return d


def get_checkpoint(session: Session, checkpoint_id: int) -> SrCheckpoint:
    cp = session.get(SrCheckpoint, checkpoint_id)
    if cp is None:
        raise CheckpointNotFoundError(checkpoint_id)
    return cp


def _require_manual(cp: SrCheckpoint) -> None:
    if cp.import_batch_id is not None:
        raise CheckpointLockedError(cp.id, cp.import_batch_id)


def _view_for(session: Session, account_id: int, checkpoint_id: int) -> CheckpointView:
    views = recalculate_checkpoints(session, account_id)
    return next(v for v in views if v.id == checkpoint_id)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def create_checkpoint(
    session: Session,
    account_id: int,
    checkpoint_date: date,
    declared_balance: Decimal | int | str,
    *,
    notes: str | None = None,
    import_batch_id: int | None = None,
) -> CheckpointView:
    require_account(session, account_id)
    cp = SrCheckpoint(
        account_id=account_id,
        checkpoint_date=checkpoint_date,
        declared_balance=to_decimal(declared_balance, "declared_balance"),
        calculated_balance=_ZERO,
        adjustment_amount=_ZERO,
        is_reconciled=False,
        import_batch_id=import_batch_id,
        notes=notes,
    )
    session.add(cp)
    session.flush()
    logger.info(
        "created checkpoint %d for account %d on %s", cp.id, account_id, checkpoint_date
    )
    return _view_for(session, account_id, cp.id)


def update_checkpoint(
    session: Session,
    checkpoint_id: int,
    *,
    declared_balance: Decimal | int | str | None = None,
    checkpoint_date: date | None = None,
    notes: str | None = None,
) -> CheckpointView:
    """Edit a manual checkpoint; ``None`` leaves a field unchanged."""

    cp = get_checkpoint(session, checkpoint_id)
    _require_manual(cp)
    if declared_balance is not None:
        cp.declared_balance = to_decimal(declared_balance, "declared_balance")
    if checkpoint_date is not None:
        cp.checkpoint_date = checkpoint_date
    if notes is not None:
        cp.notes = notes
    cp.updated_at = func.now()
    session.flush()
    return _view_for(session, cp.account_id, cp.id)


def delete_checkpoint(session: Session, checkpoint_id: int) -> None:
    cp = get_checkpoint(session, checkpoint_id)
    _require_manual(cp)
    account_id = cp.account_id
    session.delete(cp)
    session.flush()
    logger.info("deleted checkpoint %d of account %d", checkpoint_id, account_id)
    recalculate_checkpoints(session, account_id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def list_checkpoints(session: Session, account_id: int) -> list[CheckpointView]:
    require_account(session, account_id)
    return [CheckpointView.from_row(cp) for cp in ordered_checkpoints(session, account_id)]


def checkpoint_summary(session: Session, account_id: int) -> CheckpointSummary:
    """Counts, total absolute adjustment and date span of an account's checkpoints."""

    views = list_checkpoints(session, account_id)
    reconciled = sum(1 for v in views if v.is_reconciled)
    return CheckpointSummary(
        total_checkpoints=len(views),
        reconciled_count=reconciled,
        unreconciled_count=len(views) - reconciled,
        total_adjustment=sum((abs(v.adjustment_amount) for v in views), _ZERO),
        earliest_date=views[0].checkpoint_date if views else None,
        latest_date=views[-1].checkpoint_date if views else None,
    )


def latest_checkpoint(session: Session, account_id: int) -> SrCheckpoint | None:
    stmt = (
        select(SrCheckpoint)
        .where(SrCheckpoint.account_id == account_id)
        .order_by(SrCheckpoint.checkpoint_date.desc(), SrCheckpoint.id.desc())
        .limit(1)
    )
    return session.execute(stmt).scalars().first()


def current_balance(session: Session, account_id: int) -> Decimal:
    """Latest declared balance plus every transaction dated after it.

    Without checkpoints this is the plain signed sum of all transactions.
    """

    require_account(session, account_id)
    latest = latest_checkpoint(session, account_id)
    after = latest.checkpoint_date if latest is not None else None
    base = latest.declared_balance if latest is not None else _ZERO
    txs: list[SrTransaction] = ordered_transactions(session, account_id, after=after)
    return base + sum((tx.signed_amount for tx in txs), _ZERO)


__all__ = [
    "checkpoint_summary",
    "create_checkpoint",
    "current_balance",
    "delete_checkpoint",
    "get_checkpoint",
    "latest_checkpoint",
    "list_checkpoints",
    "to_decimal",
    "update_checkpoint",
]
