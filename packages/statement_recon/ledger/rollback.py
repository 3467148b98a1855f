"""Undo an import batch.

Rolling back deletes the batch's transactions and the checkpoints it owns,
marks the batch ``rolled_back`` and reconciles the account again, all inside
the caller's unit of work. A missing or already rolled back batch raises
before anything is touched.
"""

from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from db.models.ledger import SrCheckpoint, SrImportBatch, SrTransaction

from ..errors import ImportAlreadyRolledBackError, ImportBatchNotFoundError
from ..logging_setup import get_logger
from ..models import RollbackResult
from .reconcile import recalculate_checkpoints

logger = get_logger("statement_recon.ledger.rollback")


def get_import_batch(session: Session, batch_id: int) -> SrImportBatch:
    batch = session.get(SrImportBatch, batch_id)
    if batch is None:
        raise ImportBatchNotFoundError(batch_id)
    return batch


def rollback_import(session: Session, batch_id: int) -> RollbackResult:
    batch = get_import_batch(session, batch_id)
    if batch.status == "rolled_back":
        raise ImportAlreadyRolledBackError(batch_id)

    tx_ids = (
        session.execute(select(SrTransaction.id).where(SrTransaction.import_batch_id == batch_id))
        .scalars()
        .all()
    )
    session.execute(
        delete(SrTransaction)
        .where(SrTransaction.import_batch_id == batch_id)
        .execution_options(synchronize_session="fetch")
    )
    session.execute(
        delete(SrCheckpoint)
        .where(SrCheckpoint.import_batch_id == batch_id)
        .execution_options(synchronize_session="fetch")
    )
    batch.status = "rolled_back"
    batch.rolled_back_at = func.now()
    session.flush()

    recalculate_checkpoints(session, batch.account_id)
    logger.info("rolled back import batch %d (%d transaction(s))", batch_id, len(tx_ids))
    return RollbackResult(
        deleted_transaction_count=len(tx_ids),
        message=f"Successfully rolled back import batch {batch_id}",
    )


__all__ = ["get_import_batch", "rollback_import"]
