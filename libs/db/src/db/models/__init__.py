"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger models used by ``statement_recon``.
"""

from .ledger import Base, SrAccount, SrCheckpoint, SrImportBatch, SrTransaction

__all__ = [
    "Base",
    "SrAccount",
    "SrCheckpoint",
    "SrImportBatch",
    "SrTransaction",
]
