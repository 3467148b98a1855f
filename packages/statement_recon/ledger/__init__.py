"""Ledger persistence: accounts, checkpoints, imports, reconciliation.

Functions in this package take an open SQLAlchemy ``Session`` and never
commit or lock on their own; :mod:`statement_recon.api` wraps them in
``account_lock`` plus ``session_scope``.
"""

from .accounts import create_account
from .checkpoints import (
    checkpoint_summary,
    create_checkpoint,
    current_balance,
    delete_checkpoint,
    list_checkpoints,
    update_checkpoint,
)
from .imports import commit_import
from .investigate import investigate_discrepancy
from .locks import account_lock
from .reconcile import compute_checkpoint_balances, recalculate_checkpoints
from .rollback import rollback_import
from .transactions import add_transaction, delete_transaction, update_transaction

__all__ = [
    "account_lock",
    "add_transaction",
    "checkpoint_summary",
    "commit_import",
    "compute_checkpoint_balances",
    "create_account",
    "create_checkpoint",
    "current_balance",
    "delete_checkpoint",
    "delete_transaction",
    "investigate_discrepancy",
    "list_checkpoints",
    "recalculate_checkpoints",
    "rollback_import",
    "update_checkpoint",
    "update_transaction",
]
