"""Public interface for the ``statement_recon`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    add_transaction,
    candidate_transactions,
    checkpoint_summary,
    classify_columns,
    commit_import,
    create_account,
    create_checkpoint,
    current_balance,
    delete_checkpoint,
    delete_transaction,
    detect_date_format,
    extract_statement_metadata,
    investigate_discrepancy,
    list_checkpoints,
    list_sheets,
    parse_amount,
    parse_date,
    parse_statement,
    recalculate,
    rollback_import,
    suggest_checkpoint,
    update_checkpoint,
    update_transaction,
)
from .diagnostics import Diagnostic, DiagnosticsSink
from .models import (
    CandidateRow,
    CandidateTransaction,
    CheckpointDraft,
    CheckpointSummary,
    CheckpointView,
    ColumnClassification,
    ColumnMapping,
    ColumnMappingEntry,
    DailyActivity,
    DateFormatDetection,
    Discrepancy,
    ImportOutcome,
    ParsedTable,
    ParseResult,
    RollbackResult,
    StatementMetadata,
    TransactionView,
)

__all__ = [
    # API
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
    # Models
    "CandidateRow",
    "CandidateTransaction",
    "CheckpointDraft",
    "CheckpointSummary",
    "CheckpointView",
    "ColumnClassification",
    "ColumnMapping",
    "ColumnMappingEntry",
    "DailyActivity",
    "DateFormatDetection",
    "Diagnostic",
    "DiagnosticsSink",
    "Discrepancy",
    "ImportOutcome",
    "ParseResult",
    "ParsedTable",
    "RollbackResult",
    "StatementMetadata",
    "TransactionView",
]
