"""Statement parsing: tabular reading, header/column heuristics, row mapping."""

from .amounts import amount_to_debit_credit, parse_amount
from .column_classifier import apply_overrides, build_column_mapping, classify_columns
from .dates import detect_date_format, parse_date
from .header_locator import locate_header_row
from .mapping import map_rows
from .metadata import extract_statement_metadata, suggest_checkpoint
from .pipeline import candidate_transactions, parse_statement
from .tabular import list_sheets

__all__ = [
    "amount_to_debit_credit",
    "apply_overrides",
    "build_column_mapping",
    "candidate_transactions",
    "classify_columns",
    "detect_date_format",
    "extract_statement_metadata",
    "list_sheets",
    "locate_header_row",
    "map_rows",
    "parse_amount",
    "parse_date",
    "parse_statement",
    "suggest_checkpoint",
]
