"""CLI for the ``statement_recon`` package.

Command handlers (``cmd_*``) are plain functions returning an exit status so
tests can call them directly; the Typer commands below only translate options
and exit with that status. Environment variables (notably ``DATABASE_URL``)
are loaded from a local ``.env`` with ``python-dotenv`` before any command
runs. Business logic lives in :mod:`statement_recon.api`.
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .logging_setup import configure_logging, get_logger
from .models import INPUT_KINDS, ParseResult

logger = get_logger("statement_recon.cli")


# ---- Small helpers -------------------------------------------------------------


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _console() -> Console:
    return Console(highlight=False, soft_wrap=True)


def _infer_kind(path: Path, kind: str | None) -> str:
    if kind is not None:
        if kind not in INPUT_KINDS:
            raise ValueError(f"Unsupported kind {kind!r}. Allowed: {list(INPUT_KINDS)}")
        return kind
    suffix = path.suffix.lower().lstrip(".")
    if suffix in INPUT_KINDS:
        return suffix
    raise ValueError(f"Cannot infer input kind from {path.name!r}; pass --kind csv|xlsx")


def _iso_date(text: str, option: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError as e:
        raise ValueError(f"{option} must be an ISO date (YYYY-MM-DD), got {text!r}") from e


def _parse_iso_date(text: str | None, option: str) -> date | None:
    return None if text is None else _iso_date(text, option)


def _money(value: Decimal | None) -> str:
    return "" if value is None else f"{value:,.2f}"


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal | date):
        return str(value)
    raise TypeError(f"not JSON serializable: {type(value).__name__}")


def _parse_file(path: Path, kind: str | None, sheet: str | None) -> ParseResult:
    from .api import parse_statement

    return parse_statement(path.read_bytes(), _infer_kind(path, kind), sheet_name=sheet)


# ---- Command handlers ------------------------------------------------------------


def cmd_parse(
    path: Path, *, kind: str | None = None, sheet: str | None = None, as_json: bool = False
) -> int:
    """Parse a statement and print headers, metadata and column suggestions."""

    from .errors import StatementReconError

    try:
        result = _parse_file(path, kind, sheet)
    except (OSError, ValueError, StatementReconError) as e:
        return _error(str(e))

    if as_json:
        doc = {
            "headers": list(result.headers),
            "detected_header_row_index": result.detected_header_row_index,
            "rows": result.rows,
            "metadata": asdict(result.metadata),
            "date_format": asdict(result.date_format),
            "classifications": [c.model_dump() for c in result.classifications],
            "warnings": result.warnings,
        }
        print(json.dumps(doc, ensure_ascii=False, indent=2, default=_json_default))
        return 0

    console = _console()
    console.print(f"Detected header row: {result.detected_header_row_index}")
    console.print(f"Data rows: {len(result.rows)}")
    console.print(
        f"Date format: {result.date_format.format} "
        f"(confidence {result.date_format.confidence:.2f})"
    )
    md = result.metadata
    console.print(
        f"Statement period: {md.detected_start_date or '-'} to {md.detected_end_date or '-'}; "
        f"ending balance: {_money(md.detected_ending_balance) or '-'}"
    )

    table = Table(title="Columns")
    for col in ("Column", "Role", "Confidence", "Justification"):
        table.add_column(col)
    for c in result.classifications:
        table.add_row(c.name, c.suggested_role, f"{c.confidence:.2f}", c.justification)
    console.print(table)

    for w in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {w}")
    return 0


def cmd_sheets(path: Path) -> int:
    from .api import list_sheets
    from .errors import StatementReconError

    try:
        names = list_sheets(path.read_bytes())
    except (OSError, StatementReconError) as e:
        return _error(str(e))
    for name in names:
        print(name)
    return 0


def cmd_create_account(
    name: str,
    *,
    bank_name: str | None = None,
    currency_code: str = "VND",
    database_url: str | None = None,
) -> int:
    from .api import create_account

    try:
        account_id = create_account(
            name, bank_name=bank_name, currency_code=currency_code, database_url=database_url
        )
    except Exception as e:
        return _error(str(e))
    print(f"Created account {account_id}")
    return 0


def cmd_import(
    path: Path,
    account_id: int,
    *,
    kind: str | None = None,
    sheet: str | None = None,
    mapping_path: Path | None = None,
    date_format: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    checkpoint_balance: str | None = None,
    checkpoint_date: str | None = None,
    use_detected_checkpoint: bool = False,
    database_url: str | None = None,
) -> int:
    """Parse, map and commit a statement as one import batch.

    Rows that cannot be mapped are reported on stderr and skipped. A
    checkpoint is created from ``--checkpoint-balance`` (dated
    ``--checkpoint-date``, else the statement's last date) or, with
    ``--detected-checkpoint``, from the statement's own ending balance.
    """

    from .api import candidate_transactions, commit_import, suggest_checkpoint
    from .errors import StatementReconError
    from .ledger.checkpoints import to_decimal
    from .models import CheckpointDraft, ColumnMapping

    try:
        result = _parse_file(path, kind, sheet)
        mapping = None
        if mapping_path is not None:
            mapping = ColumnMapping.model_validate_json(mapping_path.read_text(encoding="utf-8"))
        rows = candidate_transactions(result, mapping, date_format=date_format)
        start = _parse_iso_date(start_date, "--start-date")
        end = _parse_iso_date(end_date, "--end-date")

        checkpoint: CheckpointDraft | None = None
        if checkpoint_balance is not None:
            cp_date = (
                _parse_iso_date(checkpoint_date, "--checkpoint-date")
                or result.metadata.detected_end_date
                or datetime.now().date()
            )
            checkpoint = CheckpointDraft(
                checkpoint_date=cp_date,
                declared_balance=to_decimal(checkpoint_balance, "--checkpoint-balance"),
                notes=f"Imported from {path.name}",
            )
        elif use_detected_checkpoint:
            checkpoint = suggest_checkpoint(result.metadata, now=datetime.now())

        for row in rows:
            if not row.is_valid:
                print(
                    f"Skipping row {row.row_index}: {'; '.join(row.errors)}", file=sys.stderr
                )
        valid = [r.transaction for r in rows if r.is_valid]
        outcome = commit_import(
            account_id,
            valid,
            checkpoint,
            file_name=path.name,
            statement_start=start,
            statement_end=end,
            total_records=len(rows),
            database_url=database_url,
        )
    except (OSError, ValueError, StatementReconError) as e:
        return _error(str(e))
    except Exception as e:
        logger.exception("import failed")
        return _error(f"import failed: {e}")

    print(
        f"Import batch {outcome.batch_id}: {outcome.inserted} inserted, "
        f"{outcome.duplicates_skipped} already in ledger, "
        f"{outcome.out_of_range_skipped} out of range"
    )
    if outcome.checkpoint_id is not None:
        print(f"Created checkpoint {outcome.checkpoint_id}")
    return 0


def _print_checkpoints(views: list[Any]) -> None:
    table = Table(title="Checkpoints")
    for col in ("ID", "Date", "Declared", "Calculated", "Adjustment", "Reconciled", "Import"):
        table.add_column(col)
    for v in views:
        table.add_row(
            str(v.id),
            v.checkpoint_date.isoformat(),
            _money(v.declared_balance),
            _money(v.calculated_balance),
            _money(v.adjustment_amount),
            "yes" if v.is_reconciled else "no",
            str(v.import_batch_id or ""),
        )
    _console().print(table)


def cmd_recalculate(account_id: int, *, database_url: str | None = None) -> int:
    from .api import recalculate

    try:
        views = recalculate(account_id, database_url=database_url)
    except Exception as e:
        return _error(str(e))
    _print_checkpoints(views)
    return 0


def cmd_checkpoints(account_id: int, *, database_url: str | None = None) -> int:
    from .api import checkpoint_summary, current_balance, list_checkpoints

    try:
        views = list_checkpoints(account_id, database_url=database_url)
        summary = checkpoint_summary(account_id, database_url=database_url)
        balance = current_balance(account_id, database_url=database_url)
    except Exception as e:
        return _error(str(e))
    _print_checkpoints(views)
    print(
        f"{summary.total_checkpoints} checkpoint(s): {summary.reconciled_count} reconciled, "
        f"{summary.unreconciled_count} unreconciled; "
        f"total adjustment {_money(summary.total_adjustment)}"
    )
    print(f"Current balance: {_money(balance)}")
    return 0


def cmd_add_checkpoint(
    account_id: int,
    checkpoint_date: str,
    declared_balance: str,
    *,
    notes: str | None = None,
    database_url: str | None = None,
) -> int:
    from .api import create_checkpoint

    try:
        cp_date = _iso_date(checkpoint_date, "--date")
        view = create_checkpoint(
            account_id, cp_date, declared_balance, notes=notes, database_url=database_url
        )
    except Exception as e:
        return _error(str(e))
    print(
        f"Created checkpoint {view.id}: adjustment {_money(view.adjustment_amount)}"
        f"{' (reconciled)' if view.is_reconciled else ''}"
    )
    return 0


def cmd_update_checkpoint(
    checkpoint_id: int,
    *,
    declared_balance: str | None = None,
    checkpoint_date: str | None = None,
    notes: str | None = None,
    database_url: str | None = None,
) -> int:
    from .api import update_checkpoint

    try:
        view = update_checkpoint(
            checkpoint_id,
            declared_balance=declared_balance,
            checkpoint_date=_parse_iso_date(checkpoint_date, "--date"),
            notes=notes,
            database_url=database_url,
        )
    except Exception as e:
        return _error(str(e))
    print(f"Updated checkpoint {view.id}: adjustment {_money(view.adjustment_amount)}")
    return 0


def cmd_delete_checkpoint(checkpoint_id: int, *, database_url: str | None = None) -> int:
    from .api import delete_checkpoint

    try:
        delete_checkpoint(checkpoint_id, database_url=database_url)
    except Exception as e:
        return _error(str(e))
    print(f"Deleted checkpoint {checkpoint_id}")
    return 0


def cmd_investigate(
    account_id: int, checkpoint_id: int, *, database_url: str | None = None
) -> int:
    from .api import investigate_discrepancy

    try:
        reports = investigate_discrepancy(account_id, checkpoint_id, database_url=database_url)
    except Exception as e:
        return _error(str(e))

    console = _console()
    for r in reports:
        console.print(
            f"Checkpoint {r.checkpoint_id}: {r.period_start or 'start'} to {r.period_end}"
        )
        console.print(
            f"Opening {_money(r.period_start_balance)}, credits {_money(r.total_credits)}, "
            f"debits {_money(r.total_debits)}"
        )
        console.print(
            f"Expected change {_money(r.expected_change)}, actual change "
            f"{_money(r.actual_change)}, difference {_money(r.difference)}"
        )
        table = Table(title="Daily activity")
        for col in ("Date", "Credits", "Debits", "Calculated", "Statement", "Mismatch"):
            table.add_column(col)
        for d in r.daily:
            table.add_row(
                d.date.isoformat(),
                _money(d.credits),
                _money(d.debits),
                _money(d.running_calculated),
                _money(d.statement_balance),
                _money(d.balance_mismatch),
            )
        console.print(table)
    return 0


def cmd_rollback(batch_id: int, *, database_url: str | None = None) -> int:
    from .api import rollback_import

    try:
        result = rollback_import(batch_id, database_url=database_url)
    except Exception as e:
        return _error(str(e))
    print(f"{result.message} ({result.deleted_transaction_count} transaction(s) removed)")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Parse Vietnamese/English bank statements (CSV/XLSX) and reconcile them "
        "against balance checkpoints. Loads DATABASE_URL from a local .env."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Used inside ``Annotated``, so the Python default is the real one.
FILE_ARGUMENT = typer.Argument(..., exists=True, dir_okay=False, readable=True)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    ..., "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
ACCOUNT_OPTION: OptionInfo = typer.Option(..., "--account-id", help="Ledger account id.")
KIND_OPTION: OptionInfo = typer.Option(
    ..., "--kind", help="Input kind (csv or xlsx); inferred from the file suffix by default."
)
SHEET_OPTION: OptionInfo = typer.Option(..., "--sheet", help="XLSX worksheet name.")


@app.command("parse")
def parse_cmd(
    path: Annotated[Path, FILE_ARGUMENT],
    kind: Annotated[str | None, KIND_OPTION] = None,
    sheet: Annotated[str | None, SHEET_OPTION] = None,
    as_json: bool = typer.Option(False, "--json", help="Print a JSON document."),
) -> None:
    """Show what the parser sees in a statement file."""

    raise typer.Exit(cmd_parse(path, kind=kind, sheet=sheet, as_json=as_json))


@app.command("sheets")
def sheets_cmd(path: Annotated[Path, FILE_ARGUMENT]) -> None:
    """List the worksheets of an XLSX workbook."""

    raise typer.Exit(cmd_sheets(path))


@app.command("create-account")
def create_account_cmd(
    name: str = typer.Option(..., "--name"),
    bank: str | None = typer.Option(None, "--bank"),
    currency: str = typer.Option("VND", "--currency"),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    raise typer.Exit(
        cmd_create_account(name, bank_name=bank, currency_code=currency, database_url=database_url)
    )


@app.command("import")
def import_cmd(
    path: Annotated[Path, FILE_ARGUMENT],
    account_id: Annotated[int, ACCOUNT_OPTION],
    kind: Annotated[str | None, KIND_OPTION] = None,
    sheet: Annotated[str | None, SHEET_OPTION] = None,
    mapping: Path | None = typer.Option(
        None, "--mapping", help="JSON column mapping overriding the suggested roles."
    ),
    date_format: str | None = typer.Option(None, "--date-format", help="Date format tag."),
    start_date: str | None = typer.Option(None, "--start-date", help="Statement start (ISO)."),
    end_date: str | None = typer.Option(None, "--end-date", help="Statement end (ISO)."),
    checkpoint_balance: str | None = typer.Option(None, "--checkpoint-balance"),
    checkpoint_date: str | None = typer.Option(None, "--checkpoint-date"),
    detected_checkpoint: bool = typer.Option(
        False, "--detected-checkpoint", help="Use the statement's ending balance as checkpoint."
    ),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Parse a statement and commit its transactions as one import batch."""

    raise typer.Exit(
        cmd_import(
            path,
            account_id,
            kind=kind,
            sheet=sheet,
            mapping_path=mapping,
            date_format=date_format,
            start_date=start_date,
            end_date=end_date,
            checkpoint_balance=checkpoint_balance,
            checkpoint_date=checkpoint_date,
            use_detected_checkpoint=detected_checkpoint,
            database_url=database_url,
        )
    )


@app.command("recalculate")
def recalculate_cmd(
    account_id: Annotated[int, ACCOUNT_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    raise typer.Exit(cmd_recalculate(account_id, database_url=database_url))


@app.command("checkpoints")
def checkpoints_cmd(
    account_id: Annotated[int, ACCOUNT_OPTION],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """List checkpoints with a summary and the current balance."""

    raise typer.Exit(cmd_checkpoints(account_id, database_url=database_url))


@app.command("add-checkpoint")
def add_checkpoint_cmd(
    account_id: Annotated[int, ACCOUNT_OPTION],
    checkpoint_date: str = typer.Option(..., "--date", help="Checkpoint date (ISO)."),
    balance: str = typer.Option(..., "--balance", help="Declared balance."),
    notes: str | None = typer.Option(None, "--notes"),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    raise typer.Exit(
        cmd_add_checkpoint(
            account_id, checkpoint_date, balance, notes=notes, database_url=database_url
        )
    )


@app.command("update-checkpoint")
def update_checkpoint_cmd(
    checkpoint_id: int = typer.Option(..., "--checkpoint-id"),
    balance: str | None = typer.Option(None, "--balance"),
    checkpoint_date: str | None = typer.Option(None, "--date"),
    notes: str | None = typer.Option(None, "--notes"),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    raise typer.Exit(
        cmd_update_checkpoint(
            checkpoint_id,
            declared_balance=balance,
            checkpoint_date=checkpoint_date,
            notes=notes,
            database_url=database_url,
        )
    )


@app.command("delete-checkpoint")
def delete_checkpoint_cmd(
    checkpoint_id: int = typer.Option(..., "--checkpoint-id"),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    raise typer.Exit(cmd_delete_checkpoint(checkpoint_id, database_url=database_url))


@app.command("investigate")
def investigate_cmd(
    account_id: Annotated[int, ACCOUNT_OPTION],
    checkpoint_id: int = typer.Option(..., "--checkpoint-id"),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Break a checkpoint's adjustment down by day."""

    raise typer.Exit(cmd_investigate(account_id, checkpoint_id, database_url=database_url))


@app.command("rollback")
def rollback_cmd(
    batch_id: int = typer.Option(..., "--batch-id"),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Undo an import batch and everything it created."""

    raise typer.Exit(cmd_rollback(batch_id, database_url=database_url))


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    app()
