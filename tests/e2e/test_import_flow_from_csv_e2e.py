from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest
from db.models.ledger import SrCheckpoint, SrTransaction
from statement_recon import api
from statement_recon.cli import (
    cmd_checkpoints,
    cmd_create_account,
    cmd_import,
    cmd_rollback,
)

from tests.helpers.db import count_rows

_CSV = Path(__file__).resolve().parents[1] / "data/vcb_jan_2024.csv"


def test_e2e_import_reimport_and_rollback(db_url: str, capsys: pytest.CaptureFixture[str]):
    # -------------------------
    # Account
    # -------------------------
    assert cmd_create_account("VCB checking", bank_name="Vietcombank") == 0
    out = capsys.readouterr().out
    assert out.strip() == "Created account 1"
    account_id = 1

    # -------------------------
    # First import with the statement's own ending balance as checkpoint
    # -------------------------
    assert cmd_import(_CSV, account_id, use_detected_checkpoint=True) == 0
    captured = capsys.readouterr()
    assert "Import batch 1: 3 inserted, 0 already in ledger, 0 out of range" in captured.out
    assert "Created checkpoint 1" in captured.out
    # The "Tổng cộng" footer is reported, not imported.
    assert "Skipping row 3: Invalid date format: Tổng cộng" in captured.err

    (cp,) = api.list_checkpoints(account_id)
    assert cp.declared_balance == Decimal("19639000")
    assert cp.is_reconciled
    assert api.current_balance(account_id) == Decimal("19639000")

    # -------------------------
    # Same file again: everything is already in the ledger
    # -------------------------
    assert cmd_import(_CSV, account_id) == 0
    assert "Import batch 2: 0 inserted, 3 already in ledger" in (
        capsys.readouterr().out
    )
    assert count_rows(db_url, SrTransaction) == 3

    assert cmd_checkpoints(account_id) == 0
    out = capsys.readouterr().out
    assert "1 checkpoint(s): 1 reconciled, 0 unreconciled" in out
    assert "Current balance: 19,639,000.00" in out

    # -------------------------
    # Rollback of the first batch removes its rows and its checkpoint
    # -------------------------
    assert cmd_rollback(1) == 0
    assert capsys.readouterr().out.strip() == (
        "Successfully rolled back import batch 1 (3 transaction(s) removed)"
    )
    assert count_rows(db_url, SrTransaction) == 0
    assert count_rows(db_url, SrCheckpoint) == 0

    assert cmd_rollback(1) == 1
    assert "already been rolled back" in capsys.readouterr().err
