from __future__ import annotations

import json
from pathlib import Path

import pytest
from openpyxl import Workbook
from statement_recon.cli import (
    app,
    cmd_add_checkpoint,
    cmd_delete_checkpoint,
    cmd_import,
    cmd_investigate,
    cmd_parse,
    cmd_recalculate,
    cmd_sheets,
    cmd_update_checkpoint,
)
from typer.testing import CliRunner

_CSV = Path(__file__).resolve().parent / "data/vcb_jan_2024.csv"


def test_parse_json_via_typer(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(app, ["parse", str(_CSV), "--json"])
    assert result.exit_code == 0, result.output
    doc = json.loads(result.stdout)
    assert doc["detected_header_row_index"] == 4
    assert doc["headers"][0] == "Ngày giao dịch"
    assert doc["date_format"]["format"] == "dd/mm/yyyy"
    assert doc["metadata"]["detected_ending_balance"] == "19639000"
    roles = {c["name"]: c["suggested_role"] for c in doc["classifications"]}
    assert roles["Mã giao dịch"] == "reference"


def test_parse_table_output(capsys: pytest.CaptureFixture[str]):
    assert cmd_parse(_CSV) == 0
    out = capsys.readouterr().out
    assert "Detected header row: 4" in out
    assert "Date format: dd/mm/yyyy" in out


def test_parse_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    unknown = tmp_path / "statement.pdf"
    unknown.write_bytes(b"%PDF")
    assert cmd_parse(unknown) == 1
    assert "Cannot infer input kind" in capsys.readouterr().err

    empty = tmp_path / "empty.csv"
    empty.write_bytes(b"")
    assert cmd_parse(empty) == 1
    assert capsys.readouterr().err.startswith("Error: Empty statement")


def test_sheets(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    wb = Workbook()
    wb.active.title = "Jan"
    wb.create_sheet("Feb")
    path = tmp_path / "book.xlsx"
    wb.save(path)
    assert cmd_sheets(path) == 0
    assert capsys.readouterr().out.split() == ["Jan", "Feb"]


def test_checkpoint_commands(db_url, account_id, capsys: pytest.CaptureFixture[str]):
    assert cmd_add_checkpoint(account_id, "2024-01-31", "100") == 0
    assert "Created checkpoint 1: adjustment 100.00" in capsys.readouterr().out

    assert cmd_update_checkpoint(1, declared_balance="0") == 0
    assert "Updated checkpoint 1: adjustment 0.00" in capsys.readouterr().out

    assert cmd_recalculate(account_id) == 0
    assert cmd_investigate(account_id, 1) == 0
    assert "Checkpoint 1: start to 2024-01-31" in capsys.readouterr().out

    assert cmd_delete_checkpoint(1) == 0
    assert capsys.readouterr().out.strip() == "Deleted checkpoint 1"
    assert cmd_delete_checkpoint(1) == 1
    assert "Checkpoint 1 not found" in capsys.readouterr().err


def test_add_checkpoint_rejects_bad_date(db_url, account_id, capsys):
    assert cmd_add_checkpoint(account_id, "31/01/2024", "100") == 1
    assert "--date must be an ISO date" in capsys.readouterr().err


def test_import_with_mapping_file(db_url, account_id, tmp_path: Path, capsys):
    mapping = tmp_path / "mapping.json"
    mapping.write_text(
        json.dumps(
            {
                "columns": [
                    {"column": "Ngày giao dịch", "role": "date"},
                    {"column": "Ghi có", "role": "credit"},
                ],
                "date_format": "dd/mm/yyyy",
            }
        ),
        encoding="utf-8",
    )
    code = cmd_import(
        _CSV,
        account_id,
        mapping_path=mapping,
        checkpoint_balance="20000000",
        checkpoint_date="2024-01-15",
    )
    assert code == 0
    captured = capsys.readouterr()
    assert "Import batch 1: 1 inserted, 0 already in ledger" in captured.out
    assert "Missing debit or credit amount" in captured.err


def test_import_rejects_malformed_mapping(db_url, account_id, tmp_path: Path, capsys):
    mapping = tmp_path / "mapping.json"
    mapping.write_text('{"columns": [{"column": "Ngày giao dịch", "role": "salary"}]}')
    assert cmd_import(_CSV, account_id, mapping_path=mapping) == 1
    assert capsys.readouterr().err.startswith("Error:")
