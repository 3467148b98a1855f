import textwrap
from datetime import date
from decimal import Decimal

import pytest
from statement_recon.errors import EmptyInputError
from statement_recon.ingest.pipeline import candidate_transactions, parse_statement
from statement_recon.models import ColumnMapping, ColumnMappingEntry


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


STATEMENT = _dedent(
    """
    SAO KÊ TÀI KHOẢN,,,,
    Số tài khoản,123456789,Loại tài khoản,Thanh toán
    Ngày,Diễn giải,Ghi nợ,Ghi có,Số dư
    05/01/2024,Chuyen tien,500.000,,9.500.000
    15/01/2024,Phi dich vu,11.000,,9.489.000
    31/01/2024,Luong thang 1,,20.000.000,29.489.000
    Tổng cộng,,511.000,20.000.000,
    """
)


def test_parse_csv_statement_end_to_end():
    result = parse_statement(STATEMENT.encode("utf-8"), "csv")

    assert result.headers == ("Ngày", "Diễn giải", "Ghi nợ", "Ghi có", "Số dư")
    assert result.detected_header_row_index == 2
    assert len(result.rows) == 4
    assert result.date_format.format == "dd/mm/yyyy"

    roles = {c.name: c.suggested_role for c in result.classifications}
    assert roles == {
        "Ngày": "date",
        "Diễn giải": "description",
        "Ghi nợ": "debit",
        "Ghi có": "credit",
        "Số dư": "balance",
    }

    assert result.metadata.detected_start_date == date(2024, 1, 5)
    assert result.metadata.detected_end_date == date(2024, 1, 31)
    assert result.metadata.detected_ending_balance == Decimal("29489000")
    assert any(d.stage == "header" for d in result.diagnostics)


def test_candidates_flag_footer_row():
    result = parse_statement(STATEMENT, "csv")
    rows = candidate_transactions(result)
    assert [r.is_valid for r in rows] == [True, True, True, False]
    assert rows[0].transaction.debit_amount == Decimal("500000")
    assert rows[2].transaction.credit_amount == Decimal("20000000")
    assert rows[3].errors == ("Invalid date format: Tổng cộng",)


def test_overrides_and_explicit_mapping():
    result = parse_statement(STATEMENT, "csv")
    rows = candidate_transactions(result, overrides={"Số dư": "ignore"})
    assert all(r.transaction.running_balance is None for r in rows)

    mapping = ColumnMapping(
        columns=[
            ColumnMappingEntry(column="Ngày", role="date"),
            ColumnMappingEntry(column="Ghi có", role="credit"),
        ],
        date_format="dd/mm/yyyy",
    )
    rows = candidate_transactions(result, mapping)
    assert [r.is_valid for r in rows] == [False, False, True, False]
    assert rows[2].transaction.description is None


def test_ambiguous_dates_surface_as_warnings():
    text = "Date,Description,Amount\n01/02/2024,a,-1\n03/04/2024,b,2\n"
    result = parse_statement(text, "csv")
    assert result.date_format.warnings
    assert any("Date" in w for w in result.warnings)


def test_missing_date_column_is_a_warning_not_an_error():
    text = "Description,Debit,Credit\nCoffee,10,\nSalary,,100\n"
    result = parse_statement(text, "csv")
    assert result.date_format.format == "unknown"
    assert "No date column detected" in result.warnings


def test_invalid_inputs():
    with pytest.raises(ValueError):
        parse_statement(b"a,b,c", "pdf")
    with pytest.raises(ValueError):
        parse_statement("a,b,c", "xlsx")
    with pytest.raises(EmptyInputError):
        parse_statement(b"   \n", "csv")
