from datetime import date, datetime
from decimal import Decimal

from statement_recon.ingest.metadata import (
    extract_statement_metadata,
    find_date_column,
    find_date_columns,
    suggest_checkpoint,
)
from statement_recon.models import ParsedTable, StatementMetadata


def _table(headers, rows) -> ParsedTable:
    return ParsedTable(
        headers=tuple(headers),
        rows=[dict(zip(headers, r, strict=True)) for r in rows],
        detected_header_row_index=0,
    )


def test_range_and_ending_balance_from_latest_row():
    table = _table(
        ["Ngày giao dịch", "Diễn giải", "Số dư"],
        [
            ["06/01/2024", "b", "2.000.000"],
            ["05/01/2024", "a", "1.000.000"],
            ["31/01/2024", "c", "3.000.000"],
            # Same latest date, later in the file: wins.
            ["31/01/2024", "d", "2.500.000"],
            ["Tổng cộng", None, "9.999.999"],
        ],
    )
    meta = extract_statement_metadata(table, date_format="dd/mm/yyyy")
    assert meta.detected_start_date == date(2024, 1, 5)
    assert meta.detected_end_date == date(2024, 1, 31)
    assert meta.detected_ending_balance == Decimal("2500000")


def test_effective_date_column_is_preferred():
    assert find_date_column(["Ngày giao dịch", "Ngày hiệu lực", "Số dư"]) == "Ngày hiệu lực"
    assert find_date_column(["Posting Date", "Effective Date"]) == "Effective Date"
    assert find_date_column(["Description", "Amount"]) is None


def test_reference_column_is_not_taken_for_dates():
    rows = [
        ["1", "FT24031000004", "31/01/2024", "Phi", "1.500.000"],
        ["2", "FT24015000002", "15/01/2024", "Luong", "2.000.000"],
    ]
    meta = extract_statement_metadata(
        _table(["STT", "Mã giao dịch", "Ngày", "Diễn giải", "Số dư"], rows)
    )
    assert meta.detected_start_date == date(2024, 1, 15)
    assert meta.detected_end_date == date(2024, 1, 31)
    assert meta.detected_ending_balance == Decimal("1500000")

    # Unaccented "giao dich" is a date hint; its column holds no dates, so the next one is used.
    headers = ["STT", "Ma giao dich", "Ngay", "Dien giai", "So du"]
    assert find_date_columns(headers) == ["Ma giao dich", "Ngay"]
    meta = extract_statement_metadata(_table(headers, rows))
    assert meta.detected_end_date == date(2024, 1, 31)
    assert meta.detected_ending_balance == Decimal("1500000")


def test_no_balance_column_leaves_balance_empty():
    table = _table(["Date", "Amount"], [["2024-01-05", "10"]])
    meta = extract_statement_metadata(table)
    assert meta.detected_end_date == date(2024, 1, 5)
    assert meta.detected_ending_balance is None


def test_no_parseable_dates_gives_empty_metadata():
    table = _table(["Date", "Balance"], [["n/a", "10"]])
    assert extract_statement_metadata(table) == StatementMetadata()


def test_suggest_checkpoint():
    now = datetime(2024, 3, 1, 12, 0)
    meta = StatementMetadata(
        detected_start_date=date(2024, 1, 5),
        detected_end_date=date(2024, 1, 31),
        detected_ending_balance=Decimal("2500000"),
    )
    draft = suggest_checkpoint(meta, now=now)
    assert draft is not None
    assert draft.checkpoint_date == date(2024, 1, 31)
    assert draft.declared_balance == Decimal("2500000")

    undated = StatementMetadata(detected_ending_balance=Decimal("1"))
    assert suggest_checkpoint(undated, now=now).checkpoint_date == date(2024, 3, 1)
    assert suggest_checkpoint(StatementMetadata(), now=now) is None
