import io
import textwrap

import pytest
from openpyxl import Workbook
from statement_recon.errors import EmptyInputError, SheetNotFoundError, UnreadableInputError
from statement_recon.ingest.tabular import (
    clean_headers,
    list_sheets,
    read_csv_grid,
    table_from_grid,
    uniquify_headers,
)


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


def _xlsx_bytes(wb: Workbook) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def test_csv_quotes_blank_lines_and_trimming():
    text = _dedent(
        '''
        Date, Description ,Amount

        05/01/2024,"Coffee, large",-45.000
        06/01/2024,"Line one
        line two","1,000.50"
        '''
    )
    grid = read_csv_grid(text.encode("utf-8"))
    assert grid[0] == ["Date", "Description", "Amount"]
    assert grid[1] == ["05/01/2024", "Coffee, large", "-45.000"]
    assert grid[2][1] == "Line one\nline two"
    assert len(grid) == 3


def test_csv_utf8_bom_and_cp1258_fallback():
    assert read_csv_grid("\ufeffNgày,Số dư\n".encode())[0] == ["Ngày", "Số dư"]
    # 0xE0 is "à" in cp1258 and not valid UTF-8 on its own.
    legacy = "Ngày,Ghi chú\n01/01/2024,Phí\n".encode("cp1258")
    assert read_csv_grid(legacy) == [["Ngày", "Ghi chú"], ["01/01/2024", "Phí"]]


def test_empty_csv_raises():
    with pytest.raises(EmptyInputError):
        read_csv_grid(b"")
    with pytest.raises(EmptyInputError):
        read_csv_grid(b"\n   \n\n")


def test_header_cleanup_and_unique_names():
    assert clean_headers(["Ngày\ngiao dịch", None, "  ", "Số dư"]) == [
        "Ngày giao dịch",
        "Column 2",
        "Column 3",
        "Số dư",
    ]
    assert uniquify_headers(["Amount", "Amount", "Date", "Amount"]) == [
        "Amount",
        "Amount (2)",
        "Date",
        "Amount (3)",
    ]


def test_table_from_grid_pads_rows_and_nulls_empty_cells():
    grid = [["junk"], ["Date", "Amount", "Note"], ["05/01/2024", "", "x"], ["06/01/2024"]]
    table = table_from_grid(grid, 1)
    assert table.headers == ("Date", "Amount", "Note")
    assert table.detected_header_row_index == 1
    assert table.rows == [
        {"Date": "05/01/2024", "Amount": None, "Note": "x"},
        {"Date": "06/01/2024", "Amount": None, "Note": None},
    ]


def test_list_sheets_and_errors():
    wb = Workbook()
    wb.active.title = "Sao ke"
    wb.create_sheet("Summary")
    data = _xlsx_bytes(wb)
    assert list_sheets(data) == ["Sao ke", "Summary"]

    with pytest.raises(UnreadableInputError):
        list_sheets(b"definitely not a zip file")


def test_missing_sheet_lists_available():
    from statement_recon.ingest.pipeline import parse_statement

    wb = Workbook()
    wb.active.title = "Sao ke"
    with pytest.raises(SheetNotFoundError) as exc:
        parse_statement(_xlsx_bytes(wb), "xlsx", sheet_name="Nope")
    assert "Sao ke" in str(exc.value)
