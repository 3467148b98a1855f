import textwrap

from statement_recon.diagnostics import DiagnosticsSink
from statement_recon.ingest.header_locator import (
    HeaderCandidate,
    locate_header_row,
    score_candidate,
)
from statement_recon.ingest.tabular import read_csv_grid


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


VN_STATEMENT = _dedent(
    """
    SAO KÊ TÀI KHOẢN,,,,
    ,,,,
    Số tài khoản,123456789,Loại tài khoản,Thanh toán
    Ngày,Diễn giải,Ghi nợ,Ghi có,Số dư
    05/01/2024,Chuyen tien,500.000,,9.500.000
    06/01/2024,Luong thang 1,,20.000.000,29.500.000
    """
)


def test_title_blank_metadata_then_header_selects_index_3():
    grid = read_csv_grid(VN_STATEMENT)
    sink = DiagnosticsSink()
    detection = locate_header_row(grid, sink=sink)
    assert detection.index == 3
    assert detection.keyword_matches == 5
    assert any("Detected header row 3" in d.message for d in sink.for_stage("header"))


def test_metadata_row_scores_below_header_row():
    metadata = HeaderCandidate.from_row(
        2, ["Số tài khoản", "123456789", "Loại tài khoản", "Thanh toán"]
    )
    header = HeaderCandidate.from_row(3, ["Ngày", "Diễn giải", "Ghi nợ", "Ghi có", "Số dư"])
    assert metadata.looks_like_metadata()
    assert score_candidate(metadata) < 0 < score_candidate(header)


def test_data_rows_are_penalized():
    data = HeaderCandidate.from_row(5, ["05/01/2024", "Chuyen tien", "500.000", "9.500.000"])
    assert score_candidate(data) < 0


def test_first_row_header_and_strong_indicator():
    grid = [
        ["STT", "Ngày giao dịch", "Nội dung", "Số tiền", "Số dư"],
        ["1", "05/01/2024", "Phí dịch vụ", "-11.000", "1.000.000"],
    ]
    assert locate_header_row(grid).index == 0


def test_rows_with_fewer_than_three_cells_are_skipped():
    grid = [["Date", "Amount"], ["Date", "Description", "Amount"]]
    assert locate_header_row(grid).index == 1


def test_no_candidate_falls_back_to_zero():
    assert locate_header_row([["a"], ["b", "c"]]).index == 0


def test_scan_window_limits_rows():
    filler = [["x", "y", "z long text cell that is not a keyword"]] * 5
    grid = [*filler, ["Date", "Description", "Debit", "Credit"]]
    assert locate_header_row(grid, max_rows=5).index == 0
    assert locate_header_row(grid, max_rows=30).index == 5
