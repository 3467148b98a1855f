from datetime import date, datetime

from statement_recon.ingest.dates import detect_date_format, parse_date


def test_detects_vietnamese_day_first_with_ambiguity_warning():
    det = detect_date_format(["05/01/2024", "06/01/2024", "15/01/2024"])
    assert det.format == "dd/mm/yyyy"
    assert det.confidence == 1.0
    assert any("Vietnam format" in w for w in det.warnings)


def test_detects_us_format_when_day_first_fails():
    det = detect_date_format(["01/15/2024", "02/03/2024"])
    assert det.format == "mm/dd/yyyy"
    assert det.confidence == 1.0
    assert any("US format" in w for w in det.warnings)


def test_unambiguous_day_first_has_no_warning():
    det = detect_date_format(["25/12/2024", "31/12/2024"])
    assert det.format == "dd/mm/yyyy"
    assert det.warnings == ()


def test_iso_and_datetime_samples():
    assert detect_date_format(["2024-01-05", "2024-02-29"]).format == "yyyy-mm-dd"
    assert detect_date_format(["17/11/2025 15:45:00", "18/11/2025 09:01"]).format == "dd/mm/yyyy"


def test_no_samples_is_unknown():
    det = detect_date_format([None, "", "   "])
    assert det.format == "unknown"
    assert det.confidence == 0.0
    assert det.warnings == ("No valid date samples found",)


def test_garbage_samples_are_unknown():
    det = detect_date_format(["FT24005ABC", "hello"])
    assert det.format == "unknown"
    assert det.confidence == 0.0


def test_parse_date_is_strict():
    assert parse_date("31/02/2024", "dd/mm/yyyy") is None
    assert parse_date("29/02/2024", "dd/mm/yyyy") == date(2024, 2, 29)


def test_parse_date_respects_tag_then_falls_back():
    assert parse_date("05/01/2024", "dd/mm/yyyy") == date(2024, 1, 5)
    assert parse_date("05/01/2024", "mm/dd/yyyy") == date(2024, 5, 1)
    # Wrong tag: falls back to the whole catalogue.
    assert parse_date("2024-03-09", "dd/mm/yyyy") == date(2024, 3, 9)


def test_parse_date_strips_time_and_accepts_objects():
    assert parse_date("17/11/2025 15:45", "dd/mm/yyyy") == date(2025, 11, 17)
    assert parse_date(datetime(2024, 1, 2, 10, 0), None) == date(2024, 1, 2)
    assert parse_date(date(2024, 1, 2), None) == date(2024, 1, 2)


def test_parse_date_other_catalogue_entries():
    assert parse_date("05 Jan 2024", None) == date(2024, 1, 5)
    assert parse_date("05.01.2024", None) == date(2024, 1, 5)
    assert parse_date("05/01/24", "dd/mm/yy") == date(2024, 1, 5)
    assert parse_date("05/01/95", "dd/mm/yy") == date(1995, 1, 5)


def test_parse_date_never_raises():
    assert parse_date("not a date", "dd/mm/yyyy") is None
    assert parse_date(12345, "dd/mm/yyyy") is None
    assert parse_date(None, None) is None


def test_day_over_twelve_disambiguates_without_warning():
    det = detect_date_format(["31/01/2024", "15/02/2024"])
    assert det.format == "dd/mm/yyyy"
    assert det.confidence == 1.0
    assert det.warnings == ()


def test_fully_ambiguous_samples_warn():
    det = detect_date_format(["01/02/2024", "03/04/2024"])
    assert det.format in ("dd/mm/yyyy", "mm/dd/yyyy")
    assert det.warnings
