from decimal import Decimal

import pytest
from statement_recon.ingest.amounts import amount_to_debit_credit, parse_amount


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1.000", Decimal("1000")),
        ("1,000.50", Decimal("1000.50")),
        ("1.000,50", Decimal("1000.50")),
        ("(1500)", Decimal("-1500")),
        ("2.500.000", Decimal("2500000")),
        ("1.234.567,89", Decimal("1234567.89")),
        ("1,234,567", Decimal("1234567")),
        ("12,5", Decimal("12.5")),
        ("0.25", Decimal("0.25")),
        ("-250.000", Decimal("-250000")),
        ("₫ 2.500.000", Decimal("2500000")),
        ("1 500 000", Decimal("1500000")),
        ("500.000 VND", Decimal("500000")),
        ("1.500-", Decimal("-1500")),
        ("+42", Decimal("42")),
    ],
)
def test_parse_amount_strings(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "-", "—", "abc", "1.2.3,4,5", True, "12abc"])
def test_parse_amount_unparseable_is_none(raw):
    assert parse_amount(raw) is None


def test_parse_amount_numbers_pass_through():
    assert parse_amount(1500) == Decimal("1500")
    assert parse_amount(0.1) == Decimal("0.1")
    assert parse_amount(Decimal("-3.50")) == Decimal("-3.50")
    assert parse_amount(float("nan")) is None


def _signed(a: Decimal, body: str) -> str:
    return f"-{body}" if a < 0 else body


def _us(a: Decimal) -> str:
    return _signed(a, f"{abs(a):,.2f}")


def _vn(a: Decimal) -> str:
    return _signed(a, f"{abs(a):,.2f}".replace(",", " ").replace(".", ",").replace(" ", "."))


def _vn_dong(a: Decimal) -> str:
    return _signed(a, f"{abs(a):,.0f}".replace(",", "."))


def _parenthesized(a: Decimal) -> str:
    return f"({abs(a):,.2f})" if a < 0 else f"{a:,.2f}"


def _with_glyph(a: Decimal) -> str:
    return f"{_vn(a)} ₫"


_AMOUNTS = [
    Decimal("0.5"),
    Decimal("250.5"),
    Decimal("1234.56"),
    Decimal("-1234.56"),
    Decimal("1500000"),
    Decimal("-2500000"),
    Decimal("1234567.89"),
]


@pytest.mark.parametrize("fmt", [_us, _vn, _vn_dong, _parenthesized, _with_glyph])
@pytest.mark.parametrize("amount", _AMOUNTS)
def test_formatted_amounts_parse_back(fmt, amount):
    if fmt is _vn_dong and amount != amount.to_integral_value():
        pytest.skip("whole-dong formatting drops the fraction")
    assert parse_amount(fmt(amount)) == amount


def test_amount_to_debit_credit_splits_by_sign():
    assert amount_to_debit_credit(Decimal("-500"), True) == (Decimal("500"), None)
    assert amount_to_debit_credit(Decimal("500"), True) == (None, Decimal("500"))
    # Without negative debits every amount is a credit magnitude.
    assert amount_to_debit_credit(Decimal("-500"), False) == (None, Decimal("500"))
