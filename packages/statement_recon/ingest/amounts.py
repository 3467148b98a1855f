"""Amount normalization for locale-ambiguous statement cells.

``parse_amount`` turns strings such as ``"1.000"``, ``"1,000.50"``,
``"1.000,50"``, ``"(1500)"`` or ``"₫ 2.500.000"`` into signed ``Decimal``
values. It never raises: anything that does not end up as a base-10 number
resolves to ``None``.

Separator rules
---------------
- A separator that appears more than once is a thousands separator. If the
  other separator appears exactly once, it is the decimal separator
  (``1.234.567,89`` -> ``1234567.89``).
- Both appearing exactly once: the later one is the decimal separator.
- Only one appearing exactly once: thousands separator iff exactly three
  digits follow it, decimal separator otherwise.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

# Dash family used for "no amount" in Vietnamese bank exports.
_NULL_TOKENS = frozenset({"", "-", "—", "–", "−"})
_CURRENCY_GLYPHS = re.compile(r"[₫$€£¥]")
# Trailing/leading currency codes seen in exports ("1.000.000 VND", "500 đ").
_CURRENCY_CODES = re.compile(r"(?i)^(?:vnd|vnđ|usd|đ)|(?:vnd|vnđ|usd|đ)$")
_WHITESPACE = re.compile(r"\s+")


def _resolve_separators(text: str) -> str:
    dots = text.count(".")
    commas = text.count(",")

    if dots > 1 and commas > 1:
        # Not a number in any locale we know.
        return text
    if dots > 1:
        text = text.replace(".", "")
        return text.replace(",", ".") if commas == 1 else text
    if commas > 1:
        return text.replace(",", "")
    if dots == 1 and commas == 1:
        if text.rfind(".") > text.rfind(","):
            return text.replace(",", "")
        return text.replace(".", "").replace(",", ".")
    if dots == 1:
        if len(text) - text.rfind(".") - 1 == 3:
            return text.replace(".", "")
        return text
    if commas == 1:
        if len(text) - text.rfind(",") - 1 == 3:
            return text.replace(",", "")
        return text.replace(",", ".")
    return text


def parse_amount(value: Any) -> Decimal | None:
    """Parse a statement amount cell into a signed ``Decimal`` (or ``None``).

    Numbers pass through unchanged (converted via ``str`` so that binary
    floats keep their printed value). ``bool`` is not treated as a number.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int | float):
        try:
            d = Decimal(str(value))
        except InvalidOperation:
            return None
        return d if d.is_finite() else None

    text = str(value).strip()
    if text in _NULL_TOKENS:
        return None

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    text = _CURRENCY_GLYPHS.sub("", text)
    text = _WHITESPACE.sub("", text)
    text = _CURRENCY_CODES.sub("", text)
    if text.startswith("-"):
        negative = not negative
        text = text[1:]
    elif text.startswith("+"):
        text = text[1:]
    # Trailing minus ("1.500-") appears in some core-banking exports.
    if text.endswith("-"):
        negative = not negative
        text = text[:-1]

    if not text or text in _NULL_TOKENS:
        return None

    text = _resolve_separators(text)
    if not re.fullmatch(r"\d+(?:\.\d+)?|\.\d+", text):
        return None
    try:
        d = Decimal(text)
    except InvalidOperation:
        return None
    return -d if negative else d


def amount_to_debit_credit(
    amount: Decimal, has_negative_debits: bool
) -> tuple[Decimal | None, Decimal | None]:
    """Split a signed amount into ``(debit, credit)`` magnitudes.

    With ``has_negative_debits`` a negative value is a debit (withdrawal) and
    anything else a credit. Without it the column is taken to hold credits
    only, matching exports where debits live in their own column.
    """

    if has_negative_debits and amount < 0:
        return -amount, None
    return None, abs(amount)


__all__ = ["amount_to_debit_credit", "parse_amount"]
