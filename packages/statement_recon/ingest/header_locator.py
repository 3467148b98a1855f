"""Locate the column-header row of a bank statement grid.

Bank exports often start with titles, account metadata (``Số tài khoản,
123456, Loại tài khoản, Thanh toán``) or summary rows before the real header.
Each candidate row among the first N rows is scored by a declarative rule
table (:data:`HEADER_RULES`); the highest score wins and ties keep the
earliest row. New bank layouts are handled by extending the keyword lists or
the rule table, not by adding branches.

Rule kinds
----------
- ``"count"``: the predicate returns a count; the rule adds ``weight * count``.
- ``"flag"``: the predicate returns a bool; the rule adds ``weight`` when true.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from ..diagnostics import DiagnosticsSink

CSV_SCAN_ROWS = 30
XLSX_SCAN_ROWS = 20
_MIN_NON_EMPTY = 3
_INITIAL_BEST_SCORE = -100

# Cells that are (or closely contain) one of these read as column labels.
HEADER_KEYWORDS: tuple[str, ...] = (
    "date", "ngày", "ngay", "transaction date", "giao dich", "ngày giờ",
    "description", "chi tiết", "mô tả", "particulars", "details", "dien giai", "diễn giải",
    "debit", "credit", "chi", "thu", "amount", "số tiền", "ghi nợ", "ghi có",
    "balance", "số dư", "sodu", "running balance",
    "reference", "but toan", "số but toan", "giao dịch", "séc",
    "account", "tai khoan", "tài khoản",
    "bank", "ngan hang", "ngân hàng",
    "fee", "phi", "phí", "interest", "lai", "lãi",
    "nhận", "nhan", "loại", "pttt", "phiếu", "người", "điện thoại",
    "mã", "chi nhánh", "lý do",
)  # fmt: skip

# Almost never present in data rows ("STT" is the Vietnamese row-number label).
STRONG_INDICATORS: tuple[str, ...] = ("stt", "no.", "#", "mã thanh toán")

_MAX_LABEL_LEN = 30
_KEYWORD_SLACK = 10
_LONG_CELL = 40
_DATE_TIME = re.compile(r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}")
_BARE_ID = re.compile(r"^#?\d{5,}$")
_METADATA_SPLIT = re.compile(r"[\s,/]")
_NUMERIC_STRIP = re.compile(r"[,.\s-]")
_NUMERIC_LEAD = re.compile(r"^\+?\d")
_NEWLINES = re.compile(r"\s*[\r\n]+\s*")


def cell_text(value: Any) -> str:
    """Render a raw cell as trimmed single-line text (``""`` for empty)."""

    if value is None:
        return ""
    return _NEWLINES.sub(" ", str(value)).strip()


def _matches_keyword(cell: str) -> bool:
    if len(cell) > _MAX_LABEL_LEN:
        return False
    return any(
        cell == kw or (kw in cell and len(cell) <= len(kw) + _KEYWORD_SLACK)
        for kw in HEADER_KEYWORDS
    )


def _is_strong_indicator(cell: str) -> bool:
    return len(cell) <= _MAX_LABEL_LEN and any(ind in cell for ind in STRONG_INDICATORS)


def _is_numeric(cell: str) -> bool:
    cleaned = _NUMERIC_STRIP.sub("", cell)
    return bool(cleaned) and _NUMERIC_LEAD.match(cleaned) is not None


@dataclass(frozen=True, slots=True)
class HeaderCandidate:
    """Features of one scanned row, computed once and shared by all rules."""

    position: int
    cells: tuple[str, ...]
    normalized: tuple[str, ...]
    keyword_matches: int

    @classmethod
    def from_row(cls, position: int, row: Sequence[Any]) -> HeaderCandidate:
        cells = tuple(t for t in (cell_text(v) for v in row) if t)
        normalized = tuple(c.lower() for c in cells)
        return cls(
            position=position,
            cells=cells,
            normalized=normalized,
            keyword_matches=sum(1 for c in normalized if _matches_keyword(c)),
        )

    def looks_like_metadata(self) -> bool:
        n = len(self.cells)
        if n < 4 or n % 2:
            return False
        return all(
            len(value) <= _MAX_LABEL_LEN and len(_METADATA_SPLIT.split(value)) <= 3
            for value in self.cells[1::2]
        )

    def mostly_numeric(self) -> bool:
        numeric = sum(1 for c in self.cells if _is_numeric(c))
        return numeric / len(self.cells) > 0.5


@dataclass(frozen=True, slots=True)
class ScoringRule:
    kind: Literal["count", "flag"]
    weight: int
    predicate: Callable[[HeaderCandidate], int | bool]
    name: str = ""

    def score(self, candidate: HeaderCandidate) -> int:
        result = self.predicate(candidate)
        if self.kind == "count":
            return self.weight * int(result)
        return self.weight if result else 0


HEADER_RULES: tuple[ScoringRule, ...] = (
    ScoringRule("count", 3, lambda c: c.keyword_matches, "keyword cell"),
    ScoringRule(
        "flag", 15, lambda c: any(_is_strong_indicator(x) for x in c.normalized), "strong label"
    ),
    ScoringRule("flag", -20, lambda c: c.keyword_matches < 2, "too few keywords"),
    ScoringRule("flag", -30, lambda c: any(_DATE_TIME.search(x) for x in c.cells), "date value"),
    ScoringRule("flag", -25, lambda c: any(_BARE_ID.match(x) for x in c.cells), "bare id"),
    ScoringRule("flag", -15, lambda c: any(len(x) > _LONG_CELL for x in c.cells), "long text"),
    ScoringRule("flag", 3, lambda c: len(c.cells) >= 5, "wide row"),
    ScoringRule("flag", 3, lambda c: len(c.cells) >= 8, "very wide row"),
    ScoringRule(
        "flag", 5, lambda c: c.position == 0 and c.keyword_matches >= 2, "first row labels"
    ),
    ScoringRule("flag", -10, HeaderCandidate.looks_like_metadata, "key/value metadata"),
    ScoringRule("flag", -10, HeaderCandidate.mostly_numeric, "numeric row"),
)


@dataclass(frozen=True, slots=True)
class HeaderDetection:
    index: int
    score: int
    keyword_matches: int


def score_candidate(
    candidate: HeaderCandidate, rules: Sequence[ScoringRule] = HEADER_RULES
) -> int:
    return sum(rule.score(candidate) for rule in rules)


def locate_header_row(
    rows: Sequence[Sequence[Any]],
    *,
    max_rows: int = CSV_SCAN_ROWS,
    rules: Sequence[ScoringRule] = HEADER_RULES,
    sink: DiagnosticsSink | None = None,
) -> HeaderDetection:
    """Return the index of the most header-like row among the first ``max_rows``.

    Rows with fewer than three non-empty cells are not candidates. When no row
    beats the floor score, index 0 is returned.
    """

    best = HeaderDetection(index=0, score=_INITIAL_BEST_SCORE, keyword_matches=0)
    for position, row in enumerate(rows[:max_rows]):
        candidate = HeaderCandidate.from_row(position, row)
        if len(candidate.cells) < _MIN_NON_EMPTY:
            continue
        score = score_candidate(candidate, rules)
        if sink is not None:
            sink.debug(
                "header",
                f"row {position}: score {score} ({candidate.keyword_matches} keyword cells)",
            )
        if score > best.score:
            best = HeaderDetection(position, score, candidate.keyword_matches)

    if sink is not None:
        sink.info("header", f"Detected header row {best.index} (score {best.score})")
    return best


__all__ = [
    "CSV_SCAN_ROWS",
    "HEADER_KEYWORDS",
    "HEADER_RULES",
    "STRONG_INDICATORS",
    "XLSX_SCAN_ROWS",
    "HeaderCandidate",
    "HeaderDetection",
    "ScoringRule",
    "cell_text",
    "locate_header_row",
    "score_candidate",
]
