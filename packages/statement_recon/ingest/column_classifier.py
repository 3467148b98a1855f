"""Suggest a semantic role for every statement column.

Classification is advisory. Each header is checked against an ordered rule
table (:data:`CLASSIFIER_RULES`); the first rule whose keywords match and
whose content assessment accepts the column wins. Rules carry their own
confidence logic:

- date columns run :func:`detect_date_format` over the samples and take its
  confidence (plus any ambiguity warnings);
- debit/credit/balance columns get a higher confidence when at least one
  sample parses as an amount;
- a signed "amount" column needs parseable samples and is boosted when both
  signs appear;
- a mostly numeric column nobody claimed is left as ``ignore`` but flagged
  for manual mapping.

Manual overrides always win (:func:`apply_overrides`).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal

from ..models import (
    COLUMN_ROLES,
    CellValue,
    ColumnClassification,
    ColumnMapping,
    ColumnMappingEntry,
)
from .amounts import parse_amount
from .dates import UNKNOWN_FORMAT, detect_date_format
from .header_locator import cell_text

SAMPLE_ROWS = 10
SAMPLE_VALUES_SHOWN = 5
_NUMERIC_SHARE = 0.7


@dataclass(frozen=True, slots=True)
class ColumnProfile:
    """A column's header and sampled values, as seen by the rules."""

    name: str
    normalized: str
    samples: tuple[CellValue, ...]
    amounts: tuple[Decimal, ...]

    @classmethod
    def build(cls, name: str, samples: Sequence[CellValue]) -> ColumnProfile:
        amounts = tuple(a for a in (parse_amount(v) for v in samples) if a is not None)
        return cls(name, name.lower().strip(), tuple(samples), amounts)

    @property
    def has_numbers(self) -> bool:
        return bool(self.amounts)

    def shown_values(self) -> tuple[str, ...]:
        shown = [cell_text(v) for v in self.samples if cell_text(v)]
        return tuple(shown[:SAMPLE_VALUES_SHOWN])


@dataclass(frozen=True, slots=True)
class RuleOutcome:
    confidence: float
    justification: str
    date_format: str | None = None
    warnings: tuple[str, ...] = ()
    needs_manual_mapping: bool = False


@dataclass(frozen=True, slots=True)
class ClassifierRule:
    """One row of the classification table.

    ``kind="keyword"`` rules apply when the normalized header contains one of
    ``keywords`` (and none of ``excludes``); ``kind="content"`` rules look at
    the samples only. ``assess`` may return ``None`` to fall through.
    """

    kind: Literal["keyword", "content"]
    role: str
    keywords: tuple[str, ...]
    assess: Callable[[ColumnProfile], RuleOutcome | None]
    excludes: tuple[str, ...] = ()

    def applies_to(self, profile: ColumnProfile) -> bool:
        if self.kind == "content":
            return True
        header = profile.normalized
        if any(ex in header for ex in self.excludes):
            return False
        return any(kw in header for kw in self.keywords)


def _fixed(confidence: float, justification: str) -> Callable[[ColumnProfile], RuleOutcome]:
    def assess(_profile: ColumnProfile) -> RuleOutcome:
        return RuleOutcome(confidence, justification)

    return assess


def _numeric_sanity(
    with_numbers: float, without: float, justification: str
) -> Callable[[ColumnProfile], RuleOutcome]:
    def assess(profile: ColumnProfile) -> RuleOutcome:
        return RuleOutcome(with_numbers if profile.has_numbers else without, justification)

    return assess


def _assess_date(profile: ColumnProfile) -> RuleOutcome | None:
    detection = detect_date_format(profile.samples)
    if detection.format == UNKNOWN_FORMAT and any(cell_text(v) for v in profile.samples):
        # Named like a date ("Mã giao dịch") but holding no dates.
        return None
    pct = round(detection.confidence * 100)
    return RuleOutcome(
        detection.confidence,
        f'Column name contains "date" and {pct}% of samples match date format '
        f"{detection.format}",
        date_format=detection.format,
        warnings=detection.warnings,
    )


def _assess_signed_amount(profile: ColumnProfile) -> RuleOutcome | None:
    if not profile.has_numbers:
        return None
    has_negative = any(a < 0 for a in profile.amounts)
    has_positive = any(a > 0 for a in profile.amounts)
    if has_negative and has_positive:
        return RuleOutcome(
            0.85,
            "Column contains both positive and negative amounts "
            "(negative = debit, positive = credit)",
        )
    return RuleOutcome(0.6, "Column name suggests a signed amount; only one sign seen in samples")


def _assess_numeric_fallback(profile: ColumnProfile) -> RuleOutcome | None:
    if not profile.samples or len(profile.amounts) < len(profile.samples) * _NUMERIC_SHARE:
        return None
    return RuleOutcome(
        0.3,
        "Numeric column - please map manually to debit, credit, amount, or balance",
        needs_manual_mapping=True,
    )


# Vietnamese branch headers start with "chi" (spend) as well.
_BRANCH_PHRASES = ("chi nhánh", "chi nhanh", "chinhanh")

CLASSIFIER_RULES: tuple[ClassifierRule, ...] = (
    ClassifierRule(
        "keyword",
        "date",
        ("date", "ngày", "ngay", "giờ", "gio", "giao dịch"),
        _assess_date,
    ),
    ClassifierRule(
        "keyword",
        "description",
        (
            "description", "memo", "details", "particulars", "narration",
            "chi tiết", "diễn giải", "dien giai", "mô tả", "nội dung", "noi dung",
        ),  # fmt: skip
        _fixed(0.9, "Column name suggests transaction description"),
    ),
    ClassifierRule(
        "keyword",
        "debit",
        ("debit", "withdrawal", "spent", "payment", "chi", "rút", "ghi nợ"),
        _numeric_sanity(0.85, 0.6, "Column name suggests debit/withdrawal amounts"),
        excludes=_BRANCH_PHRASES,
    ),
    ClassifierRule(
        "keyword",
        "credit",
        ("credit", "deposit", "received", "income", "thu", "nạp", "nhận", "nhan", "ghi có"),
        _numeric_sanity(0.85, 0.6, "Column name suggests credit/deposit amounts"),
    ),
    ClassifierRule(
        "keyword",
        "balance",
        ("balance", "số dư", "so du", "sodu"),
        _numeric_sanity(0.9, 0.7, "Column name suggests account balance"),
    ),
    ClassifierRule(
        "keyword",
        "reference",
        ("reference", "ref", "id", "transaction id", "doc", "mã", "số chứng từ"),
        _fixed(0.8, "Column name suggests reference number or transaction ID"),
    ),
    ClassifierRule(
        "keyword",
        "branch",
        (
            "branch", "chi nhánh", "chi nhanh", "chinhanh",
            "location", "store", "cửa hàng", "cua hang",
        ),  # fmt: skip
        _fixed(0.9, "Column name suggests branch or store location"),
    ),
    ClassifierRule("keyword", "amount", ("amount", "số tiền", "so tien"), _assess_signed_amount),
    ClassifierRule("content", "ignore", (), _assess_numeric_fallback),
    ClassifierRule(
        "content",
        "ignore",
        (),
        _fixed(0.2, "Could not determine column type - set manually if needed"),
    ),
)


def classify_column(name: str, samples: Sequence[CellValue]) -> ColumnClassification:
    profile = ColumnProfile.build(name, samples)
    for rule in CLASSIFIER_RULES:
        if not rule.applies_to(profile):
            continue
        outcome = rule.assess(profile)
        if outcome is None:
            continue
        return ColumnClassification(
            name=name,
            suggested_role=rule.role,
            confidence=outcome.confidence,
            justification=outcome.justification,
            sample_values=profile.shown_values(),
            date_format=outcome.date_format,
            warnings=outcome.warnings,
            needs_manual_mapping=outcome.needs_manual_mapping,
        )
    raise AssertionError("the last classifier rule accepts every column")


def classify_columns(
    headers: Sequence[str], sample_rows: Sequence[Mapping[str, Any]]
) -> list[ColumnClassification]:
    """Classify every header using the first 10 sample rows."""

    sample = list(sample_rows[:SAMPLE_ROWS])
    return [classify_column(h, [row.get(h) for row in sample]) for h in headers]


def apply_overrides(
    classifications: Sequence[ColumnClassification], overrides: Mapping[str, str]
) -> list[ColumnClassification]:
    """Replace suggestions with manual roles; manual choices always win."""

    unknown_roles = sorted({r for r in overrides.values() if r not in COLUMN_ROLES})
    if unknown_roles:
        raise ValueError(
            f"Unsupported column role(s): {unknown_roles}. Allowed: {list(COLUMN_ROLES)}"
        )
    names = {c.name for c in classifications}
    unknown_cols = sorted(set(overrides) - names)
    if unknown_cols:
        raise ValueError(f"Unknown column(s) in overrides: {unknown_cols}")

    out: list[ColumnClassification] = []
    for c in classifications:
        role = overrides.get(c.name)
        if role is None:
            out.append(c)
            continue
        out.append(
            c.model_copy(
                update={
                    "suggested_role": role,
                    "confidence": 1.0,
                    "justification": "Manually mapped",
                    "needs_manual_mapping": False,
                }
            )
        )
    return out


def build_column_mapping(
    classifications: Sequence[ColumnClassification], *, date_format: str | None = None
) -> ColumnMapping:
    """Turn (possibly overridden) classifications into a :class:`ColumnMapping`.

    ``date_format`` defaults to the first date column's detected format.
    Negative debits are assumed whenever a signed amount column is mapped.
    """

    entries = [
        ColumnMappingEntry(column=c.name, role=c.suggested_role, date_format=c.date_format)
        for c in classifications
        if c.suggested_role != "ignore"
    ]
    if date_format is None:
        date_format = next(
            (
                c.date_format
                for c in classifications
                if c.suggested_role == "date" and c.date_format and c.date_format != UNKNOWN_FORMAT
            ),
            None,
        )
    has_amount = any(c.suggested_role == "amount" for c in classifications)
    return ColumnMapping(columns=entries, date_format=date_format, has_negative_debits=has_amount)


__all__ = [
    "CLASSIFIER_RULES",
    "ClassifierRule",
    "ColumnProfile",
    "RuleOutcome",
    "apply_overrides",
    "build_column_mapping",
    "classify_column",
    "classify_columns",
]
