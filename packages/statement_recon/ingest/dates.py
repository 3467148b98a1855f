"""Date format detection and parsing for statement date columns.

The catalogue below is ordered: datetime variants come before date-only ones,
and the ambiguous ``dd/mm/yyyy`` / ``mm/dd/yyyy`` orderings are separate tags.
Each entry is data (tag, regex, field order), parsed by one generic routine.

Parsing is strict: ``31/02/2024`` is a failure, never rolled over into March.
Two-digit years map ``00-29`` to the 2000s and ``30-99`` to the 1900s.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from ..models import DateFormatDetection

_TIME = r"\s+(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?"
_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")

# Trailing clock time ("17/11/2025 15:45", "05 Jan 2024 9:30 AM").
_TRAILING_TIME = re.compile(r"^(.*?\S)\s+\d{1,2}:\d{1,2}(?::\d{1,2})?(?:\s*[AaPp][Mm])?$")
_LEADING_PAIR = re.compile(r"^\s*(\d{1,2})\D(\d{1,2})\D")

UNKNOWN_FORMAT = "unknown"
AMBIGUOUS_TAGS = ("dd/mm/yyyy", "mm/dd/yyyy")
_AMBIGUITY_WARNINGS = {
    "dd/mm/yyyy": "Date format auto-detected as dd/mm/yyyy (Vietnam format). Change if incorrect.",
    "mm/dd/yyyy": "Date format detected as mm/dd/yyyy (US format). Change to dd/mm/yyyy if needed.",
}
_MAX_SAMPLES = 10


@dataclass(frozen=True, slots=True)
class DateFormatEntry:
    """One catalogue entry.

    ``fields`` names the first three capture groups: ``d`` day, ``m`` month
    number, ``b`` English month abbreviation, ``y`` four-digit year, ``yy``
    two-digit year. Datetime entries capture hour/minute/second after them.
    """

    tag: str
    pattern: re.Pattern[str]
    fields: tuple[str, str, str]
    has_time: bool = False

    def parse(self, text: str) -> date | None:
        m = self.pattern.match(text)
        if m is None:
            return None
        parts = dict(zip(self.fields, m.groups()[:3], strict=True))
        try:
            if "b" in parts:
                month = _MONTHS.index(parts["b"].lower()) + 1
            else:
                month = int(parts["m"])
            if "yy" in parts:
                yy = int(parts["yy"])
                year = 2000 + yy if yy < 30 else 1900 + yy
            else:
                year = int(parts["y"])
            if self.has_time:
                hh, mi, ss = m.groups()[3:6]
                stamp = datetime(year, month, int(parts["d"]), int(hh), int(mi), int(ss or 0))
                return stamp.date()
            return date(year, month, int(parts["d"]))
        except ValueError:
            return None


def _entry(
    tag: str, regex: str, fields: tuple[str, str, str], *, has_time: bool = False
) -> DateFormatEntry:
    return DateFormatEntry(tag, re.compile(regex, re.IGNORECASE), fields, has_time)


DATE_FORMAT_CATALOGUE: tuple[DateFormatEntry, ...] = (
    # Datetime variants first
    _entry(
        "yyyy-mm-dd", r"^(\d{4})-(\d{1,2})-(\d{1,2})" + _TIME + "$", ("y", "m", "d"), has_time=True
    ),
    _entry(
        "dd/mm/yyyy", r"^(\d{1,2})/(\d{1,2})/(\d{4})" + _TIME + "$", ("d", "m", "y"), has_time=True
    ),
    _entry(
        "mm/dd/yyyy", r"^(\d{1,2})/(\d{1,2})/(\d{4})" + _TIME + "$", ("m", "d", "y"), has_time=True
    ),
    # Date-only
    _entry("dd/mm/yyyy", r"^(\d{1,2})/(\d{1,2})/(\d{4})$", ("d", "m", "y")),
    _entry("dd-mm-yyyy", r"^(\d{1,2})-(\d{1,2})-(\d{4})$", ("d", "m", "y")),
    _entry("dd.mm.yyyy", r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$", ("d", "m", "y")),
    _entry("mm/dd/yyyy", r"^(\d{1,2})/(\d{1,2})/(\d{4})$", ("m", "d", "y")),
    _entry("yyyy-mm-dd", r"^(\d{4})-(\d{1,2})-(\d{1,2})$", ("y", "m", "d")),
    _entry("yyyy/mm/dd", r"^(\d{4})/(\d{1,2})/(\d{1,2})$", ("y", "m", "d")),
    # Two-digit years
    _entry("mm/dd/yy", r"^(\d{1,2})/(\d{1,2})/(\d{2})$", ("m", "d", "yy")),
    _entry("dd/mm/yy", r"^(\d{1,2})/(\d{1,2})/(\d{2})$", ("d", "m", "yy")),
    _entry("m/d/yy", r"^(\d{1,2})/(\d{1,2})/(\d{2})$", ("m", "d", "yy")),
    _entry("d/m/yy", r"^(\d{1,2})/(\d{1,2})/(\d{2})$", ("d", "m", "yy")),
    _entry(
        "dd MMM yyyy",
        r"^(\d{1,2})\s+(" + "|".join(_MONTHS) + r")\s+(\d{4})$",
        ("d", "b", "y"),
    ),
)

DATE_FORMAT_TAGS: tuple[str, ...] = tuple(dict.fromkeys(e.tag for e in DATE_FORMAT_CATALOGUE))


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        text = value.strip()
        return text or None
    return None


def detect_date_format(samples: Iterable[Any]) -> DateFormatDetection:
    """Infer the date format tag from up to 10 non-blank string samples.

    Each tag is scored by ``success / tried`` over the samples its entries'
    regexes match, then by ``tried`` (more evidence wins), then by catalogue
    order. Non-string samples (numbers) are ignored.
    """

    valid = [t for t in (_as_text(v) for v in samples) if t is not None][:_MAX_SAMPLES]
    if not valid:
        return DateFormatDetection(UNKNOWN_FORMAT, 0.0, ("No valid date samples found",))

    # tag -> [success, tried]; dict preserves first-seen catalogue order
    scores: dict[str, list[int]] = {}
    for entry in DATE_FORMAT_CATALOGUE:
        for sample in valid:
            if entry.pattern.match(sample) is None:
                continue
            counts = scores.setdefault(entry.tag, [0, 0])
            counts[1] += 1
            if entry.parse(sample) is not None:
                counts[0] += 1

    ranked = sorted(
        enumerate(scores.items()),
        key=lambda item: (-(item[1][1][0] / item[1][1][1]), -item[1][1][1], item[0]),
    )
    if not ranked or ranked[0][1][1][0] == 0:
        return DateFormatDetection(
            UNKNOWN_FORMAT, 0.0, ("Could not detect date format from samples",)
        )

    _, (tag, (success, tried)) = ranked[0]
    warnings: list[str] = []
    if tag in AMBIGUOUS_TAGS and _has_ambiguous_sample(valid):
        warnings.append(_AMBIGUITY_WARNINGS[tag])
    return DateFormatDetection(tag, success / tried, tuple(warnings))


def _has_ambiguous_sample(samples: Sequence[str]) -> bool:
    for sample in samples:
        m = _LEADING_PAIR.match(sample)
        if m and int(m.group(1)) <= 12 and int(m.group(2)) <= 12:
            return True
    return False


def _try_entries(text: str, entries: Iterable[DateFormatEntry]) -> date | None:
    for entry in entries:
        parsed = entry.parse(text)
        if parsed is not None:
            return parsed
    return None


def parse_date(value: Any, fmt: str | None) -> date | None:
    """Parse one value under ``fmt``, falling back to the whole catalogue.

    Accepts ``date``/``datetime`` objects as-is. A trailing clock time is
    tolerated. Returns ``None`` for anything unparseable; never raises.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _as_text(value)
    if text is None:
        return None

    candidates = [text]
    m = _TRAILING_TIME.match(text)
    if m:
        candidates.append(m.group(1))

    preferred = [e for e in DATE_FORMAT_CATALOGUE if e.tag == fmt]
    for candidate in candidates:
        parsed = _try_entries(candidate, preferred)
        if parsed is not None:
            return parsed
    for candidate in candidates:
        parsed = _try_entries(candidate, DATE_FORMAT_CATALOGUE)
        if parsed is not None:
            return parsed
    return None


__all__ = [
    "AMBIGUOUS_TAGS",
    "DATE_FORMAT_CATALOGUE",
    "DATE_FORMAT_TAGS",
    "UNKNOWN_FORMAT",
    "DateFormatEntry",
    "detect_date_format",
    "parse_date",
]
