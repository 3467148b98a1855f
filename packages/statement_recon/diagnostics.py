"""Injectable diagnostics sink for the parsing pipeline.

Every parsing stage reports what it decided (header row chosen, merges
resolved, rows dropped, ambiguous date format, ...) into a
:class:`DiagnosticsSink`. The collected records travel back to the caller on
the parse result, so a UI can show them and tests can assert on them without
capturing log output. Each record is also mirrored to the
``statement_recon.<stage>`` logger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .logging_setup import get_logger, level_for_severity

type Severity = Literal["debug", "info", "warning", "error"]


@dataclass(frozen=True, slots=True)
class Diagnostic:
    stage: str
    message: str
    severity: Severity = "info"


@dataclass(slots=True)
class DiagnosticsSink:
    """Append-only collector of :class:`Diagnostic` records."""

    records: list[Diagnostic] = field(default_factory=list)

    def emit(self, stage: str, message: str, severity: Severity = "info") -> None:
        level = level_for_severity(severity)
        self.records.append(Diagnostic(stage=stage, message=message, severity=severity))
        get_logger(f"statement_recon.{stage}").log(level, message)

    def debug(self, stage: str, message: str) -> None:
        self.emit(stage, message, "debug")

    def info(self, stage: str, message: str) -> None:
        self.emit(stage, message, "info")

    def warning(self, stage: str, message: str) -> None:
        self.emit(stage, message, "warning")

    def error(self, stage: str, message: str) -> None:
        self.emit(stage, message, "error")

    def for_stage(self, stage: str) -> list[Diagnostic]:
        return [d for d in self.records if d.stage == stage]

    @property
    def warnings(self) -> list[str]:
        return [d.message for d in self.records if d.severity in ("warning", "error")]


__all__ = ["Diagnostic", "DiagnosticsSink", "Severity"]
