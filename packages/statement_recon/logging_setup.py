"""Central logging configuration for ``statement_recon``.

Public helpers:

- ``configure_logging(...)``: install one ``StreamHandler`` on the package
  logger (``"statement_recon"``). Entry points (the CLI, a host service) call
  it once at startup; later calls are no-ops.
- ``get_logger(name)``: return a logger, making sure the package logger has a
  ``NullHandler`` until something configures it, so library use stays silent.
- ``level_for_severity(severity)``: map a diagnostics severity
  (``debug``/``info``/``warning``/``error``) onto a ``logging`` level.
- ``reset_logging()``: undo ``configure_logging`` (test isolation).

Library modules never attach handlers themselves; they call
``get_logger("statement_recon.<module>")``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "statement_recon"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False

_SEVERITY_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _level_from_text(text: str) -> int | None:
    # Numeric strings or level names (INFO/DEBUG/...).
    text = text.strip().upper()
    if text.isdigit():
        return int(text)
    numeric = getattr(logging, text, None)
    return numeric if isinstance(numeric, int) else None


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        parsed = _level_from_text(level)
        if parsed is not None:
            return parsed
    env_val = os.getenv("STATEMENT_RECON_LOG_LEVEL")
    if env_val:
        parsed = _level_from_text(env_val)
        if parsed is not None:
            return parsed
    return logging.INFO


def level_for_severity(severity: str) -> int:
    """Return the ``logging`` level used to mirror a diagnostic record."""

    try:
        return _SEVERITY_LEVELS[severity]
    except KeyError:
        raise ValueError(
            f"Unsupported severity: {severity!r}. Allowed: {sorted(_SEVERITY_LEVELS)}"
        ) from None


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package logger exactly once.

    Parameters
    ----------
    level:
        ``int`` or level name. ``None`` falls back to the
        ``STATEMENT_RECON_LOG_LEVEL`` environment variable, then ``INFO``.
    fmt:
        Optional format string (defaults to
        ``"%(asctime)s %(name)s %(levelname)s %(message)s"``).
    stream:
        Destination of the single ``StreamHandler`` (``sys.stderr``).
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Avoid double emission via the root logger.
    logger.propagate = False

    _CONFIGURED = True


def reset_logging() -> None:
    """Remove handlers installed by :func:`configure_logging`."""

    global _CONFIGURED
    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    _CONFIGURED = False


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name with library-safe defaults.

    Until :func:`configure_logging` runs, the package logger gets a
    ``NullHandler`` so importing code sees no "No handler" warnings.
    """

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "configure_logging",
    "get_logger",
    "level_for_severity",
    "reset_logging",
]
