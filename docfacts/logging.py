"""Logging utilities for docfacts commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

_LOGGER_NAME = "docfacts"
_DIAGNOSTIC_LIMIT = 20


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the docfacts hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure the docfacts logger with console output and an optional file sink.

    ``quiet`` keeps the console to errors only; the file sink, when given, always
    records at the verbose/normal level so a run can be inspected afterwards.
    """
    level = logging.DEBUG if verbose else logging.INFO
    console_level = logging.ERROR if quiet else level
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers so repeated CLI invocations in one process do not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(console_level)
    stream_handler.setFormatter(logging.Formatter("[docfacts] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def log_diagnostics(
    logger: logging.Logger,
    diagnostics: Sequence[object],
    *,
    label: str,
    limit: int = _DIAGNOSTIC_LIMIT,
) -> None:
    """Log non-fatal diagnostics as warnings, collapsing long lists."""
    if not diagnostics:
        return
    logger.warning("%d %s", len(diagnostics), label)
    for item in diagnostics[:limit]:
        logger.warning("  %s", item)
    hidden = len(diagnostics) - limit
    if hidden > 0:
        logger.warning("  ... and %d more (run with --verbose to list all)", hidden)
        for item in diagnostics[limit:]:
            logger.debug("  %s", item)


__all__ = ["configure_logging", "get_logger", "log_diagnostics"]
