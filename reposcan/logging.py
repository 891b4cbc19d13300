"""Logging setup shared by the scanner CLI, service and engine."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, MutableMapping, TextIO, Tuple

_ROOT = "reposcan"
_CONSOLE_FORMAT = "[reposcan] %(levelname)s %(component)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class _ComponentFormatter(logging.Formatter):
    """Shows the engine component (``scheduler``, ``detectors.dependency``)."""

    def format(self, record: logging.LogRecord) -> str:
        prefix = f"{_ROOT}."
        if record.name.startswith(prefix):
            record.component = record.name[len(prefix) :]
        else:
            record.component = record.name
        return super().format(record)


class DetectorLogAdapter(logging.LoggerAdapter):
    """Tags messages with the detector they concern."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        detector = self.extra["detector"] if self.extra else "?"
        kwargs.setdefault("extra", {})["detector"] = detector
        return f"[{detector}] {msg}", kwargs


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def detector_logger(detector_name: str, component: str = "scheduler") -> DetectorLogAdapter:
    return DetectorLogAdapter(get_logger(component), {"detector": detector_name})


def _level_for(verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Attach console (stderr) and optional file handlers to the ``reposcan`` logger.

    ``verbose`` wins over ``quiet``. Calling this again replaces the handlers
    installed by the previous call.
    """
    level = _level_for(verbose, quiet)
    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream)
    console.setLevel(level)
    console.setFormatter(_ComponentFormatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        # The file sink always records debug detail, whatever the console shows.
        logger.setLevel(logging.DEBUG)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["DetectorLogAdapter", "configure_logging", "detector_logger", "get_logger"]
