from __future__ import annotations

import io
import logging
from pathlib import Path

from reposcan.logging import configure_logging, detector_logger, get_logger


def test_console_lines_name_the_component_and_detector() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)

    get_logger("resolver").info("2 batches")
    detector_logger("framework").warning("timed out after %dms", 50)

    lines = stream.getvalue().splitlines()
    assert lines == [
        "[reposcan] INFO resolver: 2 batches",
        "[reposcan] WARNING scheduler: [framework] timed out after 50ms",
    ]


def test_quiet_hides_info_and_verbose_wins() -> None:
    stream = io.StringIO()
    configure_logging(quiet=True, stream=stream)
    get_logger("orchestrator").info("hidden")
    get_logger("orchestrator").warning("shown")
    assert stream.getvalue().splitlines() == ["[reposcan] WARNING orchestrator: shown"]

    logger = configure_logging(verbose=True, quiet=True, stream=io.StringIO())
    assert logger.level == logging.DEBUG


def test_reconfiguring_replaces_handlers(tmp_path: Path) -> None:
    configure_logging(stream=io.StringIO())
    logger = configure_logging(stream=io.StringIO(), log_file=tmp_path / "scan.log")
    assert len(logger.handlers) == 2

    get_logger("scheduler").debug("batch 0 started")
    for handler in logger.handlers:
        handler.flush()
    assert "reposcan.scheduler: batch 0 started" in (tmp_path / "scan.log").read_text(
        encoding="utf-8"
    )

    logger = configure_logging(stream=io.StringIO())
    assert len(logger.handlers) == 1
