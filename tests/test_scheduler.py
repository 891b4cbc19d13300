"""Tests for batch execution, timeouts and failure isolation."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Sequence

import pytest

from reposcan.detectors.base import Detector
from reposcan.models import DetectionResult, RepositoryContext
from reposcan.resolver import resolve_batches
from reposcan.scheduler import (
    DETECTOR_EXECUTION_FAILED,
    DETECTOR_TIMEOUT,
    INVALID_DETECTOR_RESULT,
    PIPELINE_TIMEOUT,
    ExecutionScheduler,
)
from tests._fixtures.context_builder import ContextBuilder
from tests._fixtures.detectors import ScriptedDetector, event_time


def _run(
    detectors: Sequence[Detector],
    *,
    detector_timeout_ms: int = 1_000,
    overall_timeout_ms: int = 5_000,
    scheduler: ExecutionScheduler | None = None,
) -> Dict[str, DetectionResult]:
    context: RepositoryContext = ContextBuilder().build()
    scheduler = scheduler or ExecutionScheduler()
    return asyncio.run(
        scheduler.run(
            resolve_batches(detectors),
            {detector.name: detector for detector in detectors},
            context,
            detector_timeout_ms=detector_timeout_ms,
            overall_timeout_ms=overall_timeout_ms,
        )
    )


def test_dependent_detector_starts_after_dependency_finishes() -> None:
    log: List[tuple] = []
    detectors = [
        ScriptedDetector("language", delay=0.05, log=log),
        ScriptedDetector("framework", depends_on=["language"], log=log),
    ]
    results = _run(detectors)

    assert results["language"].success and results["framework"].success
    assert event_time(log, "start", "framework") >= event_time(log, "end", "language")


def test_detectors_in_one_batch_run_concurrently() -> None:
    log: List[tuple] = []
    detectors = [
        ScriptedDetector("a", delay=0.1, log=log),
        ScriptedDetector("b", delay=0.1, log=log),
    ]
    _run(detectors)

    first_end = min(event_time(log, "end", "a"), event_time(log, "end", "b"))
    assert event_time(log, "start", "a") < first_end
    assert event_time(log, "start", "b") < first_end


def test_slow_detector_times_out_without_blocking_others() -> None:
    slow = ScriptedDetector("slow", delay=1.0)
    fast = ScriptedDetector("fast")
    results = _run([slow, fast], detector_timeout_ms=50)

    assert results["fast"].success is True
    timed_out = results["slow"]
    assert timed_out.success is False
    assert timed_out.error is not None
    assert timed_out.error.code == DETECTOR_TIMEOUT
    assert timed_out.error.message == "Detector timeout after 50ms"
    assert timed_out.error.recoverable is True
    # The abandoned work never reached completion before the run returned.
    assert slow.finished is False


def test_overall_timeout_marks_unfinished_and_unstarted_detectors() -> None:
    slow = ScriptedDetector("slow", delay=1.0)
    later = ScriptedDetector("later", depends_on=["slow"])
    quick = ScriptedDetector("quick")
    results = _run([slow, later, quick], detector_timeout_ms=5_000, overall_timeout_ms=100)

    assert results["quick"].success is True
    for name in ("slow", "later"):
        error = results[name].error
        assert results[name].success is False
        assert error is not None and error.code == PIPELINE_TIMEOUT
        assert error.message == "Analysis timeout after 100ms"
    assert later.calls == 0


def test_raising_detector_becomes_execution_failure() -> None:
    broken = ScriptedDetector("broken", raises=RuntimeError("boom"))
    healthy = ScriptedDetector("healthy")
    results = _run([broken, healthy])

    assert results["healthy"].success is True
    error = results["broken"].error
    assert results["broken"].success is False
    assert error is not None
    assert error.code == DETECTOR_EXECUTION_FAILED
    assert error.message == "boom"


def test_dependents_still_run_after_dependency_fails() -> None:
    broken = ScriptedDetector("language", raises=ValueError("bad input"))
    dependent = ScriptedDetector("framework", depends_on=["language"])
    results = _run([broken, dependent])

    assert results["language"].success is False
    assert results["framework"].success is True
    assert dependent.calls == 1


def test_dependents_still_run_after_dependency_times_out() -> None:
    slow = ScriptedDetector("language", delay=1.0)
    dependent = ScriptedDetector("framework", depends_on=["language"])
    results = _run([slow, dependent], detector_timeout_ms=50)

    assert results["language"].error is not None
    assert results["language"].error.code == DETECTOR_TIMEOUT
    assert slow.finished is False
    assert results["framework"].success is True
    assert dependent.calls == 1


def test_failure_result_is_preserved() -> None:
    results = _run([ScriptedDetector("picky", fail_message="manifest unreadable")])

    error = results["picky"].error
    assert results["picky"].success is False
    assert error is not None
    assert error.code == "SCRIPTED_FAILURE"
    assert error.message == "manifest unreadable"


def test_non_result_return_value_is_rejected() -> None:
    results = _run([ScriptedDetector("odd", returns={"languages": []})])

    error = results["odd"].error
    assert results["odd"].success is False
    assert error is not None and error.code == INVALID_DETECTOR_RESULT


def test_every_scheduled_detector_gets_a_result() -> None:
    detectors = [
        ScriptedDetector("a"),
        ScriptedDetector("b", depends_on=["a"]),
        ScriptedDetector("c", depends_on=["d"]),
        ScriptedDetector("d", depends_on=["c"]),
    ]
    results = _run(detectors)
    assert set(results) == {"a", "b", "c", "d"}


def test_max_concurrency_serializes_a_batch() -> None:
    log: List[tuple] = []
    detectors = [
        ScriptedDetector("a", delay=0.05, log=log),
        ScriptedDetector("b", delay=0.05, log=log),
    ]
    _run(detectors, scheduler=ExecutionScheduler(max_concurrency=1))

    assert event_time(log, "start", "b") >= event_time(log, "end", "a")


def test_max_concurrency_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ExecutionScheduler(max_concurrency=0)
