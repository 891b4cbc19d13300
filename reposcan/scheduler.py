"""Batch-by-batch concurrent execution of detectors with timeouts."""

from __future__ import annotations

import asyncio
import contextlib
from typing import AsyncIterator, Dict, Mapping, Optional, Sequence

from .detectors.base import Detector
from .logging import detector_logger, get_logger
from .models import DetectionError, DetectionResult, RepositoryContext

logger = get_logger("scheduler")

DETECTOR_TIMEOUT = "DETECTOR_TIMEOUT"
PIPELINE_TIMEOUT = "PIPELINE_TIMEOUT"
DETECTOR_EXECUTION_FAILED = "DETECTOR_EXECUTION_FAILED"
INVALID_DETECTOR_RESULT = "INVALID_DETECTOR_RESULT"


def failed_result(name: str, code: str, message: str) -> DetectionResult:
    return DetectionResult(
        detector_name=name,
        success=False,
        error=DetectionError(code=code, message=message, recoverable=True),
    )


def _discard_outcome(task: asyncio.Future) -> None:
    # Abandoned work may still finish or fail; nobody is waiting for it.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned detector task finished with error: %s", exc)


class ExecutionScheduler:
    """Runs resolved batches in order and converts every outcome into a result.

    Every detector in a batch is started at once and the batch must settle
    before the next begins. A detector that exceeds its own timeout is
    reported as failed and left running unobserved. When the overall deadline
    passes, unsettled and unstarted detectors are reported as timed out and
    the run returns without waiting further.
    """

    def __init__(self, *, max_concurrency: Optional[int] = None) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._max_concurrency = max_concurrency

    async def run(
        self,
        batches: Sequence[Sequence[str]],
        detectors: Mapping[str, Detector],
        context: RepositoryContext,
        *,
        detector_timeout_ms: int,
        overall_timeout_ms: int,
    ) -> Dict[str, DetectionResult]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + overall_timeout_ms / 1000
        semaphore = (
            asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None
        )
        results: Dict[str, DetectionResult] = {}

        for index, batch in enumerate(batches):
            remaining = deadline - loop.time()
            if remaining <= 0:
                self._expire(batches[index:], results, overall_timeout_ms)
                break

            logger.debug("Starting batch %d: %s", index, ", ".join(batch))
            tasks = {
                name: loop.create_task(
                    self._invoke(detectors[name], context, detector_timeout_ms, semaphore)
                )
                for name in batch
            }
            done, pending = await asyncio.wait(tasks.values(), timeout=remaining)
            for name, task in tasks.items():
                if task in done:
                    results[name] = task.result()

            if pending:
                for task in pending:
                    task.add_done_callback(_discard_outcome)
                logger.warning(
                    "Analysis timeout after %dms; abandoning remaining detectors",
                    overall_timeout_ms,
                )
                self._expire([batch, *batches[index + 1 :]], results, overall_timeout_ms)
                break

        return results

    async def _invoke(
        self,
        detector: Detector,
        context: RepositoryContext,
        timeout_ms: int,
        semaphore: Optional[asyncio.Semaphore],
    ) -> DetectionResult:
        log = detector_logger(detector.name)
        async with _maybe_acquire(semaphore):
            log.debug("started")
            try:
                work = asyncio.ensure_future(detector.detect(context))
            except Exception as exc:
                return self._execution_failure(detector.name, exc)

            done, _ = await asyncio.wait({work}, timeout=timeout_ms / 1000)
            if not done:
                work.add_done_callback(_discard_outcome)
                log.warning("timed out after %dms", timeout_ms)
                return failed_result(
                    detector.name, DETECTOR_TIMEOUT, f"Detector timeout after {timeout_ms}ms"
                )

        if work.cancelled():
            return failed_result(detector.name, DETECTOR_EXECUTION_FAILED, "Detector cancelled")
        exc = work.exception()
        if exc is not None:
            return self._execution_failure(detector.name, exc)

        result = work.result()
        if not isinstance(result, DetectionResult):
            log.warning("returned %s instead of a DetectionResult", type(result).__name__)
            return failed_result(
                detector.name,
                INVALID_DETECTOR_RESULT,
                f"Detector returned {type(result).__name__} instead of a DetectionResult",
            )
        if not result.success:
            log.info(
                "reported failure: %s", result.error.message if result.error else "no details"
            )
        else:
            log.debug("finished")
        return result

    @staticmethod
    def _execution_failure(name: str, exc: BaseException) -> DetectionResult:
        message = str(exc) or type(exc).__name__
        detector_logger(name).warning("failed: %s", message)
        return failed_result(name, DETECTOR_EXECUTION_FAILED, message)

    @staticmethod
    def _expire(
        batches: Sequence[Sequence[str]],
        results: Dict[str, DetectionResult],
        overall_timeout_ms: int,
    ) -> None:
        message = f"Analysis timeout after {overall_timeout_ms}ms"
        for batch in batches:
            for name in batch:
                if name not in results:
                    results[name] = failed_result(name, PIPELINE_TIMEOUT, message)


@contextlib.asynccontextmanager
async def _maybe_acquire(semaphore: Optional[asyncio.Semaphore]) -> AsyncIterator[None]:
    if semaphore is None:
        yield
        return
    async with semaphore:
        yield


__all__ = [
    "DETECTOR_EXECUTION_FAILED",
    "DETECTOR_TIMEOUT",
    "ExecutionScheduler",
    "INVALID_DETECTOR_RESULT",
    "PIPELINE_TIMEOUT",
    "failed_result",
]
