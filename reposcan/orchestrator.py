"""High-level orchestrator running registered detectors over a repository snapshot."""

from __future__ import annotations

import asyncio
import time
from typing import Dict, Iterable, List, Optional

from .aggregator import ReportGenerator
from .config import ScannerConfig
from .detectors.base import Detector
from .logging import get_logger
from .models import AnalysisReport, DetectionResult, RepositoryContext
from .registry import DetectorRegistry
from .resolver import resolve_batches
from .scheduler import ExecutionScheduler


class ScannerOrchestrator:
    """Public entry point: register detectors, then analyze snapshots.

    Detector outcomes never raise out of :meth:`analyze_repository`; faults,
    failure results and timeouts surface as a ``partial`` report with one
    ``"<detector>: <message>"`` entry per affected detector.
    """

    def __init__(
        self,
        detectors: Iterable[Detector] = (),
        *,
        config: ScannerConfig | None = None,
        report_generator: ReportGenerator | None = None,
        scheduler: ExecutionScheduler | None = None,
    ) -> None:
        self.config = config or ScannerConfig()
        self.logger = get_logger("orchestrator")
        self._registry = DetectorRegistry()
        self._report_generator = report_generator or ReportGenerator()
        self._scheduler = scheduler or ExecutionScheduler()
        for detector in detectors:
            self.register_detector(detector)

    def register_detector(self, detector: Detector) -> None:
        self._registry.register(detector)

    def get_detectors(self) -> List[Detector]:
        return self._registry.list()

    async def analyze_repository(
        self,
        context: RepositoryContext,
        *,
        overall_timeout_ms: Optional[int] = None,
        detector_timeout_ms: Optional[int] = None,
    ) -> AnalysisReport:
        overall = overall_timeout_ms if overall_timeout_ms is not None else self.config.timeout_ms
        per_detector = (
            detector_timeout_ms
            if detector_timeout_ms is not None
            else self.config.effective_detector_timeout_ms
        )
        detectors = self._registry.list()
        names = [detector.name for detector in detectors]
        started = time.perf_counter()
        self.logger.info(
            "Analyzing %s/%s with %d detector(s)", context.owner, context.repo, len(detectors)
        )

        results: Dict[str, DetectionResult] = {}
        extra_errors: List[str] = []
        try:
            batches = resolve_batches(detectors)
            self.logger.debug("Execution plan: %s", batches)
            results = await self._scheduler.run(
                batches,
                {detector.name: detector for detector in detectors},
                context,
                detector_timeout_ms=per_detector,
                overall_timeout_ms=overall,
            )
        except Exception as exc:
            self.logger.exception(
                "Orchestrator failure while analyzing %s/%s", context.owner, context.repo
            )
            extra_errors.append(f"Orchestrator failure: {exc}")

        report = self._report_generator.generate(
            results, context, names, extra_errors=extra_errors
        )
        elapsed_ms = (time.perf_counter() - started) * 1000
        self.logger.info(
            "Analysis of %s/%s finished as %s in %.0fms (health %s/100)",
            context.owner,
            context.repo,
            report.metadata.completion_status,
            elapsed_ms,
            report.health_score.total,
        )
        return report

    def analyze_repository_sync(
        self,
        context: RepositoryContext,
        *,
        overall_timeout_ms: Optional[int] = None,
        detector_timeout_ms: Optional[int] = None,
    ) -> AnalysisReport:
        """Run :meth:`analyze_repository` on a fresh event loop."""
        return asyncio.run(
            self.analyze_repository(
                context,
                overall_timeout_ms=overall_timeout_ms,
                detector_timeout_ms=detector_timeout_ms,
            )
        )


__all__ = ["ScannerOrchestrator"]
