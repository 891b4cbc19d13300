"""Assembly of the final analysis report from per-detector results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Type, TypeVar

from .health import HealthScorer
from .insights import generate_issues, generate_recommendations
from .logging import get_logger
from .models import (
    ANALYSIS_VERSION,
    AnalysisReport,
    BuildToolDetectionResult,
    DependencyAnalysisResult,
    DetectionError,
    DetectionResult,
    FrameworkDetectionResult,
    LanguageDetectionResult,
    ReportMetadata,
    RepositoryContext,
    RepositoryInfo,
)

logger = get_logger("aggregator")

_ResultT = TypeVar("_ResultT", bound=DetectionResult)

README_CANDIDATES = ("README.md", "readme.md", "README", "README.rst")

_CATEGORY_TYPES: Dict[str, Type[DetectionResult]] = {
    "language": LanguageDetectionResult,
    "framework": FrameworkDetectionResult,
    "build_tool": BuildToolDetectionResult,
    "dependency": DependencyAnalysisResult,
}


def find_readme(context: RepositoryContext) -> Optional[str]:
    for path in README_CANDIDATES:
        content = context.get_file_content(path)
        if content:
            return content
    return None


class ReportGenerator:
    """Builds an :class:`AnalysisReport` from a scheduler result map."""

    def __init__(self, health_scorer: HealthScorer | None = None) -> None:
        self._health_scorer = health_scorer or HealthScorer()

    def generate(
        self,
        results: Mapping[str, DetectionResult],
        context: RepositoryContext,
        registered: Sequence[str],
        *,
        extra_errors: Sequence[str] = (),
        now: Optional[datetime] = None,
    ) -> AnalysisReport:
        languages = _category_payload(results, "language", LanguageDetectionResult)
        frameworks = _category_payload(results, "framework", FrameworkDetectionResult)
        build_tools = _category_payload(results, "build_tool", BuildToolDetectionResult)
        dependencies = _category_payload(results, "dependency", DependencyAnalysisResult)

        errors = self._collect_errors(results, registered)
        errors.extend(extra_errors)
        completion_status = "partial" if errors else "complete"

        readme = find_readme(context)
        now = now or datetime.now(timezone.utc)
        health_score = self._health_scorer.calculate(
            languages=languages,
            frameworks=frameworks,
            build_tools=build_tools,
            dependencies=dependencies,
            metadata=context.metadata,
            readme=readme,
            now=now,
        )

        return AnalysisReport(
            repository=RepositoryInfo(
                owner=context.owner,
                name=context.repo,
                analyzed_at=now,
                commit_sha=context.metadata.default_branch or "HEAD",
            ),
            languages=languages,
            frameworks=frameworks,
            build_tools=build_tools,
            dependencies=dependencies,
            health_score=health_score,
            issues=generate_issues(
                languages=languages,
                frameworks=frameworks,
                build_tools=build_tools,
                dependencies=dependencies,
            ),
            recommendations=generate_recommendations(
                languages=languages,
                frameworks=frameworks,
                build_tools=build_tools,
                dependencies=dependencies,
                readme=readme,
            ),
            metadata=ReportMetadata(
                analysis_version=ANALYSIS_VERSION,
                completion_status=completion_status,
                errors=errors,
            ),
        )

    @staticmethod
    def _collect_errors(
        results: Mapping[str, DetectionResult], registered: Sequence[str]
    ) -> List[str]:
        errors: List[str] = []
        for name in registered:
            result = results.get(name)
            if result is None:
                errors.append(f"{name}: detector did not run")
            elif not result.success:
                message = result.error.message if result.error else "detector reported failure"
                errors.append(f"{name}: {message}")
            elif name in _CATEGORY_TYPES and not isinstance(result, _CATEGORY_TYPES[name]):
                errors.append(f"{name}: {_type_mismatch(result, _CATEGORY_TYPES[name])}")
        return errors


def _type_mismatch(result: DetectionResult, expected: Type[DetectionResult]) -> str:
    return f"returned {type(result).__name__} instead of {expected.__name__}"


def _category_payload(
    results: Mapping[str, DetectionResult], name: str, result_type: Type[_ResultT]
) -> _ResultT:
    result = results.get(name)
    if result is not None and result.success and isinstance(result, result_type):
        return result

    if result is None:
        error = DetectionError(code="DETECTOR_NOT_RUN", message=f"{name} failed or did not run")
    elif result.success:
        logger.warning(
            "Detector '%s' returned %s; expected %s",
            name,
            type(result).__name__,
            result_type.__name__,
        )
        error = DetectionError(
            code="INVALID_DETECTOR_RESULT",
            message=f"{name} {_type_mismatch(result, result_type)}",
        )
    else:
        error = result.error or DetectionError(
            code="DETECTOR_FAILED", message=f"{name} reported failure"
        )
    return result_type(detector_name=name, success=False, error=error)


__all__ = ["README_CANDIDATES", "ReportGenerator", "find_readme"]
