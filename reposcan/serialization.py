"""JSON-friendly conversion for analysis reports."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from .models import (
    ANALYSIS_VERSION,
    AnalysisReport,
    BuildToolDetectionResult,
    CategoryScore,
    DependencyAnalysisResult,
    DependencyInfo,
    DetectedBuildTool,
    DetectedFramework,
    DetectedLanguage,
    DetectionError,
    FrameworkDetectionResult,
    HealthScore,
    Issue,
    LanguageDetectionResult,
    OutdatedDependency,
    Recommendation,
    ReportMetadata,
    RepositoryInfo,
    ScoringFactor,
)


def report_to_dict(report: AnalysisReport) -> Dict[str, Any]:
    """Return a JSON-serialisable mapping for ``report``."""
    data = asdict(report)
    data["repository"]["analyzed_at"] = _format_datetime(report.repository.analyzed_at)
    return data


def report_from_dict(payload: object) -> Optional[AnalysisReport]:
    """Rebuild a report from :func:`report_to_dict` output, or None when malformed."""
    if not isinstance(payload, dict):
        return None
    try:
        repository = _repository_from_dict(payload["repository"])
        metadata = _metadata_from_dict(payload.get("metadata", {}))
        report = AnalysisReport(
            repository=repository,
            languages=_languages_from_dict(payload["languages"]),
            frameworks=_frameworks_from_dict(payload["frameworks"]),
            build_tools=_build_tools_from_dict(payload["build_tools"]),
            dependencies=_dependencies_from_dict(payload["dependencies"]),
            health_score=_health_from_dict(payload["health_score"]),
            issues=[Issue(**item) for item in payload.get("issues", [])],
            recommendations=[
                Recommendation(**item) for item in payload.get("recommendations", [])
            ],
            metadata=metadata,
        )
    except (KeyError, TypeError, ValueError, AttributeError):
        return None
    return report


def _format_datetime(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def _parse_datetime(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _repository_from_dict(data: Dict[str, Any]) -> RepositoryInfo:
    return RepositoryInfo(
        owner=str(data["owner"]),
        name=str(data["name"]),
        analyzed_at=_parse_datetime(data["analyzed_at"]),
        commit_sha=str(data["commit_sha"]),
    )


def _metadata_from_dict(data: Dict[str, Any]) -> ReportMetadata:
    errors = data.get("errors", [])
    return ReportMetadata(
        analysis_version=str(data.get("analysis_version", ANALYSIS_VERSION)),
        completion_status=str(data.get("completion_status", "complete")),
        errors=[str(item) for item in errors],
    )


def _error_from_dict(data: Optional[Dict[str, Any]]) -> Optional[DetectionError]:
    if not data:
        return None
    return DetectionError(**data)


def _languages_from_dict(data: Dict[str, Any]) -> LanguageDetectionResult:
    return LanguageDetectionResult(
        detector_name=data["detector_name"],
        success=bool(data["success"]),
        error=_error_from_dict(data.get("error")),
        languages=[DetectedLanguage(**item) for item in data.get("languages", [])],
        primary_language=data.get("primary_language"),
        test_file_count=int(data.get("test_file_count", 0)),
    )


def _frameworks_from_dict(data: Dict[str, Any]) -> FrameworkDetectionResult:
    return FrameworkDetectionResult(
        detector_name=data["detector_name"],
        success=bool(data["success"]),
        error=_error_from_dict(data.get("error")),
        frontend=[DetectedFramework(**item) for item in data.get("frontend", [])],
        backend=[DetectedFramework(**item) for item in data.get("backend", [])],
    )


def _build_tools_from_dict(data: Dict[str, Any]) -> BuildToolDetectionResult:
    return BuildToolDetectionResult(
        detector_name=data["detector_name"],
        success=bool(data["success"]),
        error=_error_from_dict(data.get("error")),
        build_tools=[DetectedBuildTool(**item) for item in data.get("build_tools", [])],
    )


def _dependencies_from_dict(data: Dict[str, Any]) -> DependencyAnalysisResult:
    dependencies: List[DependencyInfo] = [
        DependencyInfo(**item) for item in data.get("dependencies", [])
    ]
    dev_dependencies: List[DependencyInfo] = [
        DependencyInfo(**item) for item in data.get("dev_dependencies", [])
    ]
    return DependencyAnalysisResult(
        detector_name=data["detector_name"],
        success=bool(data["success"]),
        error=_error_from_dict(data.get("error")),
        dependencies=dependencies,
        dev_dependencies=dev_dependencies,
        outdated_dependencies=[
            OutdatedDependency(**item) for item in data.get("outdated_dependencies", [])
        ],
        total_count=int(data.get("total_count", len(dependencies) + len(dev_dependencies))),
        dev_count=int(data.get("dev_count", len(dev_dependencies))),
    )


def _health_from_dict(data: Dict[str, Any]) -> HealthScore:
    categories: Dict[str, CategoryScore] = {}
    for key, raw in data.get("categories", {}).items():
        categories[key] = CategoryScore(
            score=raw["score"],
            max_score=raw["max_score"],
            factors=[ScoringFactor(**factor) for factor in raw.get("factors", [])],
        )
    return HealthScore(total=data["total"], categories=categories)


__all__ = ["report_from_dict", "report_to_dict"]
