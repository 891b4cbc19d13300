"""Core data models shared across reposcan components."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

ANALYSIS_VERSION = "1.0.0"


@dataclass
class FileNode:
    """A single entry of the repository file tree."""

    path: str
    type: str = "file"
    size: int = 0
    sha: str = ""


@dataclass
class FileTree:
    """Flat listing of every file and directory in the snapshot."""

    files: List[FileNode] = field(default_factory=list)
    total_files: int = 0
    total_size: int = 0


@dataclass
class RepositoryMetadata:
    """Descriptive metadata about the analyzed repository."""

    owner: str
    name: str
    full_name: str = ""
    default_branch: str = "main"
    language: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None
    size: int = 0
    stargazers_count: int = 0
    forks_count: int = 0


@dataclass(frozen=True)
class RepositoryContext:
    """Read-only snapshot handed to every detector of a run."""

    owner: str
    repo: str
    files: FileTree
    contents: Mapping[str, str]
    metadata: RepositoryMetadata

    def __post_init__(self) -> None:
        object.__setattr__(self, "contents", MappingProxyType(dict(self.contents)))

    def file_paths(self) -> List[str]:
        return [node.path for node in self.files.files if node.type == "file"]

    def has_file(self, path: str) -> bool:
        return any(node.path == path and node.type == "file" for node in self.files.files)

    def get_file_content(self, path: str) -> Optional[str]:
        content = self.contents.get(path)
        return content if content else None

    def find_files_by_extension(self, extensions: Sequence[str]) -> List[str]:
        return [
            path for path in self.file_paths() if any(path.endswith(ext) for ext in extensions)
        ]

    def find_files_by_pattern(self, patterns: Sequence[str]) -> List[str]:
        """Return file paths matching any pattern.

        A pattern containing ``*`` matches the whole path with ``*`` standing for
        any run of characters; otherwise the path must equal the pattern or end
        with ``/<pattern>``.
        """
        return [
            path
            for path in self.file_paths()
            if any(_matches_pattern(path, pattern) for pattern in patterns)
        ]

    def parse_json_file(self, path: str) -> Optional[Any]:
        content = self.get_file_content(path)
        if content is None:
            return None
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            return None

    def count_lines_of_code(self, paths: Sequence[str]) -> int:
        total = 0
        for path in paths:
            content = self.get_file_content(path)
            if content:
                total += sum(1 for line in content.split("\n") if line.strip())
        return total


def _matches_pattern(path: str, pattern: str) -> bool:
    if "*" in pattern:
        regex = ".*".join(re.escape(part) for part in pattern.split("*"))
        return re.fullmatch(regex, path) is not None
    return path == pattern or path.endswith(f"/{pattern}")


# Detection results


@dataclass
class DetectionError:
    """Structured failure attached to an unsuccessful detection result."""

    code: str
    message: str
    recoverable: bool = True


@dataclass
class DetectionResult:
    """Outcome of a single detector invocation."""

    detector_name: str
    success: bool
    error: Optional[DetectionError] = None


@dataclass
class DetectedLanguage:
    name: str
    confidence: float
    file_count: int
    lines_of_code: int
    config_files: List[str] = field(default_factory=list)


@dataclass
class LanguageDetectionResult(DetectionResult):
    languages: List[DetectedLanguage] = field(default_factory=list)
    primary_language: Optional[str] = None
    test_file_count: int = 0


@dataclass
class DetectedFramework:
    name: str
    version: str
    category: str
    config_files: List[str] = field(default_factory=list)
    confidence: float = 0.0


@dataclass
class FrameworkDetectionResult(DetectionResult):
    frontend: List[DetectedFramework] = field(default_factory=list)
    backend: List[DetectedFramework] = field(default_factory=list)


@dataclass
class DetectedBuildTool:
    name: str
    version: Optional[str] = None
    config_file: Optional[str] = None
    build_scripts: List[str] = field(default_factory=list)


@dataclass
class BuildToolDetectionResult(DetectionResult):
    build_tools: List[DetectedBuildTool] = field(default_factory=list)


@dataclass
class DependencyInfo:
    name: str
    installed_version: str
    type: str = "production"
    ecosystem: str = "npm"
    latest_version: Optional[str] = None


@dataclass
class OutdatedDependency(DependencyInfo):
    major_versions_behind: int = 0
    severity: str = "info"


@dataclass
class DependencyAnalysisResult(DetectionResult):
    dependencies: List[DependencyInfo] = field(default_factory=list)
    dev_dependencies: List[DependencyInfo] = field(default_factory=list)
    outdated_dependencies: List[OutdatedDependency] = field(default_factory=list)
    total_count: int = 0
    dev_count: int = 0


# Report


@dataclass
class ScoringFactor:
    name: str
    impact: float
    description: str


@dataclass
class CategoryScore:
    score: float
    max_score: float
    factors: List[ScoringFactor] = field(default_factory=list)


@dataclass
class HealthScore:
    """Composite repository health score with per-category breakdown."""

    total: float
    categories: Dict[str, CategoryScore] = field(default_factory=dict)


@dataclass
class Issue:
    severity: str
    category: str
    title: str
    description: str
    affected_files: List[str] = field(default_factory=list)


@dataclass
class Recommendation:
    priority: str
    category: str
    title: str
    description: str
    action_items: List[str] = field(default_factory=list)
    estimated_effort: str = "low"


@dataclass
class RepositoryInfo:
    owner: str
    name: str
    analyzed_at: datetime
    commit_sha: str


@dataclass
class ReportMetadata:
    analysis_version: str = ANALYSIS_VERSION
    completion_status: str = "complete"
    errors: List[str] = field(default_factory=list)


@dataclass
class AnalysisReport:
    """Aggregated result of one orchestration run."""

    repository: RepositoryInfo
    languages: LanguageDetectionResult
    frameworks: FrameworkDetectionResult
    build_tools: BuildToolDetectionResult
    dependencies: DependencyAnalysisResult
    health_score: HealthScore
    issues: List[Issue] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    metadata: ReportMetadata = field(default_factory=ReportMetadata)


__all__ = [
    "ANALYSIS_VERSION",
    "AnalysisReport",
    "BuildToolDetectionResult",
    "CategoryScore",
    "DependencyAnalysisResult",
    "DependencyInfo",
    "DetectedBuildTool",
    "DetectedFramework",
    "DetectedLanguage",
    "DetectionError",
    "DetectionResult",
    "FileNode",
    "FileTree",
    "FrameworkDetectionResult",
    "HealthScore",
    "Issue",
    "LanguageDetectionResult",
    "OutdatedDependency",
    "Recommendation",
    "ReportMetadata",
    "RepositoryContext",
    "RepositoryInfo",
    "RepositoryMetadata",
    "ScoringFactor",
]
