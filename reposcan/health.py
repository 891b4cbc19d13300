"""Composite repository health scoring."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .detectors.utils import parse_version
from .models import (
    BuildToolDetectionResult,
    CategoryScore,
    DependencyAnalysisResult,
    FrameworkDetectionResult,
    HealthScore,
    LanguageDetectionResult,
    RepositoryMetadata,
    ScoringFactor,
)

CATEGORY_MAXIMUMS: Dict[str, int] = {
    "dependency_health": 25,
    "framework_modernity": 25,
    "build_health": 20,
    "code_quality": 15,
    "documentation": 10,
    "repository_activity": 5,
}

MODERN_BUILD_TOOLS = ("Vite", "esbuild", "Turbopack")

_HEADER_PATTERN = re.compile(r"^#{1,6}\s+.+$", re.MULTILINE)
_TEST_CONFIG_MARKERS = ("test", "spec", "jest", "vitest", "pytest", "tox")


class HealthScorer:
    """Scores a repository from aggregated detector payloads.

    Never raises: a failed payload scores zero in its category, and every
    category is clamped to ``0..max`` so the total stays within ``0..100``.
    """

    def calculate(
        self,
        *,
        languages: LanguageDetectionResult,
        frameworks: FrameworkDetectionResult,
        build_tools: BuildToolDetectionResult,
        dependencies: DependencyAnalysisResult,
        metadata: RepositoryMetadata,
        readme: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> HealthScore:
        categories = {
            "dependency_health": self._score_dependencies(dependencies),
            "framework_modernity": self._score_frameworks(frameworks),
            "build_health": self._score_build(build_tools),
            "code_quality": self._score_code_quality(languages),
            "documentation": self._score_documentation(readme),
            "repository_activity": self._score_activity(metadata, now),
        }
        total = sum(category.score for category in categories.values())
        return HealthScore(total=max(0, min(total, 100)), categories=categories)

    def _score_dependencies(self, dependencies: DependencyAnalysisResult) -> CategoryScore:
        max_score = CATEGORY_MAXIMUMS["dependency_health"]
        if not dependencies.success:
            return _single(
                0,
                max_score,
                "Dependency Analysis Unavailable",
                "Dependency analysis failed or did not run",
            )
        if not dependencies.dependencies and not dependencies.dev_dependencies:
            return _single(
                max_score, max_score, "No Dependencies", "No declared dependencies found"
            )

        score = max_score
        factors: List[ScoringFactor] = []
        outdated = dependencies.outdated_dependencies
        critical = [dep for dep in outdated if dep.major_versions_behind > 2]
        moderate = [dep for dep in outdated if 1 <= dep.major_versions_behind <= 2]
        if critical:
            deduction = len(critical) * 5
            score -= deduction
            factors.append(
                ScoringFactor(
                    "Critical Outdated Dependencies",
                    -deduction,
                    f"{len(critical)} dependencies are >2 major versions behind",
                )
            )
        if moderate:
            deduction = len(moderate) * 3
            score -= deduction
            factors.append(
                ScoringFactor(
                    "Moderate Outdated Dependencies",
                    -deduction,
                    f"{len(moderate)} dependencies are 1-2 major versions behind",
                )
            )
        if not outdated:
            score += 2
            factors.append(
                ScoringFactor("All Dependencies Current", 2, "All dependencies are up to date")
            )
        return _category(score, max_score, factors)

    def _score_frameworks(self, frameworks: FrameworkDetectionResult) -> CategoryScore:
        max_score = CATEGORY_MAXIMUMS["framework_modernity"]
        if not frameworks.success:
            return _single(
                0, max_score, "Framework Detection Failed", "Unable to detect frameworks"
            )
        detected = [*frameworks.frontend, *frameworks.backend]
        if not detected:
            return _single(max_score, max_score, "No Frameworks", "No frameworks detected")

        major_outdated = minor_outdated = current = 0
        for framework in detected:
            version = parse_version(framework.version)
            if version is None:
                continue
            if version[0] < 2:
                major_outdated += 1
            elif version[0] < 3:
                minor_outdated += 1
            else:
                current += 1

        score = max_score
        factors: List[ScoringFactor] = []
        if major_outdated:
            deduction = major_outdated * 10
            score -= deduction
            factors.append(
                ScoringFactor(
                    "Outdated Framework Versions",
                    -deduction,
                    f"{major_outdated} framework(s) are >1 major version behind",
                )
            )
        if minor_outdated:
            deduction = minor_outdated * 5
            score -= deduction
            factors.append(
                ScoringFactor(
                    "Moderately Outdated Frameworks",
                    -deduction,
                    f"{minor_outdated} framework(s) have outdated versions",
                )
            )
        if current and current == len(detected):
            score += 3
            factors.append(
                ScoringFactor(
                    "Modern Framework Versions", 3, "All frameworks are using modern versions"
                )
            )
        return _category(score, max_score, factors)

    def _score_build(self, build_tools: BuildToolDetectionResult) -> CategoryScore:
        max_score = CATEGORY_MAXIMUMS["build_health"]
        if not build_tools.success:
            return _single(
                0, max_score, "Build Tool Detection Failed", "Unable to detect build tools"
            )
        tools = build_tools.build_tools
        if not tools:
            return _single(0, max_score, "No Build Tools", "No build tools detected")

        score = 0
        factors: List[ScoringFactor] = []
        if any(tool.config_file for tool in tools):
            score += 10
            factors.append(
                ScoringFactor(
                    "Build Configuration Present", 10, "Build tool configuration files found"
                )
            )
        if any(tool.build_scripts for tool in tools):
            score += 5
            factors.append(
                ScoringFactor(
                    "Build Scripts Configured", 5, "Build scripts are configured in package.json"
                )
            )
        if any(tool.name in MODERN_BUILD_TOOLS for tool in tools):
            score += 5
            factors.append(
                ScoringFactor(
                    "Modern Build Tools",
                    5,
                    "Using modern build tools (Vite, esbuild, or Turbopack)",
                )
            )
        return _category(score, max_score, factors)

    def _score_code_quality(self, languages: LanguageDetectionResult) -> CategoryScore:
        max_score = CATEGORY_MAXIMUMS["code_quality"]
        if not languages.success:
            return _single(0, max_score, "Language Detection Failed", "Unable to detect languages")

        score = 0
        factors: List[ScoringFactor] = []
        by_name = {language.name: language for language in languages.languages}
        ts_loc = by_name["TypeScript"].lines_of_code if "TypeScript" in by_name else 0
        js_loc = by_name["JavaScript"].lines_of_code if "JavaScript" in by_name else 0
        if ts_loc + js_loc > 0:
            ratio = ts_loc / (ts_loc + js_loc)
            ts_score = round(ratio * 8)
            score += ts_score
            factors.append(
                ScoringFactor(
                    "TypeScript Adoption", ts_score, f"{round(ratio * 100)}% TypeScript adoption"
                )
            )

        has_test_config = any(
            marker in config.lower()
            for language in languages.languages
            for config in language.config_files
            for marker in _TEST_CONFIG_MARKERS
        )
        if languages.test_file_count > 0 or has_test_config:
            score += 7
            factors.append(
                ScoringFactor("Test Files Present", 7, "Test configuration or test files detected")
            )
        return _category(score, max_score, factors)

    def _score_documentation(self, readme: Optional[str]) -> CategoryScore:
        max_score = CATEGORY_MAXIMUMS["documentation"]
        if not readme:
            return _category(0, max_score, [ScoringFactor("No README", 0, "README file not found")])

        score = 4
        factors = [ScoringFactor("README Present", 4, "README file exists")]
        if len(readme) > 500:
            score += 3
            factors.append(
                ScoringFactor(
                    "Comprehensive README", 3, "README has substantial content (>500 characters)"
                )
            )
        if _HEADER_PATTERN.search(readme):
            score += 3
            factors.append(
                ScoringFactor(
                    "Structured Documentation", 3, "README contains sections with headers"
                )
            )
        return _category(score, max_score, factors)

    def _score_activity(
        self, metadata: RepositoryMetadata, now: Optional[datetime]
    ) -> CategoryScore:
        max_score = CATEGORY_MAXIMUMS["repository_activity"]
        pushed_at = metadata.pushed_at
        if pushed_at is None:
            return _single(0, max_score, "Unknown Activity", "Last push date unknown")

        now = now or datetime.now(timezone.utc)
        days = (_as_utc(now) - _as_utc(pushed_at)).days
        if days <= 30:
            return _single(
                max_score, max_score, "Recently Active", f"Last commit {days} days ago", max_score
            )
        if days >= 365:
            return _single(
                0, max_score, "Inactive Repository", f"Last commit {days} days ago (>1 year)"
            )
        ratio = 1 - (days - 30) / (365 - 30)
        score = round(ratio * max_score)
        return _single(score, max_score, "Moderate Activity", f"Last commit {days} days ago", score)


def _category(score: float, max_score: int, factors: List[ScoringFactor]) -> CategoryScore:
    return CategoryScore(score=max(0, min(score, max_score)), max_score=max_score, factors=factors)


def _single(
    score: float, max_score: int, name: str, description: str, impact: float = 0
) -> CategoryScore:
    return _category(score, max_score, [ScoringFactor(name, impact, description)])


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


__all__ = ["CATEGORY_MAXIMUMS", "HealthScorer", "MODERN_BUILD_TOOLS"]
