"""Tests for the composite health score and the issue rules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from reposcan.health import CATEGORY_MAXIMUMS, HealthScorer
from reposcan.insights import generate_issues, generate_recommendations
from reposcan.models import (
    BuildToolDetectionResult,
    DependencyAnalysisResult,
    DependencyInfo,
    DetectedBuildTool,
    DetectedFramework,
    DetectedLanguage,
    FrameworkDetectionResult,
    HealthScore,
    LanguageDetectionResult,
    OutdatedDependency,
    RepositoryMetadata,
)

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _languages(**kwargs: object) -> LanguageDetectionResult:
    return LanguageDetectionResult(detector_name="language", success=True, **kwargs)


def _frameworks(**kwargs: object) -> FrameworkDetectionResult:
    return FrameworkDetectionResult(detector_name="framework", success=True, **kwargs)


def _build(**kwargs: object) -> BuildToolDetectionResult:
    return BuildToolDetectionResult(detector_name="build_tool", success=True, **kwargs)


def _dependencies(**kwargs: object) -> DependencyAnalysisResult:
    return DependencyAnalysisResult(detector_name="dependency", success=True, **kwargs)


def _score(
    *,
    languages: Optional[LanguageDetectionResult] = None,
    frameworks: Optional[FrameworkDetectionResult] = None,
    build_tools: Optional[BuildToolDetectionResult] = None,
    dependencies: Optional[DependencyAnalysisResult] = None,
    pushed_at: Optional[datetime] = None,
    readme: Optional[str] = None,
) -> HealthScore:
    return HealthScorer().calculate(
        languages=languages or _languages(),
        frameworks=frameworks or _frameworks(),
        build_tools=build_tools or _build(),
        dependencies=dependencies or _dependencies(),
        metadata=RepositoryMetadata(owner="acme", name="widgets", pushed_at=pushed_at),
        readme=readme,
        now=NOW,
    )


def test_category_maximums_sum_to_one_hundred() -> None:
    assert sum(CATEGORY_MAXIMUMS.values()) == 100


def test_empty_successful_payloads_score_fifty() -> None:
    score = _score()
    assert score.total == 50
    assert score.categories["dependency_health"].score == 25
    assert score.categories["framework_modernity"].score == 25
    assert score.categories["build_health"].score == 0


def test_failed_payloads_score_zero() -> None:
    failed = HealthScorer().calculate(
        languages=LanguageDetectionResult(detector_name="language", success=False),
        frameworks=FrameworkDetectionResult(detector_name="framework", success=False),
        build_tools=BuildToolDetectionResult(detector_name="build_tool", success=False),
        dependencies=DependencyAnalysisResult(detector_name="dependency", success=False),
        metadata=RepositoryMetadata(owner="acme", name="widgets"),
        now=NOW,
    )
    assert failed.total == 0
    assert set(failed.categories) == set(CATEGORY_MAXIMUMS)


def test_outdated_dependencies_deduct_points() -> None:
    outdated = [
        OutdatedDependency(
            name="lodash",
            installed_version="1.0.0",
            latest_version="4.17.21",
            major_versions_behind=3,
            severity="critical",
        ),
        OutdatedDependency(
            name="axios",
            installed_version="0.27.0",
            latest_version="1.7.0",
            major_versions_behind=1,
            severity="warning",
        ),
    ]
    dependencies = _dependencies(
        dependencies=[DependencyInfo(name="lodash", installed_version="1.0.0")],
        outdated_dependencies=outdated,
        total_count=1,
    )
    category = _score(dependencies=dependencies).categories["dependency_health"]
    assert category.score == 25 - 5 - 3


def test_scores_are_clamped_to_category_maximum() -> None:
    dependencies = _dependencies(
        dependencies=[DependencyInfo(name="react", installed_version="18.2.0")], total_count=1
    )
    frameworks = _frameworks(
        frontend=[DetectedFramework(name="React", version="18.2.0", category="frontend")]
    )
    score = _score(dependencies=dependencies, frameworks=frameworks)
    assert score.categories["dependency_health"].score == 25
    assert score.categories["framework_modernity"].score == 25


def test_old_framework_versions_lose_points() -> None:
    frameworks = _frameworks(
        frontend=[DetectedFramework(name="Vue", version="1.0.28", category="frontend")],
        backend=[DetectedFramework(name="Express", version="2.5.11", category="backend")],
    )
    category = _score(frameworks=frameworks).categories["framework_modernity"]
    assert category.score == 25 - 10 - 5


def test_build_health_rewards_config_scripts_and_modern_tools() -> None:
    build_tools = _build(
        build_tools=[
            DetectedBuildTool(
                name="Vite", version="5.0.0", config_file="vite.config.ts", build_scripts=["build"]
            )
        ]
    )
    assert _score(build_tools=build_tools).categories["build_health"].score == 20


def test_code_quality_counts_typescript_and_tests() -> None:
    languages = _languages(
        languages=[
            DetectedLanguage(name="TypeScript", confidence=80, file_count=3, lines_of_code=75),
            DetectedLanguage(name="JavaScript", confidence=40, file_count=1, lines_of_code=25),
        ],
        test_file_count=2,
    )
    category = _score(languages=languages).categories["code_quality"]
    assert category.score == 6 + 7


def test_documentation_rewards_structure_and_length() -> None:
    readme = "# Widgets\n\n" + "word " * 120
    assert _score(readme=readme).categories["documentation"].score == 10
    assert _score(readme="plain text").categories["documentation"].score == 4


def test_repository_activity_decays_with_age() -> None:
    assert _score(pushed_at=NOW - timedelta(days=3)).categories["repository_activity"].score == 5
    assert _score(pushed_at=NOW - timedelta(days=400)).categories["repository_activity"].score == 0
    moderate = _score(pushed_at=NOW - timedelta(days=197)).categories["repository_activity"]
    assert 0 < moderate.score < 5
    assert _score(pushed_at=None).categories["repository_activity"].score == 0


def test_total_never_exceeds_one_hundred() -> None:
    score = _score(
        languages=_languages(
            languages=[
                DetectedLanguage(name="TypeScript", confidence=90, file_count=9, lines_of_code=900)
            ],
            test_file_count=4,
        ),
        build_tools=_build(
            build_tools=[
                DetectedBuildTool(
                    name="Vite", config_file="vite.config.ts", build_scripts=["build"]
                )
            ]
        ),
        pushed_at=NOW,
        readme="# Widgets\n\n" + "word " * 200,
    )
    assert score.total == 100


def test_missing_build_tool_suggests_one_per_project_type() -> None:
    languages = _languages(
        languages=[DetectedLanguage(name="Python", confidence=70, file_count=4, lines_of_code=80)]
    )
    issues = generate_issues(
        languages=languages,
        frameworks=_frameworks(),
        build_tools=_build(),
        dependencies=_dependencies(),
    )
    recommendations = generate_recommendations(
        languages=languages,
        frameworks=_frameworks(),
        build_tools=_build(),
        dependencies=_dependencies(),
        readme="# Widgets",
    )
    assert any(issue.title == "Add Poetry or setuptools for Python Project" for issue in issues)
    assert any(item.title == "Add Modern Build Tool" for item in recommendations)


def test_critical_dependencies_raise_issue() -> None:
    outdated = [
        OutdatedDependency(
            name="lodash",
            installed_version="1.0.0",
            latest_version="4.17.21",
            major_versions_behind=3,
            severity="critical",
        )
    ]
    issues = generate_issues(
        languages=_languages(),
        frameworks=_frameworks(),
        build_tools=_build(),
        dependencies=_dependencies(outdated_dependencies=outdated),
    )
    titles = [issue.title for issue in issues]
    assert "1 Critical Outdated Dependencies" in titles
    assert "Update lodash" in titles
