"""Issue and recommendation rules derived from aggregated detector payloads."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from .detectors.utils import parse_version
from .health import MODERN_BUILD_TOOLS
from .models import (
    BuildToolDetectionResult,
    DependencyAnalysisResult,
    FrameworkDetectionResult,
    Issue,
    LanguageDetectionResult,
    OutdatedDependency,
    Recommendation,
)

# Latest stable release per framework and the headline reason to upgrade.
LATEST_FRAMEWORK_VERSIONS: Dict[str, Tuple[str, str]] = {
    "React": ("18.3.1", "concurrent features, automatic batching and improved performance"),
    "Next.js": ("15.1.0", "React 19 support, improved caching and Turbopack"),
    "Vue": ("3.5.0", "Composition API, better TypeScript support and faster rendering"),
    "Angular": ("18.0.0", "standalone components, signals and improved performance"),
    "Svelte": ("5.0.0", "runes, improved reactivity and better TypeScript support"),
    "Express": ("4.21.0", "security updates and bug fixes"),
    "NestJS": ("10.0.0", "improved performance and new features"),
    "Laravel": ("11.0.0", "improved performance and new features"),
}

_MANIFEST_BY_ECOSYSTEM = (
    ("npm", "package.json"),
    ("pip", "requirements.txt"),
    ("gem", "Gemfile"),
    ("composer", "composer.json"),
)

_BUILD_TOOL_SUGGESTIONS: Dict[str, Tuple[str, str, List[str]]] = {
    "PHP": (
        "Vite",
        "Vite integrates with Laravel and plain PHP asset pipelines.",
        ["vite.config.js"],
    ),
    "Python": (
        "Poetry or setuptools",
        "Standard packaging with dependency management.",
        ["pyproject.toml"],
    ),
    "Go": ("Go build", "Native toolchain with fast compilation.", ["go.mod", "Makefile"]),
    "Ruby": ("Bundler with Rake", "Conventional Ruby task automation.", ["Gemfile", "Rakefile"]),
    "JavaScript/TypeScript": (
        "Vite",
        "Fast, framework-agnostic builds with instant HMR.",
        ["vite.config.ts", "package.json"],
    ),
}

_CONFIG_SUGGESTIONS: Dict[str, str] = {
    "Vite": "vite.config.ts",
    "Webpack": "webpack.config.js",
    "esbuild": "esbuild.config.js",
    "Rollup": "rollup.config.js",
    "Turbopack": "turbo.json",
    "Parcel": ".parcelrc",
}


def generate_issues(
    *,
    languages: LanguageDetectionResult,
    frameworks: FrameworkDetectionResult,
    build_tools: BuildToolDetectionResult,
    dependencies: DependencyAnalysisResult,
) -> List[Issue]:
    issues: List[Issue] = []
    if dependencies.success:
        issues.extend(_dependency_issues(dependencies))
    if frameworks.success:
        issues.extend(_framework_issues(frameworks))
    if build_tools.success:
        issues.extend(_build_tool_issues(build_tools, languages))
    return issues


def generate_recommendations(
    *,
    languages: LanguageDetectionResult,
    frameworks: FrameworkDetectionResult,
    build_tools: BuildToolDetectionResult,
    dependencies: DependencyAnalysisResult,
    readme: Optional[str],
) -> List[Recommendation]:
    recommendations: List[Recommendation] = []
    if dependencies.success:
        recommendations.extend(_dependency_recommendations(dependencies))
    if frameworks.success:
        recommendations.extend(_framework_recommendations(frameworks))
    recommendations.extend(_documentation_recommendations(readme))
    if languages.success:
        recommendations.extend(_code_quality_recommendations(languages))
    if build_tools.success:
        recommendations.extend(_build_tool_recommendations(build_tools))
    return recommendations


# Issues


def _dependency_issues(dependencies: DependencyAnalysisResult) -> List[Issue]:
    issues: List[Issue] = []
    files = _dependency_files(dependencies)
    critical, moderate = _split_outdated(dependencies.outdated_dependencies)

    if critical:
        issues.append(
            Issue(
                severity="critical",
                category="Dependencies",
                title=f"{len(critical)} Critical Outdated Dependencies",
                description=(
                    f"Found {len(critical)} dependencies more than 2 major versions behind: "
                    f"{_describe_upgrades(critical)}."
                ),
                affected_files=files,
            )
        )
        for dep in critical[:5]:
            issues.append(
                Issue(
                    severity="critical",
                    category="Dependencies",
                    title=f"Update {dep.name}",
                    description=(
                        f"{dep.name} is {dep.major_versions_behind} major versions behind "
                        f"(current: {dep.installed_version}, "
                        f"latest: {dep.latest_version or 'unknown'})"
                    ),
                    affected_files=files,
                )
            )

    if moderate:
        issues.append(
            Issue(
                severity="warning",
                category="Dependencies",
                title=f"{len(moderate)} Outdated Dependencies",
                description=(
                    f"Found {len(moderate)} dependencies 1-2 major versions behind: "
                    f"{_describe_upgrades(moderate)}."
                ),
                affected_files=files,
            )
        )
    return issues


def _framework_issues(frameworks: FrameworkDetectionResult) -> List[Issue]:
    issues: List[Issue] = []
    for framework in [*frameworks.frontend, *frameworks.backend]:
        current = parse_version(framework.version)
        latest_info = LATEST_FRAMEWORK_VERSIONS.get(framework.name)
        if current is None or latest_info is None:
            continue
        latest_version, reason = latest_info
        latest = parse_version(latest_version)
        if latest is None or current[:2] >= latest[:2]:
            continue
        issues.append(
            Issue(
                severity="warning" if current[0] < latest[0] else "info",
                category="Frameworks",
                title=f"Upgrade {framework.name} from {framework.version} to {latest_version}",
                description=(
                    f"The project uses {framework.name} {framework.version}. "
                    f"Upgrade to {latest_version} for {reason}."
                ),
                affected_files=list(framework.config_files),
            )
        )
    return issues


def _build_tool_issues(
    build_tools: BuildToolDetectionResult, languages: LanguageDetectionResult
) -> List[Issue]:
    tools = build_tools.build_tools
    project_type = _project_type(languages)
    if not tools:
        tool, reason, config_files = _BUILD_TOOL_SUGGESTIONS.get(
            project_type, _BUILD_TOOL_SUGGESTIONS["JavaScript/TypeScript"]
        )
        return [
            Issue(
                severity="info",
                category="Build Tools",
                title=f"Add {tool} for {project_type} Project",
                description=f"No build tools detected. {reason}",
                affected_files=list(config_files),
            )
        ]

    issues: List[Issue] = []
    names = {tool.name for tool in tools}
    if "Webpack" in names and not names.intersection(MODERN_BUILD_TOOLS) and project_type != "PHP":
        issues.append(
            Issue(
                severity="info",
                category="Build Tools",
                title="Migrate from Webpack to Vite",
                description=(
                    "The project uses Webpack. Vite offers much faster builds and instant HMR."
                ),
                affected_files=["webpack.config.js", "package.json"],
            )
        )

    for tool in tools:
        if tool.config_file:
            continue
        config = _CONFIG_SUGGESTIONS.get(tool.name, f"{tool.name.lower()}.config.js")
        issues.append(
            Issue(
                severity="info",
                category="Build Tools",
                title=f"Add {tool.name} Configuration",
                description=(
                    f"{tool.name} is installed but has no configuration file; create {config}."
                ),
                affected_files=[config],
            )
        )

    without_scripts = [tool.name for tool in tools if not tool.build_scripts]
    if without_scripts:
        issues.append(
            Issue(
                severity="info",
                category="Build Tools",
                title="Add Build Scripts to package.json",
                description=(
                    f"Add build scripts for {', '.join(without_scripts)} "
                    '("build", "dev", "preview") for a consistent workflow.'
                ),
                affected_files=["package.json"],
            )
        )
    return issues


# Recommendations


def _dependency_recommendations(dependencies: DependencyAnalysisResult) -> List[Recommendation]:
    recommendations: List[Recommendation] = []
    critical, moderate = _split_outdated(dependencies.outdated_dependencies)
    if critical:
        recommendations.append(
            Recommendation(
                priority="high",
                category="Dependencies",
                title="Update Critical Dependencies",
                description=(
                    f"{len(critical)} dependencies are critically outdated (>2 major versions "
                    f"behind): {', '.join(dep.name for dep in critical)}."
                ),
                action_items=[
                    "Review breaking changes in dependency changelogs",
                    "Update dependencies one at a time to isolate issues",
                    "Run tests after each update",
                    *_update_steps(critical),
                ],
                estimated_effort="high",
            )
        )
    if moderate:
        recommendations.append(
            Recommendation(
                priority="medium",
                category="Dependencies",
                title="Update Outdated Dependencies",
                description=(
                    f"{len(moderate)} dependencies are moderately outdated: "
                    f"{', '.join(dep.name for dep in moderate)}."
                ),
                action_items=[
                    "Check release notes for breaking changes",
                    "Update dependencies in batches",
                    *_update_steps(moderate),
                ],
                estimated_effort="medium",
            )
        )
    return recommendations


def _framework_recommendations(frameworks: FrameworkDetectionResult) -> List[Recommendation]:
    outdated = []
    for framework in [*frameworks.frontend, *frameworks.backend]:
        version = parse_version(framework.version)
        if version is not None and version[0] < 3:
            outdated.append(framework)
    if not outdated:
        return []
    return [
        Recommendation(
            priority="medium",
            category="Frameworks",
            title="Upgrade Framework Versions",
            description=f"{len(outdated)} framework(s) are on older major versions.",
            action_items=[
                "Review the migration guide for each framework",
                "Upgrade one framework at a time",
                *(f"Upgrade {fw.name} from version {fw.version}" for fw in outdated),
            ],
            estimated_effort="high",
        )
    ]


def _documentation_recommendations(readme: Optional[str]) -> List[Recommendation]:
    if not readme:
        return [
            Recommendation(
                priority="low",
                category="Documentation",
                title="Add README Documentation",
                description="No README file found.",
                action_items=[
                    "Create a README.md file",
                    "Describe the project and its purpose",
                    "Include installation and usage instructions",
                ],
                estimated_effort="low",
            )
        ]
    if len(readme) < 500:
        return [
            Recommendation(
                priority="low",
                category="Documentation",
                title="Expand README Documentation",
                description="README exists but is minimal.",
                action_items=[
                    "Add setup and installation steps",
                    "Add usage examples",
                    "Document the main features",
                ],
                estimated_effort="low",
            )
        ]
    return []


def _code_quality_recommendations(languages: LanguageDetectionResult) -> List[Recommendation]:
    by_name = {language.name: language for language in languages.languages}
    js = by_name.get("JavaScript")
    ts = by_name.get("TypeScript")
    if js is None:
        return []
    if ts is None:
        return [
            Recommendation(
                priority="medium",
                category="Code Quality",
                title="Adopt TypeScript",
                description="The project is written in JavaScript without type checking.",
                action_items=[
                    "Add TypeScript and a tsconfig.json",
                    "Convert files to .ts incrementally",
                    "Enable strict mode gradually",
                ],
                estimated_effort="high",
            )
        ]
    total = ts.lines_of_code + js.lines_of_code
    ratio = ts.lines_of_code / total if total else 0.0
    if ratio >= 0.5:
        return []
    return [
        Recommendation(
            priority="low",
            category="Code Quality",
            title="Increase TypeScript Coverage",
            description=f"TypeScript covers {round(ratio * 100)}% of JavaScript/TypeScript code.",
            action_items=[
                "Identify JavaScript modules to migrate",
                "Add type definitions for untyped code",
            ],
            estimated_effort="medium",
        )
    ]


def _build_tool_recommendations(build_tools: BuildToolDetectionResult) -> List[Recommendation]:
    tools = build_tools.build_tools
    if not tools:
        return [
            Recommendation(
                priority="medium",
                category="Build Tools",
                title="Add Modern Build Tool",
                description="No build tools detected.",
                action_items=[
                    "Choose a build tool (Vite for most web projects)",
                    "Create its configuration file",
                    "Add build scripts to package.json",
                ],
                estimated_effort="medium",
            )
        ]
    names = {tool.name for tool in tools}
    if "Webpack" in names and not names.intersection(MODERN_BUILD_TOOLS):
        return [
            Recommendation(
                priority="low",
                category="Build Tools",
                title="Consider Modern Build Tool",
                description="The project uses Webpack; Vite or esbuild build considerably faster.",
                action_items=[
                    "Evaluate Vite or esbuild",
                    "Migrate configuration incrementally",
                    "Compare build performance before switching",
                ],
                estimated_effort="medium",
            )
        ]
    return []


# Helpers


def _split_outdated(
    outdated: Sequence[OutdatedDependency],
) -> Tuple[List[OutdatedDependency], List[OutdatedDependency]]:
    critical = [dep for dep in outdated if dep.major_versions_behind > 2]
    moderate = [dep for dep in outdated if 1 <= dep.major_versions_behind <= 2]
    return critical, moderate


def _describe_upgrades(deps: Sequence[OutdatedDependency]) -> str:
    return ", ".join(
        f"{dep.name} ({dep.installed_version} -> {dep.latest_version or 'latest'})" for dep in deps
    )


def _update_steps(deps: Sequence[OutdatedDependency]) -> List[str]:
    return [
        f"Update {dep.name} from {dep.installed_version} to {dep.latest_version or 'latest'}"
        for dep in deps[:5]
    ]


def _dependency_files(dependencies: DependencyAnalysisResult) -> List[str]:
    declared = [*dependencies.dependencies, *dependencies.dev_dependencies]
    ecosystems = {dep.ecosystem for dep in declared}
    return [manifest for ecosystem, manifest in _MANIFEST_BY_ECOSYSTEM if ecosystem in ecosystems]


def _project_type(languages: LanguageDetectionResult) -> str:
    names = {language.name for language in languages.languages}
    for candidate in ("PHP", "Python", "Go", "Ruby"):
        if candidate in names:
            return candidate
    return "JavaScript/TypeScript"


__all__ = ["LATEST_FRAMEWORK_VERSIONS", "generate_issues", "generate_recommendations"]
