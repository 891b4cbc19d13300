"""Tests for the built-in detectors."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Sequence

import httpx
import pytest

from reposcan.detectors import (
    BuildToolDetector,
    DependencyDetector,
    FrameworkDetector,
    LanguageDetector,
    discover_detectors,
)
from reposcan.detectors.dependency import NpmRegistryLookup, severity_for
from reposcan.detectors.language import is_test_path
from reposcan.detectors.utils import load_pip_dependencies, parse_version
from tests._fixtures.context_builder import ContextBuilder


class StaticLookup:
    def __init__(self, versions: Dict[str, str]) -> None:
        self.versions = versions
        self.calls: List[tuple] = []

    async def latest_versions(self, names: Sequence[str], ecosystem: str) -> Dict[str, str]:
        self.calls.append((list(names), ecosystem))
        return {name: self.versions[name] for name in names if name in self.versions}


def test_language_detector_ranks_languages(context_builder: ContextBuilder) -> None:
    context_builder.write(
        {
            "app/main.py": "import os\n\nprint(os.getcwd())\n",
            "app/models.py": "class Model:\n    pass\n",
            "tests/test_models.py": "def test_model():\n    assert True\n",
            "pyproject.toml": "[project]\nname = 'demo'\n",
            "scripts/build.js": "console.log('build');\n",
        }
    )
    result = asyncio.run(LanguageDetector().detect(context_builder.build()))

    assert result.success is True
    assert result.primary_language == "Python"
    assert [language.name for language in result.languages] == ["Python", "JavaScript"]
    python = result.languages[0]
    assert python.file_count == 3
    assert python.config_files == ["pyproject.toml"]
    assert 0 < python.confidence <= 100
    assert result.test_file_count == 1


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("tests/test_app.py", True),
        ("src/__tests__/App.js", True),
        ("src/App.test.tsx", True),
        ("pkg/handler_test.go", True),
        ("src/app.py", False),
        ("src/contest.py", False),
    ],
)
def test_is_test_path(path: str, expected: bool) -> None:
    assert is_test_path(path) is expected


def test_framework_detector_reads_manifests(context_builder: ContextBuilder) -> None:
    context_builder.write_json(
        "package.json", {"dependencies": {"next": "^14.1.0", "react": "^18.2.0"}}
    )
    context_builder.write(
        {
            "next.config.js": "module.exports = {};\n",
            "requirements.txt": "Django>=4.2,<5\nrequests\n",
            "manage.py": "#!/usr/bin/env python\n",
        }
    )
    result = asyncio.run(FrameworkDetector().detect(context_builder.build()))

    assert [fw.name for fw in result.frontend] == ["Next.js", "React"]
    next_js = result.frontend[0]
    assert next_js.version == "14.1.0"
    assert next_js.config_files == ["next.config.js"]
    assert next_js.confidence == 100
    django = result.backend[0]
    assert django.name == "Django"
    assert django.version == "4.2"
    assert django.confidence == 95


def test_framework_version_unknown_when_unpinned(context_builder: ContextBuilder) -> None:
    context_builder.write({"requirements.txt": "flask\n"})
    result = asyncio.run(FrameworkDetector().detect(context_builder.build()))

    assert result.backend[0].name == "Flask"
    assert result.backend[0].version == "unknown"
    assert result.backend[0].confidence == 80


def test_build_tool_detector_orders_configured_tools_first(
    context_builder: ContextBuilder,
) -> None:
    context_builder.write_json(
        "package.json",
        {
            "scripts": {"build": "webpack --mode production", "bundle": "rollup -c"},
            "devDependencies": {"webpack": "^5.90.0", "rollup": "^4.9.0"},
        },
    )
    context_builder.write({"rollup.config.mjs": "export default {};\n"})
    result = asyncio.run(BuildToolDetector().detect(context_builder.build()))

    assert [tool.name for tool in result.build_tools] == ["Rollup", "Webpack"]
    rollup, webpack = result.build_tools
    assert rollup.config_file == "rollup.config.mjs"
    assert rollup.build_scripts == ["bundle"]
    assert webpack.config_file is None
    assert webpack.version == "5.90.0"
    assert webpack.build_scripts == ["build"]


def test_build_tool_detected_from_config_only(context_builder: ContextBuilder) -> None:
    context_builder.write({"turbo.json": "{}"})
    result = asyncio.run(BuildToolDetector().detect(context_builder.build()))

    assert [tool.name for tool in result.build_tools] == ["Turbopack"]
    assert result.build_tools[0].version == "unknown"


def test_dependency_detector_collects_all_ecosystems(context_builder: ContextBuilder) -> None:
    context_builder.write_json(
        "package.json",
        {"dependencies": {"express": "^4.18.2"}, "devDependencies": {"jest": "^29.7.0"}},
    )
    context_builder.write(
        {
            "pyproject.toml": (
                "[project]\n"
                "name = 'demo'\n"
                "dependencies = ['httpx>=0.27']\n"
                "[project.optional-dependencies]\n"
                "test = ['pytest>=8.0']\n"
            ),
            "Gemfile": "source 'https://rubygems.org'\ngem 'rails', '~> 7.1.0'\n",
        }
    )
    context_builder.write_json(
        "composer.json", {"require": {"php": ">=8.1", "laravel/framework": "^10.0"}}
    )
    result = asyncio.run(DependencyDetector().detect(context_builder.build()))

    production = [(dep.name, dep.ecosystem) for dep in result.dependencies]
    assert production == [
        ("express", "npm"),
        ("httpx", "pip"),
        ("rails", "gem"),
        ("laravel/framework", "composer"),
    ]
    assert [dep.name for dep in result.dev_dependencies] == ["jest", "pytest"]
    assert result.total_count == 4
    assert result.dev_count == 2
    assert result.outdated_dependencies == []


def test_dependency_detector_flags_outdated_majors(context_builder: ContextBuilder) -> None:
    context_builder.write_json(
        "package.json",
        {"dependencies": {"lodash": "^1.0.0", "axios": "^0.27.2", "react": "^18.2.0"}},
    )
    lookup = StaticLookup({"lodash": "4.17.21", "axios": "1.7.2", "react": "18.3.1"})
    result = asyncio.run(DependencyDetector(version_lookup=lookup).detect(context_builder.build()))

    outdated = {dep.name: dep for dep in result.outdated_dependencies}
    assert set(outdated) == {"lodash", "axios"}
    assert outdated["lodash"].major_versions_behind == 3
    assert outdated["lodash"].severity == "critical"
    assert outdated["axios"].severity == "warning"
    react = next(dep for dep in result.dependencies if dep.name == "react")
    assert react.latest_version == "18.3.1"
    assert lookup.calls == [(["lodash", "axios", "react"], "npm")]


def test_severity_thresholds() -> None:
    assert severity_for(3) == "critical"
    assert severity_for(2) == "warning"
    assert severity_for(1) == "warning"
    assert severity_for(0) == "info"


def test_npm_registry_lookup_uses_latest_endpoint() -> None:
    requested: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        if request.url.path == "/left-pad/latest":
            return httpx.Response(404, json={})
        if request.url.path == "/broken/latest":
            return httpx.Response(500, text="oops")
        return httpx.Response(200, json={"name": "react", "version": "18.3.1"})

    lookup = NpmRegistryLookup(
        registry_url="https://registry.example.com", transport=httpx.MockTransport(handler)
    )
    versions = asyncio.run(lookup.latest_versions(["react", "left-pad", "broken"], "npm"))

    assert versions == {"react": "18.3.1"}
    assert sorted(requested) == ["/broken/latest", "/left-pad/latest", "/react/latest"]
    assert asyncio.run(lookup.latest_versions(["rails"], "gem")) == {}


def test_npm_registry_lookup_caches_results() -> None:
    calls: List[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"version": "5.0.0"})

    lookup = NpmRegistryLookup(transport=httpx.MockTransport(handler))

    async def scenario() -> None:
        await lookup.latest_versions(["vite"], "npm")
        await lookup.latest_versions(["vite"], "npm")

    asyncio.run(scenario())
    assert calls == ["/vite/latest"]


def test_pip_requirements_parsing(context_builder: ContextBuilder) -> None:
    context_builder.write(
        {
            "requirements.txt": (
                "# pinned\n"
                "Django==4.2.7\n"
                "uvicorn[standard]>=0.29 ; python_version >= '3.11'\n"
                "-r dev.txt\n"
                "django==5.0\n"
            )
        }
    )
    deps = load_pip_dependencies(context_builder.build())

    assert [(dep.name, dep.version) for dep in deps] == [
        ("Django", "4.2.7"),
        ("uvicorn", "0.29"),
    ]


def test_parse_version() -> None:
    assert parse_version("18.2.0") == (18, 2, 0)
    assert parse_version("4.2") is None
    assert parse_version("latest") is None


def test_discover_detectors_honors_enabled_names() -> None:
    names = [detector.name for detector in discover_detectors(["framework", "language"])]
    assert names == ["language", "framework"]

    all_names = [detector.name for detector in discover_detectors()]
    assert all_names[:4] == ["language", "framework", "build_tool", "dependency"]


def test_discover_detectors_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="Unknown detectors requested"):
        discover_detectors(["language", "sentiment"])


class _LicenseDetector(LanguageDetector):
    name = "license"


class _FakeEntryPoint:
    def __init__(self, name: str, target: object) -> None:
        self.name = name
        self._target = target

    def load(self) -> object:
        return self._target


def test_discover_detectors_loads_entry_points(monkeypatch: pytest.MonkeyPatch) -> None:
    import reposcan.detectors as detectors_module

    monkeypatch.setattr(
        detectors_module,
        "_iter_entry_points",
        lambda: [_FakeEntryPoint("license", _LicenseDetector)],
    )
    names = [detector.name for detector in discover_detectors()]
    assert names == ["language", "framework", "build_tool", "dependency", "license"]


def test_discover_detectors_rejects_bad_entry_point(monkeypatch: pytest.MonkeyPatch) -> None:
    import reposcan.detectors as detectors_module

    monkeypatch.setattr(
        detectors_module, "_iter_entry_points", lambda: [_FakeEntryPoint("broken", 42)]
    )
    with pytest.raises(TypeError):
        discover_detectors()


class _QuietLanguageDetector(LanguageDetector):
    pass


def test_plugin_with_builtin_name_replaces_it_in_place(monkeypatch: pytest.MonkeyPatch) -> None:
    import reposcan.detectors as detectors_module

    replacement = _QuietLanguageDetector()
    monkeypatch.setattr(
        detectors_module,
        "_iter_entry_points",
        lambda: [_FakeEntryPoint("Language", lambda: replacement)],
    )
    detectors = discover_detectors()

    assert [detector.name for detector in detectors] == [
        "language",
        "framework",
        "build_tool",
        "dependency",
    ]
    assert detectors[0] is replacement
