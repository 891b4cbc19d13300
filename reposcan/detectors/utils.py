"""Manifest parsing helpers shared by detector implementations."""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .base import extract_version
from ..models import RepositoryContext

_REQUIREMENT_PATTERN = re.compile(
    r"^([A-Za-z0-9_.\-]+)(?:\[[^\]]*\])?\s*([=<>~!]+)?\s*([^;#\s,]+)?"
)
_GEM_PATTERN = re.compile(r"""gem\s+['"]([^'"]+)['"](?:\s*,\s*['"]([^'"]+)['"])?""")
_SEMVER_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)")


@dataclass
class ManifestDependency:
    """A dependency declaration read from a package manifest."""

    name: str
    version: str
    ecosystem: str
    dev: bool = False


def parse_version(version: str) -> Optional[Tuple[int, int, int]]:
    """Return ``(major, minor, patch)`` for a dotted version prefix, else None."""
    match = _SEMVER_PATTERN.match(version)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


# Node.js


def load_package_json(context: RepositoryContext) -> Dict[str, object]:
    """Return the parsed package.json contents or an empty dict."""
    data = context.parse_json_file("package.json")
    return data if isinstance(data, dict) else {}


def load_npm_dependencies(context: RepositoryContext) -> List[ManifestDependency]:
    package_json = load_package_json(context)
    deps: List[ManifestDependency] = []
    for key, dev in (("dependencies", False), ("devDependencies", True)):
        section = package_json.get(key)
        if not isinstance(section, dict):
            continue
        for name, version in section.items():
            deps.append(
                ManifestDependency(
                    name=str(name),
                    version=extract_version(str(version)),
                    ecosystem="npm",
                    dev=dev,
                )
            )
    return deps


def load_npm_scripts(context: RepositoryContext) -> Dict[str, str]:
    scripts = load_package_json(context).get("scripts")
    if not isinstance(scripts, dict):
        return {}
    return {str(name): str(command) for name, command in scripts.items()}


# Python


def load_pip_dependencies(context: RepositoryContext) -> List[ManifestDependency]:
    """Collect Python dependencies from requirements.txt and pyproject.toml."""
    deps: List[ManifestDependency] = []
    seen: set[str] = set()

    requirements = context.get_file_content("requirements.txt")
    if requirements:
        for line in requirements.splitlines():
            dep = _parse_requirement(line)
            if dep is not None and dep.name.lower() not in seen:
                deps.append(dep)
                seen.add(dep.name.lower())

    pyproject = context.get_file_content("pyproject.toml")
    if pyproject:
        for dep in _parse_pyproject(pyproject):
            if dep.name.lower() not in seen:
                deps.append(dep)
                seen.add(dep.name.lower())
    return deps


def _parse_requirement(line: str, *, dev: bool = False) -> Optional[ManifestDependency]:
    stripped = line.strip()
    if not stripped or stripped.startswith(("#", "-")):
        return None
    match = _REQUIREMENT_PATTERN.match(stripped)
    if not match:
        return None
    name, operator, version = match.groups()
    if operator and version:
        resolved = extract_version(version)
    else:
        resolved = "latest"
    return ManifestDependency(name=name, version=resolved, ecosystem="pip", dev=dev)


def _parse_pyproject(content: str) -> List[ManifestDependency]:
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError:
        return []

    deps: List[ManifestDependency] = []
    project = data.get("project")
    if isinstance(project, dict):
        for requirement in project.get("dependencies", []) or []:
            if isinstance(requirement, str):
                dep = _parse_requirement(requirement)
                if dep is not None:
                    deps.append(dep)
        optional = project.get("optional-dependencies", {}) or {}
        if isinstance(optional, dict):
            for values in optional.values():
                for requirement in values or []:
                    if isinstance(requirement, str):
                        dep = _parse_requirement(requirement, dev=True)
                        if dep is not None:
                            deps.append(dep)

    tool = data.get("tool")
    poetry = tool.get("poetry", {}) if isinstance(tool, dict) else {}
    if isinstance(poetry, dict):
        poetry_deps = poetry.get("dependencies", {}) or {}
        if isinstance(poetry_deps, dict):
            for name, spec in poetry_deps.items():
                if name.lower() == "python":
                    continue
                version = spec if isinstance(spec, str) else "latest"
                deps.append(
                    ManifestDependency(
                        name=name,
                        version=extract_version(version) or "latest",
                        ecosystem="pip",
                    )
                )
    return deps


# Ruby


def load_gem_dependencies(context: RepositoryContext) -> List[ManifestDependency]:
    gemfile = context.get_file_content("Gemfile")
    if not gemfile:
        return []
    deps: List[ManifestDependency] = []
    for line in gemfile.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _GEM_PATTERN.search(stripped)
        if match:
            name, version = match.groups()
            deps.append(
                ManifestDependency(
                    name=name,
                    version=extract_version(version) if version else "latest",
                    ecosystem="gem",
                )
            )
    return deps


# PHP


def load_composer_dependencies(context: RepositoryContext) -> List[ManifestDependency]:
    composer = context.parse_json_file("composer.json")
    if not isinstance(composer, dict):
        return []
    deps: List[ManifestDependency] = []
    for key, dev in (("require", False), ("require-dev", True)):
        section = composer.get(key)
        if not isinstance(section, dict):
            continue
        for name, version in section.items():
            if name == "php":
                continue
            deps.append(
                ManifestDependency(
                    name=str(name),
                    version=extract_version(str(version)),
                    ecosystem="composer",
                    dev=dev,
                )
            )
    return deps


def load_all_dependencies(context: RepositoryContext) -> List[ManifestDependency]:
    """Return dependencies from every supported manifest in a stable order."""
    return [
        *load_npm_dependencies(context),
        *load_pip_dependencies(context),
        *load_gem_dependencies(context),
        *load_composer_dependencies(context),
    ]


__all__ = [
    "ManifestDependency",
    "load_all_dependencies",
    "load_composer_dependencies",
    "load_gem_dependencies",
    "load_npm_dependencies",
    "load_npm_scripts",
    "load_package_json",
    "load_pip_dependencies",
    "parse_version",
]
