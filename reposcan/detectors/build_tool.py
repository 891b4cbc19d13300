"""Build tool detector implementation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .base import Detector
from .utils import load_npm_dependencies, load_npm_scripts
from ..models import BuildToolDetectionResult, DetectedBuildTool, RepositoryContext


@dataclass(frozen=True)
class BuildToolPattern:
    config_files: Tuple[str, ...]
    package_names: Tuple[str, ...]
    script_markers: Tuple[str, ...]


BUILD_TOOLS: Dict[str, BuildToolPattern] = {
    "Webpack": BuildToolPattern(
        (
            "webpack.config.js",
            "webpack.config.ts",
            "webpack.config.cjs",
            "webpack.config.mjs",
            "webpack.config.babel.js",
            ".webpack/webpack.config.js",
        ),
        ("webpack",),
        ("webpack",),
    ),
    "Vite": BuildToolPattern(
        ("vite.config.js", "vite.config.ts", "vite.config.mjs", "vite.config.cjs"),
        ("vite",),
        ("vite",),
    ),
    "Rollup": BuildToolPattern(
        ("rollup.config.js", "rollup.config.ts", "rollup.config.mjs", "rollup.config.cjs"),
        ("rollup",),
        ("rollup",),
    ),
    "esbuild": BuildToolPattern(
        ("esbuild.config.js", "esbuild.config.ts", "esbuild.config.mjs"),
        ("esbuild",),
        ("esbuild",),
    ),
    "Parcel": BuildToolPattern(
        (".parcelrc", "parcel.config.json", ".parcelrc.json"),
        ("parcel", "parcel-bundler"),
        ("parcel",),
    ),
    "Turbopack": BuildToolPattern(("turbo.json",), ("turbo",), ("turbo",)),
}


class BuildToolDetector(Detector):
    """Finds JavaScript bundlers through dependencies, config files and scripts."""

    name = "build_tool"

    async def detect(self, context: RepositoryContext) -> BuildToolDetectionResult:
        versions = {dep.name.lower(): dep.version for dep in load_npm_dependencies(context)}
        scripts = load_npm_scripts(context)

        build_tools: List[DetectedBuildTool] = []
        for name, pattern in BUILD_TOOLS.items():
            tool = _detect_tool(context, name, pattern, versions, scripts)
            if tool is not None:
                build_tools.append(tool)

        # Stable sort: tools with a config file first, declaration order otherwise.
        build_tools.sort(key=lambda tool: tool.config_file is None)
        return self.success(BuildToolDetectionResult, build_tools=build_tools)


def _detect_tool(
    context: RepositoryContext,
    name: str,
    pattern: BuildToolPattern,
    versions: Dict[str, str],
    scripts: Dict[str, str],
) -> Optional[DetectedBuildTool]:
    version = next(
        (versions[package] for package in pattern.package_names if package in versions), None
    )
    config_file = next(
        (config for config in pattern.config_files if context.has_file(config)), None
    )
    if version is None and config_file is None:
        return None

    build_scripts = [
        script
        for script, command in scripts.items()
        if any(marker in command.lower() for marker in pattern.script_markers)
    ]
    return DetectedBuildTool(
        name=name,
        version=version or "unknown",
        config_file=config_file,
        build_scripts=build_scripts,
    )


__all__ = ["BUILD_TOOLS", "BuildToolDetector"]
