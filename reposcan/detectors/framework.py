"""Framework detector implementation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .base import Detector
from .utils import ManifestDependency, load_all_dependencies
from ..models import DetectedFramework, FrameworkDetectionResult, RepositoryContext


@dataclass(frozen=True)
class FrameworkPattern:
    package_names: Tuple[str, ...]
    config_files: Tuple[str, ...]
    min_confidence: int


FRONTEND_FRAMEWORKS: Dict[str, FrameworkPattern] = {
    "React": FrameworkPattern(("react",), (".babelrc", ".babelrc.js", ".babelrc.json"), 80),
    "Vue": FrameworkPattern(("vue",), ("vue.config.js", "vue.config.ts"), 80),
    "Angular": FrameworkPattern(("@angular/core",), ("angular.json", ".angular-cli.json"), 90),
    "Svelte": FrameworkPattern(
        ("svelte",), ("svelte.config.js", "svelte.config.cjs", "svelte.config.mjs"), 80
    ),
    "Next.js": FrameworkPattern(
        ("next",), ("next.config.js", "next.config.mjs", "next.config.ts"), 90
    ),
    "Nuxt": FrameworkPattern(("nuxt",), ("nuxt.config.js", "nuxt.config.ts"), 90),
}

BACKEND_FRAMEWORKS: Dict[str, FrameworkPattern] = {
    "Express": FrameworkPattern(("express",), (), 70),
    "Django": FrameworkPattern(("django",), ("manage.py", "settings.py", "*/settings.py"), 85),
    "Flask": FrameworkPattern(("flask",), ("wsgi.py",), 80),
    "FastAPI": FrameworkPattern(("fastapi",), (), 80),
    "Rails": FrameworkPattern(("rails",), ("config/application.rb", "Rakefile", "config.ru"), 90),
    "Laravel": FrameworkPattern(("laravel/framework",), ("artisan", "config/app.php"), 90),
    "NestJS": FrameworkPattern(("@nestjs/core",), ("nest-cli.json",), 90),
}


class FrameworkDetector(Detector):
    """Recognizes frontend and backend frameworks from declared packages."""

    name = "framework"

    async def detect(self, context: RepositoryContext) -> FrameworkDetectionResult:
        dependencies: Dict[str, ManifestDependency] = {}
        for dep in load_all_dependencies(context):
            dependencies[dep.name.lower()] = dep

        frontend = _detect_all(context, FRONTEND_FRAMEWORKS, dependencies, "frontend")
        backend = _detect_all(context, BACKEND_FRAMEWORKS, dependencies, "backend")
        return self.success(FrameworkDetectionResult, frontend=frontend, backend=backend)


def _detect_all(
    context: RepositoryContext,
    patterns: Dict[str, FrameworkPattern],
    dependencies: Dict[str, ManifestDependency],
    category: str,
) -> List[DetectedFramework]:
    detected: List[DetectedFramework] = []
    for name, pattern in patterns.items():
        framework = _detect_framework(context, name, pattern, dependencies, category)
        if framework is not None:
            detected.append(framework)
    detected.sort(key=lambda item: item.confidence, reverse=True)
    return detected


def _detect_framework(
    context: RepositoryContext,
    name: str,
    pattern: FrameworkPattern,
    dependencies: Dict[str, ManifestDependency],
    category: str,
) -> Optional[DetectedFramework]:
    dep = next(
        (dependencies[package] for package in pattern.package_names if package in dependencies),
        None,
    )
    if dep is None:
        return None

    config_files: List[str] = []
    for config in pattern.config_files:
        if "*" in config:
            config_files.extend(context.find_files_by_pattern([config]))
        elif context.has_file(config):
            config_files.append(config)

    confidence = min(pattern.min_confidence + min(len(config_files) * 10, 20), 100)
    version = dep.version if dep.version not in ("", "latest") else "unknown"
    return DetectedFramework(
        name=name,
        version=version,
        category=category,
        config_files=config_files,
        confidence=confidence,
    )


__all__ = ["BACKEND_FRAMEWORKS", "FRONTEND_FRAMEWORKS", "FrameworkDetector"]
