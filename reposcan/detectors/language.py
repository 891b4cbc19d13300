"""Language detector implementation."""

from __future__ import annotations

import math
from typing import Dict, List, Tuple

from .base import Detector
from ..models import DetectedLanguage, LanguageDetectionResult, RepositoryContext

_EXTENSIONS_BY_LANGUAGE: Dict[str, Tuple[str, ...]] = {
    "JavaScript": (".js", ".jsx", ".mjs", ".cjs"),
    "TypeScript": (".ts", ".tsx"),
    "Python": (".py", ".pyx", ".pyi", ".pyw"),
    "Ruby": (".rb", ".rake", ".gemspec"),
    "PHP": (".php", ".phtml", ".php3", ".php4", ".php5", ".phps"),
    "Go": (".go",),
    "Java": (".java",),
    "C#": (".cs", ".csx"),
}

_CONFIG_FILES_BY_LANGUAGE: Dict[str, Tuple[str, ...]] = {
    "JavaScript": (
        "package.json",
        ".babelrc",
        ".eslintrc.js",
        ".eslintrc.json",
        "webpack.config.js",
        "jest.config.js",
        "vitest.config.js",
    ),
    "TypeScript": (
        "tsconfig.json",
        "tsconfig.build.json",
        "tslint.json",
        "jest.config.ts",
        "vitest.config.ts",
    ),
    "Python": (
        "requirements.txt",
        "setup.py",
        "pyproject.toml",
        "Pipfile",
        "environment.yml",
        "pytest.ini",
        "tox.ini",
    ),
    "Ruby": ("Gemfile", "Rakefile", ".ruby-version", "config.ru", ".rspec"),
    "PHP": ("composer.json", "composer.lock", ".php-version", "phpunit.xml"),
    "Go": ("go.mod", "go.sum", "Gopkg.toml", "Gopkg.lock"),
    "Java": ("pom.xml", "build.gradle", "gradle.properties", "build.xml"),
    "C#": ("*.csproj", "*.sln", "packages.config", "Directory.Build.props"),
}

_TEST_DIR_SEGMENTS = {"test", "tests", "__tests__", "spec", "specs"}
_TEST_NAME_MARKERS = (".test.", ".spec.", "_test.", "_spec.")


def is_test_path(path: str) -> bool:
    """Return True when ``path`` looks like a test source file."""
    parts = path.split("/")
    if any(segment in _TEST_DIR_SEGMENTS for segment in parts[:-1]):
        return True
    filename = parts[-1]
    if filename.startswith("test_"):
        return True
    return any(marker in filename for marker in _TEST_NAME_MARKERS)


class LanguageDetector(Detector):
    """Ranks source languages by file count, code volume and config files."""

    name = "language"

    async def detect(self, context: RepositoryContext) -> LanguageDetectionResult:
        try:
            languages: List[DetectedLanguage] = []
            for language, extensions in _EXTENSIONS_BY_LANGUAGE.items():
                detection = self._analyze_language(context, language, extensions)
                if detection.file_count > 0:
                    languages.append(detection)
            languages.sort(key=lambda item: item.confidence, reverse=True)

            source_suffixes = tuple(
                suffix for suffixes in _EXTENSIONS_BY_LANGUAGE.values() for suffix in suffixes
            )
            test_file_count = sum(
                1
                for path in context.find_files_by_extension(source_suffixes)
                if is_test_path(path)
            )
        except (ValueError, TypeError) as exc:
            return self.failure(
                LanguageDetectionResult,
                self.error("LANGUAGE_DETECTION_FAILED", f"Failed to detect languages: {exc}"),
            )

        return self.success(
            LanguageDetectionResult,
            languages=languages,
            primary_language=languages[0].name if languages else None,
            test_file_count=test_file_count,
        )

    def _analyze_language(
        self, context: RepositoryContext, language: str, extensions: Tuple[str, ...]
    ) -> DetectedLanguage:
        files = context.find_files_by_extension(extensions)
        lines_of_code = context.count_lines_of_code(files)
        config_files = _find_config_files(context, _CONFIG_FILES_BY_LANGUAGE.get(language, ()))
        return DetectedLanguage(
            name=language,
            confidence=_confidence(len(files), lines_of_code, len(config_files)),
            file_count=len(files),
            lines_of_code=lines_of_code,
            config_files=config_files,
        )


def _find_config_files(context: RepositoryContext, patterns: Tuple[str, ...]) -> List[str]:
    found: List[str] = []
    for pattern in patterns:
        if "*" in pattern:
            found.extend(context.find_files_by_pattern([pattern]))
        elif context.has_file(pattern):
            found.append(pattern)
    return found


def _confidence(file_count: int, lines_of_code: int, config_count: int) -> int:
    if file_count == 0:
        return 0
    # Log scaling keeps huge repositories from dwarfing small but real usage.
    file_score = min(math.log10(file_count + 1) * 50, 100)
    loc_score = min(math.log10(lines_of_code + 1) * 20, 100)
    config_score = min(config_count * 20, 100)
    return round(min(file_score * 0.4 + loc_score * 0.4 + config_score * 0.2, 100))


__all__ = ["LanguageDetector", "is_test_path"]
