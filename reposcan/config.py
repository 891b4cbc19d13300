"""Configuration loading for reposcan (.reposcan.yml plus environment overrides)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

CONFIG_FILENAME = ".reposcan.yml"

MIN_TIMEOUT_MS = 5_000
MAX_TIMEOUT_MS = 300_000
MAX_FILE_SIZE_MB = 10.0
MIN_CACHE_TTL_SECONDS = 60
MAX_CACHE_TTL_SECONDS = 3_600


class ConfigError(RuntimeError):
    """Raised when configuration cannot be parsed or fails validation."""


@dataclass
class ScannerConfig:
    """Runtime settings for an orchestration run."""

    timeout_ms: int = 30_000
    detector_timeout_ms: Optional[int] = None
    max_file_size_mb: float = 1.0
    cache_ttl_seconds: int = 600
    github_api_url: str = "https://api.github.com"
    github_token: Optional[str] = None
    detectors: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)

    @property
    def effective_detector_timeout_ms(self) -> int:
        if self.detector_timeout_ms is not None:
            return self.detector_timeout_ms
        return self.timeout_ms // 3

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)


_ENV_INT_KEYS = {
    "REPOSCAN_TIMEOUT_MS": "timeout_ms",
    "REPOSCAN_DETECTOR_TIMEOUT_MS": "detector_timeout_ms",
    "REPOSCAN_CACHE_TTL_SECONDS": "cache_ttl_seconds",
}


def load_config(
    config_path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> ScannerConfig:
    """Load configuration from an optional file, then apply environment overrides."""
    env = os.environ if env is None else env
    config = ScannerConfig()

    if config_path is not None:
        config_file = _resolve_config_path(config_path)
        if config_file.exists():
            _apply_file(config, _read_config(config_file))

    for variable, attribute in _ENV_INT_KEYS.items():
        raw = env.get(variable)
        if raw:
            setattr(config, attribute, _parse_positive_int(raw, variable))

    raw_size = env.get("REPOSCAN_MAX_FILE_SIZE_MB")
    if raw_size:
        config.max_file_size_mb = _parse_positive_float(raw_size, "REPOSCAN_MAX_FILE_SIZE_MB")

    api_url = env.get("REPOSCAN_GITHUB_API_URL")
    if api_url:
        config.github_api_url = api_url.rstrip("/")

    token = env.get("GITHUB_TOKEN")
    if token:
        config.github_token = token

    validate_config(config)
    return config


def validate_config(config: ScannerConfig) -> None:
    """Raise :class:`ConfigError` when any setting is outside its allowed range."""
    if not MIN_TIMEOUT_MS <= config.timeout_ms <= MAX_TIMEOUT_MS:
        raise ConfigError(
            f"timeout_ms must be between {MIN_TIMEOUT_MS} and {MAX_TIMEOUT_MS}, "
            f"got: {config.timeout_ms}"
        )
    if config.detector_timeout_ms is not None and config.detector_timeout_ms <= 0:
        raise ConfigError(
            f"detector_timeout_ms must be a positive number, got: {config.detector_timeout_ms}"
        )
    if config.max_file_size_mb <= 0 or config.max_file_size_mb > MAX_FILE_SIZE_MB:
        raise ConfigError(
            f"max_file_size_mb must be positive and not exceed {MAX_FILE_SIZE_MB:g} MB, "
            f"got: {config.max_file_size_mb}"
        )
    if not MIN_CACHE_TTL_SECONDS <= config.cache_ttl_seconds <= MAX_CACHE_TTL_SECONDS:
        raise ConfigError(
            f"cache_ttl_seconds must be between {MIN_CACHE_TTL_SECONDS} and "
            f"{MAX_CACHE_TTL_SECONDS}, got: {config.cache_ttl_seconds}"
        )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _apply_file(config: ScannerConfig, data: Dict[str, Any]) -> None:
    if "timeout_ms" in data:
        config.timeout_ms = _parse_positive_int(data["timeout_ms"], "timeout_ms")
    if data.get("detector_timeout_ms") is not None:
        config.detector_timeout_ms = _parse_positive_int(
            data["detector_timeout_ms"], "detector_timeout_ms"
        )
    if "max_file_size_mb" in data:
        config.max_file_size_mb = _parse_positive_float(
            data["max_file_size_mb"], "max_file_size_mb"
        )
    if "cache_ttl_seconds" in data:
        config.cache_ttl_seconds = _parse_positive_int(
            data["cache_ttl_seconds"], "cache_ttl_seconds"
        )

    github = _as_dict(data.get("github"))
    api_url = _as_str(github.get("api_url"))
    if api_url:
        config.github_api_url = api_url.rstrip("/")
    token = _as_str(github.get("token"))
    if token:
        config.github_token = token

    config.detectors = _as_str_list(data.get("detectors"))
    config.exclude_paths = _as_str_list(data.get("exclude_paths"))


def _parse_positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a valid number, got: {value}")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a valid number, got: {value}") from exc
    if parsed <= 0:
        raise ConfigError(f"{name} must be a positive number, got: {parsed}")
    return parsed


def _parse_positive_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a valid number, got: {value}")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a valid number, got: {value}") from exc
    if parsed <= 0:
        raise ConfigError(f"{name} must be a positive number, got: {parsed}")
    return parsed


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = ["CONFIG_FILENAME", "ConfigError", "ScannerConfig", "load_config", "validate_config"]
