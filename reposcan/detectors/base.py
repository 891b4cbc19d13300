"""Base classes for detector plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List

from ..models import DetectionError, DetectionResult, RepositoryContext


class Detector(ABC):
    """Contract for detectors that inspect a repository snapshot.

    Subclasses set ``name`` to a stable identifier, override
    :meth:`get_dependencies` when they need other detectors to have run first,
    and implement :meth:`detect`. Raising from ``detect`` is allowed; the
    scheduler turns the exception into a failed result.
    """

    name: str = ""

    def get_dependencies(self) -> List[str]:
        """Return names of detectors that must finish before this one starts."""
        return []

    @abstractmethod
    async def detect(self, context: RepositoryContext) -> DetectionResult:
        """Analyze ``context`` and return a success- or failure-tagged result."""

    # Helpers shared by built-in detectors

    def error(self, code: str, message: str, *, recoverable: bool = True) -> DetectionError:
        return DetectionError(code=code, message=message, recoverable=recoverable)

    def success(self, result_type: type, **payload: Any) -> Any:
        return result_type(detector_name=self.name, success=True, **payload)

    def failure(self, result_type: type, error: DetectionError, **payload: Any) -> Any:
        return result_type(detector_name=self.name, success=False, error=error, **payload)


def extract_version(spec: str) -> str:
    """Strip range operators such as ``^``, ``~`` and ``>=`` from a version spec."""
    return spec.lstrip("^~>=<").strip()


__all__ = ["Detector", "extract_version"]
