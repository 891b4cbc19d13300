"""Name-keyed detector registry."""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from .detectors.base import Detector
from .logging import get_logger

logger = get_logger("registry")


class DetectorRegistry:
    """Holds detectors by name; re-registering a name replaces the earlier instance.

    Iteration follows first-registration order, so a replaced detector keeps
    its original slot.
    """

    def __init__(self) -> None:
        self._detectors: Dict[str, Detector] = {}

    def register(self, detector: Detector) -> None:
        name = detector.name
        if not name:
            raise ValueError("Detector must define a non-empty name")
        if name in self._detectors:
            logger.debug("Replacing detector '%s'", name)
        self._detectors[name] = detector

    def get(self, name: str) -> Optional[Detector]:
        return self._detectors.get(name)

    def list(self) -> List[Detector]:
        return list(self._detectors.values())

    def names(self) -> List[str]:
        return list(self._detectors)

    def __contains__(self, name: object) -> bool:
        return name in self._detectors

    def __len__(self) -> int:
        return len(self._detectors)

    def __iter__(self) -> Iterator[Detector]:
        return iter(self.list())


__all__ = ["DetectorRegistry"]
