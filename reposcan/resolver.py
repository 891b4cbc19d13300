"""Dependency-ordered batching of detectors."""

from __future__ import annotations

from typing import Dict, List, Sequence, Set

from .detectors.base import Detector
from .logging import get_logger

logger = get_logger("resolver")


def resolve_batches(detectors: Sequence[Detector]) -> List[List[str]]:
    """Partition detectors into batches that can run concurrently.

    A detector lands in the first batch after all of its registered
    dependencies; dependencies on unknown names are ignored. Within a batch,
    the input order is preserved. Detectors caught in a dependency cycle, or
    depending on one, are collected into a single final batch.
    """
    names = [detector.name for detector in detectors]
    known = set(names)
    pending: Dict[str, Set[str]] = {
        detector.name: {dep for dep in detector.get_dependencies() if dep in known}
        for detector in detectors
    }

    batches: List[List[str]] = []
    placed: Set[str] = set()
    while len(placed) < len(names):
        batch = [
            name for name in names if name not in placed and pending[name] <= placed
        ]
        if not batch:
            remaining = [name for name in names if name not in placed]
            logger.debug(
                "Unresolvable detector dependencies among %s; running them last",
                ", ".join(remaining),
            )
            batches.append(remaining)
            break
        batches.append(batch)
        placed.update(batch)
    return batches


__all__ = ["resolve_batches"]
