"""Built-in detectors and plugin discovery.

Third-party packages contribute detectors through the ``reposcan.detectors``
entry-point group. The entry point may name a ``Detector`` subclass, an
instance, or a zero-argument factory returning one. A plugin whose name
matches a built-in replaces it in place, mirroring the registry's
last-registration-wins rule.
"""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, List, Sequence, Tuple, Type

from .base import Detector
from .build_tool import BuildToolDetector
from .dependency import DependencyDetector
from .framework import FrameworkDetector
from .language import LanguageDetector

ENTRY_POINT_GROUP = "reposcan.detectors"

BUILTIN_DETECTORS: Tuple[Type[Detector], ...] = (
    LanguageDetector,
    FrameworkDetector,
    BuildToolDetector,
    DependencyDetector,
)

DetectorFactory = Callable[[], Detector]


def discover_detectors(enabled: Sequence[str] | None = None) -> List[Detector]:
    """Instantiate the available detectors in discovery order.

    ``enabled`` restricts the result to the given names (case-insensitive);
    naming a detector that is not available raises ``ValueError``.
    """
    factories: Dict[str, DetectorFactory] = {cls.name: cls for cls in BUILTIN_DETECTORS}
    for entry in _iter_entry_points():
        factories[entry.name.lower()] = _plugin_factory(entry)

    if enabled is None:
        selected = list(factories)
    else:
        wanted = {name.strip().lower() for name in enabled}
        unknown = sorted(wanted - set(factories))
        if unknown:
            raise ValueError(f"Unknown detectors requested: {', '.join(unknown)}")
        selected = [name for name in factories if name in wanted]

    return [_instantiate(name, factories[name]) for name in selected]


def _plugin_factory(entry: metadata.EntryPoint) -> DetectorFactory:
    def factory() -> Detector:
        try:
            target = entry.load()
        except Exception as exc:  # pragma: no cover - broken plugin install
            raise RuntimeError(f"Failed to load detector plugin '{entry.name}': {exc}") from exc
        if isinstance(target, Detector):
            return target
        if callable(target):
            return target()
        raise TypeError(f"Detector plugin '{entry.name}' is neither a Detector nor a factory")

    return factory


def _instantiate(name: str, factory: DetectorFactory) -> Detector:
    detector = factory()
    if not isinstance(detector, Detector):
        raise TypeError(f"Detector plugin '{name}' did not produce a Detector instance")
    if not detector.name:
        raise TypeError(f"Detector plugin '{name}' produced a detector without a name")
    return detector


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=ENTRY_POINT_GROUP)


__all__ = [
    "BUILTIN_DETECTORS",
    "BuildToolDetector",
    "DependencyDetector",
    "Detector",
    "FrameworkDetector",
    "LanguageDetector",
    "discover_detectors",
]
