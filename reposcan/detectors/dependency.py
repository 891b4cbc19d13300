"""Dependency detector implementation and registry version lookups."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Protocol, Sequence

import httpx

from .base import Detector
from .utils import ManifestDependency, load_all_dependencies, parse_version
from ..logging import get_logger
from ..models import (
    DependencyAnalysisResult,
    DependencyInfo,
    OutdatedDependency,
    RepositoryContext,
)

logger = get_logger("detectors.dependency")

NPM_REGISTRY_URL = "https://registry.npmjs.org"


class VersionLookup(Protocol):
    """Resolves the latest published version of a package."""

    async def latest_versions(self, names: Sequence[str], ecosystem: str) -> Dict[str, str]:
        ...


class NpmRegistryLookup:
    """Fetches latest versions from the npm registry in small concurrent batches."""

    def __init__(
        self,
        *,
        registry_url: str = NPM_REGISTRY_URL,
        timeout: float = 5.0,
        concurrency: int = 5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._registry_url = registry_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout)
        self._concurrency = concurrency
        self._transport = transport
        self._cache: Dict[str, str] = {}

    async def latest_versions(self, names: Sequence[str], ecosystem: str) -> Dict[str, str]:
        if ecosystem != "npm":
            return {}
        pending = [name for name in names if name not in self._cache]
        if pending:
            semaphore = asyncio.Semaphore(self._concurrency)
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
                transport=self._transport,
            ) as client:

                async def _fetch(name: str) -> None:
                    async with semaphore:
                        version = await self._fetch_latest(client, name)
                    if version:
                        self._cache[name] = version

                await asyncio.gather(*(_fetch(name) for name in pending))
            logger.debug("Resolved %d/%d npm versions", len(self._cache), len(names))
        return {name: self._cache[name] for name in names if name in self._cache}

    async def _fetch_latest(self, client: httpx.AsyncClient, name: str) -> Optional[str]:
        try:
            response = await client.get(f"{self._registry_url}/{name}/latest")
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code != 404:
                logger.warning("npm registry returned %s for %s", exc.response.status_code, name)
            return None
        except (httpx.RequestError, ValueError) as exc:
            logger.warning("npm registry lookup failed for %s: %s", name, exc)
            return None
        version = payload.get("version") if isinstance(payload, dict) else None
        return str(version) if version else None


def severity_for(major_versions_behind: int) -> str:
    if major_versions_behind > 2:
        return "critical"
    if major_versions_behind >= 1:
        return "warning"
    return "info"


class DependencyDetector(Detector):
    """Lists declared dependencies and flags packages behind their latest major."""

    name = "dependency"

    def __init__(self, version_lookup: VersionLookup | None = None) -> None:
        self._version_lookup = version_lookup

    async def detect(self, context: RepositoryContext) -> DependencyAnalysisResult:
        declared = load_all_dependencies(context)
        dependencies = [_to_info(dep) for dep in declared if not dep.dev]
        dev_dependencies = [_to_info(dep) for dep in declared if dep.dev]

        outdated: List[OutdatedDependency] = []
        if self._version_lookup is not None:
            outdated = await _find_outdated(
                self._version_lookup, [*dependencies, *dev_dependencies]
            )

        return self.success(
            DependencyAnalysisResult,
            dependencies=dependencies,
            dev_dependencies=dev_dependencies,
            outdated_dependencies=outdated,
            total_count=len(dependencies),
            dev_count=len(dev_dependencies),
        )


async def _find_outdated(
    lookup: VersionLookup, dependencies: List[DependencyInfo]
) -> List[OutdatedDependency]:
    by_ecosystem: Dict[str, List[DependencyInfo]] = {}
    for dep in dependencies:
        if parse_version(dep.installed_version) is not None:
            by_ecosystem.setdefault(dep.ecosystem, []).append(dep)

    outdated: List[OutdatedDependency] = []
    for ecosystem, candidates in by_ecosystem.items():
        latest = await lookup.latest_versions(
            [dep.name for dep in candidates], ecosystem
        )
        for dep in candidates:
            installed = parse_version(dep.installed_version)
            latest_version = latest.get(dep.name)
            current = parse_version(latest_version) if latest_version else None
            if installed is None or current is None:
                continue
            dep.latest_version = latest_version
            behind = current[0] - installed[0]
            if behind > 0:
                outdated.append(
                    OutdatedDependency(
                        name=dep.name,
                        installed_version=dep.installed_version,
                        type=dep.type,
                        ecosystem=dep.ecosystem,
                        latest_version=latest_version,
                        major_versions_behind=behind,
                        severity=severity_for(behind),
                    )
                )
    return outdated


def _to_info(dep: ManifestDependency) -> DependencyInfo:
    return DependencyInfo(
        name=dep.name,
        installed_version=dep.version,
        type="dev" if dep.dev else "production",
        ecosystem=dep.ecosystem,
    )


__all__ = ["DependencyDetector", "NpmRegistryLookup", "VersionLookup", "severity_for"]
