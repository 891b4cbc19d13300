"""Commit-keyed caching wrapper around :class:`ScannerOrchestrator`."""

from __future__ import annotations

import dataclasses
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from .commits import CommitResolver
from .logging import get_logger
from .models import AnalysisReport, RepositoryContext
from .orchestrator import ScannerOrchestrator
from .stores.report_cache import ReportCache, repository_pattern, scanner_cache_key


def fallback_commit_sha(clock: Callable[[], float] = time.time) -> str:
    return f"fallback-{int(clock() * 1000)}"


class CachedScannerOrchestrator:
    """Serves reports from a cache when the repository commit is unchanged.

    The cache never blocks analysis: read errors count as a miss and write
    errors are logged and ignored. When the commit cannot be resolved a
    unique ``fallback-<epochMillis>`` key is used, which effectively bypasses
    reuse for that run.
    """

    def __init__(
        self,
        orchestrator: ScannerOrchestrator,
        cache: ReportCache,
        commit_resolver: CommitResolver | None = None,
        *,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self._cache = cache
        self._commit_resolver = commit_resolver
        self._ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else orchestrator.config.cache_ttl_seconds
        )
        self.logger = get_logger("cached_orchestrator")

    async def analyze_repository(
        self,
        context: RepositoryContext,
        *,
        overall_timeout_ms: Optional[int] = None,
        detector_timeout_ms: Optional[int] = None,
    ) -> AnalysisReport:
        commit_sha = await self._resolve_commit(context)
        key = scanner_cache_key(context.owner, context.repo, commit_sha)

        cached = await self._cache_get(key)
        if cached is not None:
            self.logger.debug("Cache hit for %s", key)
            return dataclasses.replace(
                cached,
                repository=dataclasses.replace(
                    cached.repository, analyzed_at=datetime.now(timezone.utc)
                ),
            )

        self.logger.debug("Cache miss for %s", key)
        report = await self.orchestrator.analyze_repository(
            context,
            overall_timeout_ms=overall_timeout_ms,
            detector_timeout_ms=detector_timeout_ms,
        )
        report = dataclasses.replace(
            report, repository=dataclasses.replace(report.repository, commit_sha=commit_sha)
        )

        try:
            await self._cache.set(key, report, self._ttl_seconds)
        except Exception as exc:
            self.logger.warning("Failed to cache analysis result for %s: %s", key, exc)
        return report

    async def invalidate_repository(self, owner: str, repo: str) -> int:
        """Drop cached reports for every commit of ``owner/repo``."""
        pattern = repository_pattern(owner, repo)
        try:
            removed = await self._cache.invalidate(pattern)
        except Exception as exc:
            self.logger.warning("Failed to invalidate cache pattern %s: %s", pattern, exc)
            return 0
        self.logger.info("Invalidated %d cached report(s) for %s/%s", removed, owner, repo)
        return removed

    async def _resolve_commit(self, context: RepositoryContext) -> str:
        if self._commit_resolver is None:
            return fallback_commit_sha()
        try:
            return await self._commit_resolver.resolve(
                context.owner, context.repo, context.metadata.default_branch
            )
        except Exception as exc:
            self.logger.warning(
                "Failed to resolve commit for %s/%s, using fallback key: %s",
                context.owner,
                context.repo,
                exc,
            )
            return fallback_commit_sha()

    async def _cache_get(self, key: str) -> Optional[AnalysisReport]:
        try:
            return await self._cache.get(key)
        except Exception as exc:
            self.logger.warning("Cache read failed for %s; analyzing directly: %s", key, exc)
            return None


__all__ = ["CachedScannerOrchestrator", "fallback_commit_sha"]
