"""TTL caches for analysis reports keyed by repository commit."""

from __future__ import annotations

import json
import time
from fnmatch import fnmatchcase
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import redis.asyncio as redis

from ..logging import get_logger
from ..models import AnalysisReport
from ..serialization import report_from_dict, report_to_dict

logger = get_logger("stores.report_cache")

_CACHE_VERSION = 1


def scanner_cache_key(owner: str, repo: str, commit_sha: str) -> str:
    return f"scanner:{owner}:{repo}:{commit_sha}"


def repository_pattern(owner: str, repo: str) -> str:
    return f"scanner:{owner}:{repo}:*"


class ReportCache(Protocol):
    """Storage boundary used by the caching orchestrator."""

    async def get(self, key: str) -> Optional[AnalysisReport]:
        ...

    async def set(self, key: str, report: AnalysisReport, ttl_seconds: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def invalidate(self, pattern: str) -> int:
        ...


class MemoryReportCache:
    """In-process cache; entries are stored as JSON text so callers never share state."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[float, str]] = {}

    async def get(self, key: str) -> Optional[AnalysisReport]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return report_from_dict(json.loads(payload))

    async def set(self, key: str, report: AnalysisReport, ttl_seconds: int) -> None:
        self._entries[key] = (self._clock() + ttl_seconds, json.dumps(report_to_dict(report)))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def invalidate(self, pattern: str) -> int:
        removed = [key for key in self._entries if fnmatchcase(key, pattern)]
        for key in removed:
            self._entries.pop(key, None)
        return len(removed)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisReportCache:
    """Redis-backed cache storing versioned JSON payloads with ``SETEX``."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisReportCache":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> Optional[AnalysisReport]:
        raw = await self._client.get(key)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable cache entry %s", key)
            return None
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return None
        return report_from_dict(data.get("report"))

    async def set(self, key: str, report: AnalysisReport, ttl_seconds: int) -> None:
        payload = {"version": _CACHE_VERSION, "report": report_to_dict(report)}
        await self._client.setex(key, ttl_seconds, json.dumps(payload, sort_keys=True))

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def invalidate(self, pattern: str) -> int:
        keys: List[str] = [key async for key in self._client.scan_iter(match=pattern, count=100)]
        if not keys:
            return 0
        return int(await self._client.delete(*keys))

    async def close(self) -> None:
        await self._client.aclose()


__all__ = [
    "MemoryReportCache",
    "RedisReportCache",
    "ReportCache",
    "repository_pattern",
    "scanner_cache_key",
]
