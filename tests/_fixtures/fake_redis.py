"""In-memory stand-in for the asyncio Redis client."""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import AsyncIterator, Dict, Optional


class FakeRedis:
    """Minimal async stand-in for ``redis.asyncio.Redis`` with decoded responses."""

    def __init__(self) -> None:
        self.values: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.closed = False

    async def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.values[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match: str, count: int = 10) -> AsyncIterator[str]:
        for key in list(self.values):
            if fnmatchcase(key, match):
                yield key

    async def aclose(self) -> None:
        self.closed = True


__all__ = ["FakeRedis"]
