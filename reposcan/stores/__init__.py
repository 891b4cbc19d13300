"""Storage backends for reposcan reports."""

from .report_cache import (
    MemoryReportCache,
    RedisReportCache,
    ReportCache,
    repository_pattern,
    scanner_cache_key,
)

__all__ = [
    "MemoryReportCache",
    "RedisReportCache",
    "ReportCache",
    "repository_pattern",
    "scanner_cache_key",
]
