"""CLI entrypoints for reposcan commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from .cached_orchestrator import CachedScannerOrchestrator
from .commits import GitCommitResolver
from .config import ConfigError, ScannerConfig, load_config
from .detectors import discover_detectors
from .detectors.base import Detector
from .detectors.dependency import DependencyDetector, NpmRegistryLookup
from .logging import configure_logging
from .models import AnalysisReport, RepositoryContext
from .orchestrator import ScannerOrchestrator
from .serialization import report_to_dict
from .snapshot import SnapshotBuilder, SnapshotError
from .stores.report_cache import RedisReportCache


def _add_logging_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Only log warnings and errors.",
    )
    parser.add_argument(
        "--log-file",
        default=argparse.SUPPRESS if suppress_default else None,
        help="Also write debug logs to this file.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reposcan",
        description="Run repository detectors and print an aggregated analysis report.",
    )
    _add_logging_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Analyze a local repository and print the report as JSON.",
    )
    _add_logging_options(scan_parser, suppress_default=True)
    scan_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )
    scan_parser.add_argument(
        "--owner",
        default="local",
        help="Owner recorded in the report and cache key.",
    )
    scan_parser.add_argument(
        "--config",
        default=None,
        help="Path to a .reposcan.yml file (defaults to the one in the repository root).",
    )
    scan_parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Overall analysis deadline in milliseconds.",
    )
    scan_parser.add_argument(
        "--detector-timeout-ms",
        type=int,
        default=None,
        help="Per-detector deadline in milliseconds.",
    )
    scan_parser.add_argument(
        "--detectors",
        default=None,
        help="Comma-separated detector names to run (defaults to all).",
    )
    scan_parser.add_argument(
        "--output",
        default=None,
        help="Write the report to this file instead of stdout.",
    )
    scan_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Skip the Redis report cache even when --redis-url is given.",
    )
    scan_parser.add_argument(
        "--redis-url",
        default=None,
        help="Cache reports in Redis at this URL, keyed by commit SHA.",
    )
    scan_parser.add_argument(
        "--check-outdated",
        action="store_true",
        help="Query the npm registry to flag outdated dependencies.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_logging_options(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for reposcan commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        quiet=bool(args.quiet),
        log_file=Path(args.log_file) if args.log_file else None,
    )

    if args.command == "scan":
        try:
            config = load_config(Path(args.config) if args.config else Path(args.path))
            detectors = _select_detectors(args, config)
            context = SnapshotBuilder(config).build(args.path, owner=args.owner)
        except (ConfigError, SnapshotError, ValueError) as exc:
            parser.exit(1, f"{exc}\n")

        orchestrator = ScannerOrchestrator(detectors, config=config)
        try:
            report = asyncio.run(_analyze(orchestrator, context, args))
        except Exception as exc:  # pragma: no cover
            parser.exit(1, f"reposcan scan failed: {exc}\nRun with --verbose for more details.\n")

        rendered = json.dumps(report_to_dict(report), indent=2)
        if args.output:
            output = Path(args.output)
            output.write_text(rendered + "\n", encoding="utf-8")
            print(f"Report written to {_relativize(output)} ({report.metadata.completion_status})")
        else:
            print(rendered)
    elif args.command == "serve":  # pragma: no cover - integration path
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _select_detectors(args: argparse.Namespace, config: ScannerConfig) -> List[Detector]:
    enabled: Optional[List[str]] = _split_names(args.detectors) or config.detectors or None
    detectors = discover_detectors(enabled)
    if args.check_outdated:
        detectors = [
            DependencyDetector(version_lookup=NpmRegistryLookup())
            if detector.name == "dependency"
            else detector
            for detector in detectors
        ]
    return detectors


def _split_names(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [name.strip() for name in raw.split(",") if name.strip()]


async def _analyze(
    orchestrator: ScannerOrchestrator,
    context: RepositoryContext,
    args: argparse.Namespace,
) -> AnalysisReport:
    # Only a shared Redis cache can serve hits across separate CLI runs.
    if args.no_cache or not args.redis_url:
        return await orchestrator.analyze_repository(
            context,
            overall_timeout_ms=args.timeout_ms,
            detector_timeout_ms=args.detector_timeout_ms,
        )

    cache = RedisReportCache.from_url(args.redis_url)
    cached = CachedScannerOrchestrator(orchestrator, cache, GitCommitResolver(args.path))
    try:
        return await cached.analyze_repository(
            context,
            overall_timeout_ms=args.timeout_ms,
            detector_timeout_ms=args.detector_timeout_ms,
        )
    finally:
        await cache.close()


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
