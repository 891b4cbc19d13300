"""Build repository snapshots from a local checkout."""

from __future__ import annotations

import hashlib
import os
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .config import ScannerConfig
from .logging import get_logger
from .models import FileNode, FileTree, RepositoryContext, RepositoryMetadata

logger = get_logger("snapshot")

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
    ".next",
    "dist",
    "build",
}

_EXCLUDED_FILES = {".DS_Store", "Thumbs.db"}

_BINARY_SUFFIXES = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".ico",
    ".pdf",
    ".zip",
    ".gz",
    ".tar",
    ".jar",
    ".so",
    ".dll",
    ".exe",
    ".woff",
    ".woff2",
}


class SnapshotError(RuntimeError):
    """Raised when a snapshot cannot be built from the given path."""


@dataclass
class IgnoreRule:
    """A single pattern from .gitignore or the configured exclude paths."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self.anchored or "/" in self.pattern:
            return fnmatchcase(rel_path, self.pattern)
        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def _build_ignore_rule(pattern: str) -> Optional[IgnoreRule]:
    pattern = pattern.strip()
    if not pattern or pattern.startswith("#"):
        return None
    negate = pattern.startswith("!")
    if negate:
        pattern = pattern[1:]
    directory_only = pattern.endswith("/")
    anchored = pattern.startswith("/")
    pattern = pattern.strip("/")
    if not pattern:
        return None
    return IgnoreRule(
        pattern=pattern, directory_only=directory_only, anchored=anchored, negate=negate
    )


def _load_ignore_rules(root: Path, extra_patterns: Sequence[str]) -> List[IgnoreRule]:
    patterns: List[str] = []
    gitignore = root / ".gitignore"
    if gitignore.exists():
        patterns.extend(gitignore.read_text(encoding="utf-8", errors="replace").splitlines())
    patterns.extend(extra_patterns)
    return [rule for rule in map(_build_ignore_rule, patterns) if rule is not None]


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def _walk(root: Path, rules: Sequence[IgnoreRule]) -> Iterator[Tuple[Path, bool]]:
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix() if current != root else ""

        kept = []
        for name in sorted(dirnames):
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if name in _EXCLUDED_DIRS or _should_ignore(rel_path, True, rules):
                continue
            kept.append(name)
            yield current / name, True
        dirnames[:] = kept

        for name in sorted(filenames):
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if name in _EXCLUDED_FILES or _should_ignore(rel_path, False, rules):
                continue
            yield current / name, False


def _hash_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _read_text(path: Path) -> Optional[str]:
    if path.suffix.lower() in _BINARY_SUFFIXES:
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError):
        return None


class SnapshotBuilder:
    """Walks a local directory and produces a :class:`RepositoryContext`.

    File contents are loaded for text files up to the configured size limit;
    larger or binary files appear in the tree only. Git metadata (branch and
    last commit time) is read when the directory is a Git checkout.
    """

    def __init__(
        self,
        config: ScannerConfig | None = None,
        runner: Callable[..., str] | None = None,
    ) -> None:
        self._config = config or ScannerConfig()
        self._runner = runner or _default_runner

    def build(
        self, path: str | Path, *, owner: str = "local", repo: str | None = None
    ) -> RepositoryContext:
        root = Path(path).expanduser().resolve()
        if not root.exists():
            raise SnapshotError(f"Repository path not found: {path}")
        if not root.is_dir():
            raise SnapshotError(f"Repository path is not a directory: {path}")

        rules = _load_ignore_rules(root, self._config.exclude_paths)
        max_bytes = self._config.max_file_size_bytes
        nodes: List[FileNode] = []
        contents: Dict[str, str] = {}
        total_size = 0
        latest_mtime = 0.0
        skipped = 0

        for entry, is_dir in _walk(root, rules):
            rel_path = entry.relative_to(root).as_posix()
            if is_dir:
                nodes.append(FileNode(path=rel_path, type="dir"))
                continue
            try:
                stat_result = entry.stat()
                sha = _hash_file(entry)
            except OSError as exc:
                # Dangling symlinks and unreadable files are left out of the snapshot.
                logger.debug("Skipping %s: %s", rel_path, exc)
                continue
            total_size += stat_result.st_size
            latest_mtime = max(latest_mtime, stat_result.st_mtime)
            nodes.append(
                FileNode(path=rel_path, type="file", size=stat_result.st_size, sha=sha)
            )
            if stat_result.st_size > max_bytes:
                skipped += 1
                continue
            text = _read_text(entry)
            if text is not None:
                contents[rel_path] = text

        if skipped:
            logger.debug(
                "Skipped contents of %d file(s) above %s MB", skipped, self._config.max_file_size_mb
            )

        file_count = sum(1 for node in nodes if node.type == "file")
        repo_name = repo or root.name
        branch, pushed_at = self._git_metadata(root)
        if pushed_at is None and latest_mtime:
            pushed_at = datetime.fromtimestamp(latest_mtime, tz=timezone.utc)

        metadata = RepositoryMetadata(
            owner=owner,
            name=repo_name,
            full_name=f"{owner}/{repo_name}",
            default_branch=branch or "main",
            updated_at=pushed_at,
            pushed_at=pushed_at,
            size=total_size // 1024,
        )
        logger.debug("Snapshot of %s: %d files, %d with contents", root, file_count, len(contents))
        return RepositoryContext(
            owner=owner,
            repo=repo_name,
            files=FileTree(files=nodes, total_files=file_count, total_size=total_size),
            contents=contents,
            metadata=metadata,
        )

    def _git_metadata(self, root: Path) -> Tuple[Optional[str], Optional[datetime]]:
        if not (root / ".git").exists():
            return None, None
        try:
            branch = self._runner(["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=root).strip()
            committed = self._runner(["git", "log", "-1", "--format=%cI"], cwd=root).strip()
        except (OSError, subprocess.CalledProcessError) as exc:
            logger.debug("Git metadata unavailable for %s: %s", root, exc)
            return None, None
        pushed_at = datetime.fromisoformat(committed) if committed else None
        return (branch if branch and branch != "HEAD" else None), pushed_at


def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
    completed = subprocess.run(
        list(args),
        cwd=str(cwd),
        check=True,
        text=True,
        capture_output=True,
    )
    return completed.stdout


__all__ = ["SnapshotBuilder", "SnapshotError"]
