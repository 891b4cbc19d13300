"""Commit SHA resolution for cache keys."""

from __future__ import annotations

import asyncio
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol

import httpx

from .logging import get_logger

logger = get_logger("commits")


class CommitResolutionError(RuntimeError):
    """Raised when the current commit of a repository cannot be determined."""


class CommitResolver(Protocol):
    async def resolve(self, owner: str, repo: str, branch: str) -> str:
        ...


class GitHubCommitResolver:
    """Looks up the head commit of a branch through the GitHub REST API."""

    def __init__(
        self,
        *,
        api_url: str = "https://api.github.com",
        token: Optional[str] = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._token = token
        self._timeout = httpx.Timeout(timeout)
        self._transport = transport

    async def resolve(self, owner: str, repo: str, branch: str) -> str:
        headers = {"Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        url = f"{self._api_url}/repos/{owner}/{repo}/branches/{branch}"
        async with httpx.AsyncClient(
            timeout=self._timeout, headers=headers, transport=self._transport
        ) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
                payload = response.json()
            except (httpx.RequestError, httpx.HTTPStatusError, ValueError) as exc:
                raise CommitResolutionError(
                    f"Failed to fetch {owner}/{repo}@{branch}: {exc}"
                ) from exc

        sha = payload.get("commit", {}).get("sha") if isinstance(payload, dict) else None
        if not isinstance(sha, str) or not sha:
            raise CommitResolutionError(
                f"No commit SHA in branch response for {owner}/{repo}"
            )
        return sha


class GitCommitResolver:
    """Reads the checked-out commit of a local repository with ``git rev-parse``."""

    def __init__(self, repo_path: Path | str, runner: Callable[..., str] | None = None) -> None:
        self._repo_path = Path(repo_path)
        self._runner = runner or _default_runner

    async def resolve(self, owner: str, repo: str, branch: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.resolve_sync)

    def resolve_sync(self) -> str:
        if not (self._repo_path / ".git").exists():
            raise CommitResolutionError(f"{self._repo_path} is not a Git repository")
        try:
            output = self._runner(["git", "rev-parse", "HEAD"], cwd=self._repo_path)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise CommitResolutionError(f"git rev-parse failed: {exc}") from exc
        sha = output.strip()
        if not sha:
            raise CommitResolutionError("git rev-parse returned no commit")
        return sha


def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
    completed = subprocess.run(
        list(args),
        cwd=str(cwd),
        check=True,
        text=True,
        capture_output=True,
    )
    return completed.stdout


__all__ = [
    "CommitResolutionError",
    "CommitResolver",
    "GitCommitResolver",
    "GitHubCommitResolver",
]
