"""Scriptable detector doubles for scheduler and orchestrator tests."""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

from reposcan.detectors.base import Detector
from reposcan.models import DetectionError, DetectionResult, RepositoryContext


class ScriptedDetector(Detector):
    """Detector whose delay, outcome and dependencies are set per test."""

    def __init__(
        self,
        name: str,
        *,
        depends_on: Sequence[str] = (),
        delay: float = 0.0,
        raises: Optional[BaseException] = None,
        fail_message: Optional[str] = None,
        returns: object = None,
        log: Optional[List[tuple]] = None,
    ) -> None:
        self.name = name
        self._depends_on = list(depends_on)
        self._delay = delay
        self._raises = raises
        self._fail_message = fail_message
        self._returns = returns
        self.log = log if log is not None else []
        self.calls = 0
        self.finished = False

    def get_dependencies(self) -> List[str]:
        return list(self._depends_on)

    async def detect(self, context: RepositoryContext) -> DetectionResult:
        self.calls += 1
        loop = asyncio.get_running_loop()
        self.log.append(("start", self.name, loop.time()))
        if self._delay:
            await asyncio.sleep(self._delay)
        self.log.append(("end", self.name, loop.time()))
        self.finished = True
        if self._raises is not None:
            raise self._raises
        if self._returns is not None:
            return self._returns  # type: ignore[return-value]
        if self._fail_message is not None:
            return DetectionResult(
                detector_name=self.name,
                success=False,
                error=DetectionError(code="SCRIPTED_FAILURE", message=self._fail_message),
            )
        return DetectionResult(detector_name=self.name, success=True)


def event_time(log: List[tuple], kind: str, name: str) -> float:
    return next(stamp for event, detector, stamp in log if event == kind and detector == name)


__all__ = ["ScriptedDetector", "event_time"]
