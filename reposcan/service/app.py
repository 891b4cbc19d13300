"""FastAPI application entrypoint for reposcan service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import ConfigError, load_config
from ..detectors import discover_detectors
from ..models import RepositoryContext
from ..orchestrator import ScannerOrchestrator
from ..serialization import report_to_dict
from ..snapshot import SnapshotBuilder, SnapshotError


class ScanRequest(BaseModel):
    path: str
    owner: str = "local"
    timeout_ms: Optional[int] = Field(default=None, gt=0)
    detector_timeout_ms: Optional[int] = Field(default=None, gt=0)


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> ScannerOrchestrator:
    config = load_config()
    return ScannerOrchestrator(discover_detectors(config.detectors or None), config=config)


def create_app(
    orchestrator_factory: Callable[[], ScannerOrchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing repository scans."""

    app = FastAPI(title="RepoScan Service", version="1.0.0")

    async def get_orchestrator() -> ScannerOrchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/scan")
    async def scan_repo(
        payload: ScanRequest,
        orchestrator: ScannerOrchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        builder = SnapshotBuilder(orchestrator.config)

        def _build() -> RepositoryContext:
            return builder.build(payload.path, owner=payload.owner)

        loop = asyncio.get_running_loop()
        context = await loop.run_in_executor(None, _build)
        # Partial reports are still successful responses.
        report = await orchestrator.analyze_repository(
            context,
            overall_timeout_ms=payload.timeout_ms,
            detector_timeout_ms=payload.detector_timeout_ms,
        )
        return report_to_dict(report)

    @app.exception_handler(SnapshotError)
    async def snapshot_error_handler(_: Any, exc: SnapshotError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    app = create_app()
    uvicorn.run(app, host=host, port=port)
