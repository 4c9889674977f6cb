"""FastAPI application entrypoint for docpilot service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, List, Optional

try:  # pragma: no cover - optional dependency
    from fastapi import FastAPI, Query
    from fastapi.responses import JSONResponse
    from pydantic import BaseModel

    _FASTAPI_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - service mode optional
    FastAPI = None  # type: ignore[assignment]
    Query = None  # type: ignore[assignment]
    JSONResponse = None  # type: ignore[assignment]
    BaseModel = object  # type: ignore[assignment]
    _FASTAPI_AVAILABLE = False

from ..config import load_config
from ..errors import DocPilotError
from ..orchestrator import Orchestrator


class BuildRequest(BaseModel):
    path: str
    format: Optional[str] = None


class BuildResponse(BaseModel):
    output_path: str


class StatusResponse(BaseModel):
    name: str
    title: Optional[str] = None
    fragments: List[str] = []
    diagrams: int = 0
    images: int = 0


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator(path: str) -> Orchestrator:
    return Orchestrator(load_config(Path(path)))


async def _in_thread(func: Callable[[], Any]) -> Any:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:  # pragma: no cover - fallback path when not in async context
        return func()
    return await loop.run_in_executor(None, func)


def create_app(
    orchestrator_factory: Callable[[str], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing build and status operations."""

    if not _FASTAPI_AVAILABLE:  # pragma: no cover - validated via unit tests
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install docpilot[service]`."
        )

    app = FastAPI(title="docpilot Service", version="0.1.0")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/status", response_model=StatusResponse)
    async def status(path: str = Query(...)) -> StatusResponse:
        orchestrator = orchestrator_factory(path)
        result = await _in_thread(orchestrator.run_status)
        return StatusResponse(
            name=result.config.name,
            title=result.metadata.title,
            fragments=[fragment.name for fragment in result.discovered.fragments],
            diagrams=len(result.discovered.diagram_files),
            images=len(result.discovered.image_files),
        )

    @app.post("/build", response_model=BuildResponse)
    async def build(payload: BuildRequest) -> BuildResponse:
        orchestrator = orchestrator_factory(payload.path)
        fmt = payload.format or orchestrator.config.default_format
        output = await _in_thread(lambda: orchestrator.run_build(fmt))
        return BuildResponse(output_path=str(output))

    @app.exception_handler(DocPilotError)
    async def docpilot_error_handler(
        _: Any, exc: DocPilotError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(
        _: Any, exc: ValueError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    if not _FASTAPI_AVAILABLE:
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install docpilot[service]`."
        )

    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install uvicorn`."
        ) from exc

    uvicorn.run(create_app(), host=host, port=port)
