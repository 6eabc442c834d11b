"""FastAPI application entrypoint for docsite service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, Optional

try:  # pragma: no cover - optional dependency
    from fastapi import Depends, FastAPI
    from fastapi.responses import JSONResponse
    from pydantic import BaseModel

    _FASTAPI_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - service mode optional
    FastAPI = None  # type: ignore[assignment]
    Depends = None  # type: ignore[assignment]
    JSONResponse = None  # type: ignore[assignment]
    BaseModel = object  # type: ignore[assignment]
    _FASTAPI_AVAILABLE = False

from ..orchestrator import BuildOptions, BuildResult, Orchestrator


class RunRequest(BaseModel):
    path: str
    report_path: Optional[str] = None
    case_insensitive: Optional[bool] = None
    timeout: Optional[float] = None
    workers: Optional[int] = None
    use_cache: bool = True

    def to_options(self, output_dir: Optional[str] = None) -> BuildOptions:
        return BuildOptions(
            output_dir=Path(output_dir) if output_dir else None,
            report_path=Path(self.report_path) if self.report_path else None,
            case_insensitive=self.case_insensitive,
            timeout=self.timeout,
            workers=self.workers,
            use_cache=self.use_cache,
        )


class BuildRequest(RunRequest):
    output_dir: Optional[str] = None


class RunResponse(BaseModel):
    exit_code: int
    output_dir: Optional[str] = None
    report_path: Optional[str] = None
    report: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _to_response(result: BuildResult) -> RunResponse:
    return RunResponse(
        exit_code=result.exit_code,
        output_dir=str(result.output_dir) if result.written and result.output_dir else None,
        report_path=str(result.report_path) if result.report_path else None,
        report=result.report().to_dict(),
    )


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing docsite operations."""

    if not _FASTAPI_AVAILABLE:  # pragma: no cover - validated via unit tests
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install docsite[service]`."
        )

    app = FastAPI(title="docsite Service", version="1.0.0")

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    async def _in_executor(func: Callable[[], BuildResult]) -> BuildResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/check", response_model=RunResponse)
    async def check_docs(
        payload: RunRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> RunResponse:
        def _run_check() -> BuildResult:
            return orchestrator.run_check(payload.path, payload.to_options())

        result = await _in_executor(_run_check)
        return _to_response(result)

    @app.post("/build", response_model=RunResponse)
    async def build_site(
        payload: BuildRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> RunResponse:
        def _run_build() -> BuildResult:
            return orchestrator.run_build(payload.path, payload.to_options(payload.output_dir))

        result = await _in_executor(_run_build)
        return _to_response(result)

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(
        _: Any, exc: RuntimeError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    if not _FASTAPI_AVAILABLE:
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install docsite[service]`."
        )

    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install uvicorn`."
        ) from exc

    app = create_app()
    uvicorn.run(app, host=host, port=port)
