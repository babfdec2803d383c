"""FastAPI application entrypoint for solidgen service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

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

from ..builder import Builder, BuildReport
from ..config import ConfigError, load_config
from ..dart.parser import DartSyntaxError, GrammarUnavailableError
from ..transform.orchestrator import TransformOutcome, Transformer


class TransformRequest(BaseModel):
    source: str
    path: Optional[str] = None


class TransformResponse(BaseModel):
    source: str
    changed: bool
    members: List[Dict[str, Any]] = []


class BuildRequest(BaseModel):
    root: str
    format: bool = False


class BuildResponse(BaseModel):
    summary: str
    source: str
    output: str
    cancelled: bool = False
    files: List[Dict[str, Any]] = []


class HealthResponse(BaseModel):
    status: str


def _default_transformer() -> Transformer:
    return Transformer()


async def _in_executor(func: Callable[[], Any]) -> Any:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:  # pragma: no cover - fallback path when not in async context
        return func()
    return await loop.run_in_executor(None, func)


def create_app(
    transformer_factory: Callable[[], Transformer] = _default_transformer,
) -> FastAPI:
    """Create the FastAPI application exposing solidgen operations."""

    if not _FASTAPI_AVAILABLE:  # pragma: no cover - validated via unit tests
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install fastapi uvicorn`."
        )

    app = FastAPI(title="solidgen Service", version="0.1.0")

    async def get_transformer() -> Transformer:
        return transformer_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/transform", response_model=TransformResponse)
    async def transform(
        payload: TransformRequest,
        transformer: Transformer = Depends(get_transformer),
    ) -> TransformResponse:
        def _run_transform() -> TransformOutcome:
            return transformer.transform(payload.source, payload.path)

        outcome = await _in_executor(_run_transform)
        return TransformResponse(
            source=outcome.source,
            changed=outcome.changed,
            members=[member.to_dict() for member in outcome.members],
        )

    @app.post("/build", response_model=BuildResponse)
    async def build(payload: BuildRequest) -> BuildResponse:
        def _run_build() -> BuildReport:
            root = Path(payload.root).expanduser().resolve()
            if not root.is_dir():
                raise FileNotFoundError(f"Project root not found: {payload.root}")
            config = load_config(root)
            config.format.enabled = payload.format
            return Builder(config).build()

        report = await _in_executor(_run_build)
        return BuildResponse(
            summary=report.summary(),
            source=str(report.source),
            output=str(report.output),
            cancelled=report.cancelled,
            files=[result.to_dict() for result in report.files],
        )

    @app.exception_handler(DartSyntaxError)
    async def syntax_error_handler(
        _: Any, exc: DartSyntaxError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(
        _: Any, exc: ConfigError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(GrammarUnavailableError)
    async def grammar_unavailable_handler(
        _: Any, exc: GrammarUnavailableError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    if not _FASTAPI_AVAILABLE:
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install fastapi uvicorn`."
        )

    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install uvicorn`."
        ) from exc

    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
