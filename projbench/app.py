"""Project Benchmarking Service — FastAPI application factory."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from projbench.config import Settings, get_settings
from projbench.errors import BenchmarkServiceError
from projbench.middleware import configure_cors, configure_rate_limiting, lifespan, logging_middleware
from projbench.routers import benchmarks, health, system
from projbench.services.orchestrator import create_orchestrator

logger = structlog.get_logger()


def _error_body(error: str, message: str) -> dict:
    return {"success": False, "error": error, "message": message}


async def _service_error_handler(request: Request, exc: BenchmarkServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.error, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.error, exc.message))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(status_code=400, content=_error_body("Validation error", "; ".join(problems)))


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content=_error_body("Endpoint not found", f"No route for {request.method} {request.url.path}"),
        )
    return JSONResponse(status_code=exc.status_code, content=_error_body("Request failed", str(exc.detail)))


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Project benchmarking, trend analysis and improvement planning",
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Store settings and the orchestrator on app state
    app.state.settings = settings
    app.state.orchestrator = create_orchestrator(settings)
    app.state.background_jobs = None

    # Middleware
    app.middleware("http")(logging_middleware)
    configure_cors(app, settings)
    configure_rate_limiting(app, settings)

    # Error envelopes
    app.add_exception_handler(BenchmarkServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(benchmarks.router, prefix=settings.api_prefix)
    app.include_router(system.router, prefix=settings.api_prefix)

    return app


# Default app instance for uvicorn
app = create_app()
