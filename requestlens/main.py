"""
FastAPI application factory.

The API is a thin driver over the report engine: it resolves the fact table
once (see requestlens.services.get_fact_table), runs reports on request and
maps engine errors onto HTTP status codes:

    UnknownReportError -> 404
    AnalyticsError     -> 422 (undefined score, zero denominator, missing field)
    StorageError       -> 503
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from requestlens import __version__
from requestlens.config import get_settings
from requestlens.engine.errors import AnalyticsError, UnknownReportError
from requestlens.routers import reports, system
from requestlens.storage import StorageError
from requestlens.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    With a configured CSV export the fact table is built at startup, so the
    first report request does not pay for the bulk read and normalization.
    """
    settings = get_settings()
    logger.info(
        "application_startup",
        version=app.version,
        db_path=settings.db_path,
        raw_table=settings.raw_table,
        dev_mode=settings.dev_mode,
    )

    if settings.data_csv_path and not settings.testing:
        from requestlens.services import get_fact_table

        table = get_fact_table()
        logger.info("fact_table_warmed", records=len(table), source=settings.data_csv_path)

    yield

    logger.info("application_shutdown")


def _error_response(request: Request, status_code: int, error: str) -> JSONResponse:
    request_id = structlog.contextvars.get_contextvars().get("request_id")
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "request_id": request_id},
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(UnknownReportError)
    async def unknown_report_handler(request: Request, exc: UnknownReportError):
        logger.warning("unknown_report", path=request.url.path, error=exc.message)
        return _error_response(request, 404, exc.message)

    @app.exception_handler(AnalyticsError)
    async def analytics_error_handler(request: Request, exc: AnalyticsError):
        logger.error(
            "report_unprocessable",
            path=request.url.path,
            error_type=type(exc).__name__,
            context=exc.context,
        )
        return _error_response(request, 422, str(exc))

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("storage_unavailable", path=request.url.path, error=str(exc))
        return _error_response(request, 503, "Request store unavailable")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    settings = get_settings()

    app = FastAPI(
        title="RequestLens API",
        description="Operational analytics over municipal 311 service requests",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    @app.middleware("http")
    async def request_tracing_middleware(request: Request, call_next):
        """Bind a request ID to the log context and time the request."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                exc_info=True,
            )
            response = _error_response(request, 500, "Internal server error")

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            query=str(request.query_params) or None,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response

    _register_error_handlers(app)

    @app.get("/health", tags=["System"])
    async def health_check():
        """Liveness probe."""
        return {"status": "healthy", "version": app.version}

    app.include_router(reports.router, prefix="/api/v1/reports", tags=["Reports"])
    app.include_router(system.router, prefix="/api/v1/system", tags=["System"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "requestlens.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
