"""Upload Service - FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.upload.app.api.health import router as health_router
from services.upload.app.api.routes import router as upload_router
from services.upload.app.config import get_settings
from services.upload.app.core.errors import ResponseError
from services.upload.app.db.models import Base
from services.upload.app.dependencies import get_gcs_client, get_s3_client
from services.upload.app.middleware.correlation import CorrelationMiddleware
from services.upload.app.middleware.logging import RequestLoggingMiddleware, get_client_ip
from services.upload.app.tasks.refresher import SignedUrlRefresher
from shared.schemas.api_responses import ErrorResponse
from shared.utils.db import close_db, create_tables, init_db
from shared.utils.logging import configure_logging, get_correlation_id, get_logger
from shared.utils.metrics import MetricsMiddleware, metrics_endpoint

settings = get_settings()

# Configure logging
configure_logging(
    service_name=settings.service_name,
    log_level=settings.log_level,
    json_format=settings.log_json,
    environment=settings.environment,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("starting_service", service=settings.service_name)
    init_db(
        database_url=settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        echo=settings.db_echo,
    )
    if settings.db_create_tables:
        await create_tables(Base)
    logger.info("database_initialized")

    refresher = None
    if settings.signed_url_refresh_enabled:
        refresher = SignedUrlRefresher(settings, get_s3_client(), get_gcs_client())
        refresher.start()

    yield

    # Shutdown
    logger.info("shutting_down_service")
    if refresher is not None:
        await refresher.stop()
    await close_db()
    logger.info("service_shutdown_complete")


app = FastAPI(
    title="Upload Service",
    description="File uploads to S3 or Google Cloud Storage with signed download URLs",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware (all settings from environment config)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Middleware added last runs first: correlation, then logging, then metrics
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationMiddleware)


@app.exception_handler(ResponseError)
async def response_error_handler(request: Request, exc: ResponseError):
    """Render raised HTTP errors in the standard error envelope."""
    if exc.status_code >= 500:
        logger.error("request_error", status_code=exc.status_code, message=exc.message, path=request.url.path)

    error_response = ErrorResponse(
        code=exc.status_code,
        message=exc.message,
        errors=exc.errors,
        correlation_id=get_correlation_id() or None,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.exception(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        client_ip=get_client_ip(request),
    )

    error_response = ErrorResponse(
        code=500,
        message="an internal error occurred",
        correlation_id=get_correlation_id() or None,
    )
    return JSONResponse(
        status_code=500,
        content=error_response.model_dump(exclude_none=True),
    )


# Include routes
app.include_router(health_router)
app.include_router(upload_router, prefix=settings.api_prefix)

# Add metrics endpoint
app.add_route("/metrics", metrics_endpoint)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.service_name,
        "version": "0.1.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.upload.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
