"""
Online Photo Editor - Main Application

FastAPI application with:
- API versioning (/api/v1/)
- Structured logging with structlog and request-ID correlation
- Prometheus metrics
- Global exception handling
- Storage abstraction and an SQLModel image registry
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.database import create_db_and_tables, dispose_engine
from src.core.logging import setup_logging, get_logger, LogContext
from src.core.exceptions import register_exception_handlers
from src.core.metrics import set_app_info, http_requests_total, http_request_duration_seconds
from src.api.v1 import api_v1_router
from src.api.dependencies import get_pipeline_runner


# =============================================================================
# Initialize Logging
# =============================================================================
setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=settings.LOG_FORMAT_JSON
)
logger = get_logger(__name__)


# =============================================================================
# Lifespan Handler
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - startup and shutdown."""
    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )

    await create_db_and_tables()
    logger.info("database_initialized")

    set_app_info(
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )

    logger.info("application_ready")

    yield

    logger.info("application_shutting_down")
    await dispose_engine()
    logger.info("application_shutdown_complete")


# =============================================================================
# Create FastAPI Application
# =============================================================================
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Online photo editor with a linear image-action pipeline.

    - **Upload**: register an original image under a generated name
    - **Process**: apply up to five actions (crop, resize, convert) in order
    - **Observability**: Structured logging, Prometheus metrics

    ## API Versioning

    All endpoints are versioned under `/api/v1/`

    ## Actions

    1. **crop** - `{"x", "y", "width", "height"}`
    2. **resize** - `{"width"?, "height"?}` or `{"scale"}`
    3. **convert** - `{"format"}`, e.g. `png`, `jpeg`, `webp`
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# =============================================================================
# Middleware
# =============================================================================

# CORS
cors_origins = settings.CORS_ORIGINS.split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    """Bind X-Request-ID (incoming or generated) to the logging context."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    # Shared through the scope with the server-error handler
    request.state.request_id = request_id

    with LogContext(request_id=request_id):
        response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    return response


# Request timing middleware
@app.middleware("http")
async def add_request_timing(request: Request, call_next):
    """Track request timing for metrics."""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    # Route templates keep image names and stray paths out of metric labels
    route = request.scope.get("route")
    endpoint = getattr(route, "path", "unmatched")

    http_request_duration_seconds.labels(
        method=request.method,
        endpoint=endpoint
    ).observe(duration)

    http_requests_total.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code
    ).inc()

    response.headers["X-Process-Time"] = str(duration)

    return response


# =============================================================================
# Register Exception Handlers
# =============================================================================
register_exception_handlers(app)


# =============================================================================
# Include API Routers
# =============================================================================
app.include_router(api_v1_router)


# =============================================================================
# Static Files
# =============================================================================

# Serve uploaded and processed images at the URLs storage hands out
app.mount(
    settings.STORAGE_URL_PREFIX,
    StaticFiles(directory=settings.LOCAL_STORAGE_PATH),
    name="storage"
)


# =============================================================================
# Root Endpoints
# =============================================================================

@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/api/docs",
        "api_v1": "/api/v1",
        "metrics": "/api/v1/metrics",
        "actions": get_pipeline_runner().dispatcher.kinds,
        "max_actions": settings.MAX_ACTIONS
    }


@app.get("/health", tags=["health"])
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


@app.get("/ready", tags=["health"])
async def ready():
    """Readiness check - verifies the database is reachable."""
    checks = {"database": False}

    try:
        from src.core.database import engine
        from sqlalchemy import text
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.warning("readiness_check_failed", check="database", error=str(e))

    all_ready = all(checks.values())

    return JSONResponse(
        status_code=200 if all_ready else 503,
        content={
            "ready": all_ready,
            "checks": checks
        }
    )


# =============================================================================
# Development Server
# =============================================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
