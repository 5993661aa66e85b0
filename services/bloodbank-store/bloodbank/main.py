from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time
import structlog
from contextlib import asynccontextmanager

from .core.config import settings
from .core.exceptions import (
    StoreError,
    ValidationError,
    InvalidIdentifierError,
    DuplicateRecordError,
    PersistenceFailure,
    ConnectivityFailure
)
from .routers import health
from .services.facade import BloodBankStore
from .utils.monitoring import setup_prometheus_metrics, track_store_error

# Configure structured logging
logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

ERROR_STATUS_CODES = {
    ValidationError: 400,
    InvalidIdentifierError: 400,
    DuplicateRecordError: 409,
    PersistenceFailure: 500,
    ConnectivityFailure: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Blood Bank Store Service", version=settings.APP_VERSION)

    if settings.ENABLE_METRICS:
        setup_prometheus_metrics()

    store = BloodBankStore()
    await store.connect()
    app.state.store = store

    logger.info("Service startup completed", backend=store.backend.name)

    yield

    # Shutdown
    logger.info("Shutting down Blood Bank Store Service")
    await store.disconnect()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Persistence service for blood bank management",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    start_time = time.time()

    logger.info(
        "Request started",
        method=request.method,
        url=str(request.url),
        client=request.client.host if request.client else None
    )

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time=process_time
    )
    response.headers["X-Process-Time"] = str(process_time)

    return response


@app.exception_handler(StoreError)
async def store_exception_handler(request: Request, exc: StoreError):
    """Map store errors onto client and server error responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    track_store_error(getattr(exc, "collection", "unknown"), type(exc).__name__)

    logger.error(
        "Store error",
        method=request.method,
        url=str(request.url),
        status_code=status_code,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": str(exc),
            "field": getattr(exc, "field", None),
            "status_code": status_code,
            "timestamp": time.time()
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    logger.error(
        "HTTP exception",
        method=request.method,
        url=str(request.url),
        status_code=exc.status_code,
        detail=exc.detail
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "status_code": exc.status_code,
            "timestamp": time.time()
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(
        "Unhandled exception",
        method=request.method,
        url=str(request.url),
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "status_code": 500,
            "timestamp": time.time()
        }
    )


# Include routers
app.include_router(health.router, prefix=settings.API_V1_STR)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with service information."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": f"{settings.API_V1_STR}/health",
        "timestamp": time.time()
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bloodbank.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
