"""FastAPI application entry point"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from prometheus_fastapi_instrumentator import Instrumentator

from authwave import __version__
from authwave.api import admin, health, logs, projects, users
from authwave.config import settings
from authwave.database import SessionLocal
from authwave.middleware.rate_limit import limiter
from authwave.services import lifecycle
from authwave.services.errors import ApiError
from authwave.utils.logger import logger, setup_logging

# Setup logging
setup_logging(settings.LOG_LEVEL)


def purge_orphaned_projects() -> None:
    """Remove projects left behind by an admin deletion that did not finish"""
    db = SessionLocal()
    try:
        report = lifecycle.purge_orphaned_projects(db)
    except SQLAlchemyError:
        logger.error("Orphaned project sweep failed", extra={"action": "purge_orphaned_projects"}, exc_info=True)
        return
    finally:
        db.close()

    if not report.complete:
        logger.error(
            f"Orphaned project sweep left {len(report.failures)} project(s) behind",
            extra={"action": "purge_orphaned_projects"},
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    logger.info("AuthWave backend starting up", extra={
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "log_level": settings.LOG_LEVEL,
        "rate_limiting": settings.RATE_LIMIT_ENABLED,
        "monitoring": settings.METRICS_ENABLED
    })
    if settings.PURGE_ORPHANED_PROJECTS_ON_STARTUP:
        purge_orphaned_projects()
    yield
    # Shutdown
    logger.info("AuthWave backend shutting down")


# Create FastAPI app
app = FastAPI(
    title="AuthWave",
    description="Multi-tenant authentication backend: projects, users, sessions and security logs",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ===== Middleware Setup =====

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Monitoring middleware
if settings.METRICS_ENABLED:
    from authwave.middleware.monitoring import MonitoringMiddleware
    app.add_middleware(MonitoringMiddleware)

    # Prometheus metrics
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health", "/health/ready", "/health/live"],
        inprogress_name="authwave_requests_inprogress",
        inprogress_labels=True
    )
    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint=settings.METRICS_PATH, include_in_schema=False)

# Rate limiting (the limiter is a no-op when RATE_LIMIT_ENABLED is false)
app.state.limiter = limiter

# ===== Route Setup =====

# Include routers
app.include_router(health.router)
app.include_router(admin.router)
app.include_router(projects.router)
app.include_router(users.router)
app.include_router(logs.router)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "service": "AuthWave",
        "version": __version__,
        "status": "operational",
        "docs": "/docs",
        "health": "/health",
        "metrics": settings.METRICS_PATH if settings.METRICS_ENABLED else None
    }


# ===== Error Handlers =====

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    """Map service errors to their status code and error body"""
    if exc.status_code >= 500:
        logger.error(
            f"{exc.kind}: {exc.message}",
            extra={"path": request.url.path, "method": request.method, "action": "api_error"}
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies, query parameters or headers"""
    details = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "INVALID_FORMAT", "message": "Request validation failed", "details": details}
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors"""
    logger.warning(
        "Rate limit exceeded",
        extra={
            "path": request.url.path,
            "method": request.method,
            "client": request.client.host if request.client else "unknown"
        }
    )
    return JSONResponse(
        status_code=429,
        content={
            "error": "API_LIMIT_EXCEEDED",
            "message": "Too many requests. Please try again later.",
            "details": str(exc.detail)
        }
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Storage failures that escaped the service layer"""
    logger.error(
        f"Database error: {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "DATABASE_ERROR",
            "message": "The database is unavailable, please retry later",
            "details": None
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for uncaught errors"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method
        },
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "SERVER_ERROR",
            "message": "An unexpected error occurred. Please contact support.",
            "details": None
        }
    )
