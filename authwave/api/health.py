"""Health check endpoints"""
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authwave import __version__
from authwave.config import settings
from authwave.database import get_db
from authwave.models.project import Project
from authwave.models.user import User
from authwave.utils.timeutils import utcnow

router = APIRouter(prefix="/health", tags=["health"])

# Track startup time
STARTUP_TIME = time.time()


@router.get("")
def health_check():
    """
    Basic health check endpoint

    Returns 200 if service is running
    """
    return {
        "status": "healthy",
        "service": "AuthWave",
        "version": __version__,
        "timestamp": utcnow().isoformat()
    }


@router.get("/ready")
def readiness_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Readiness check - verifies the database is reachable

    Returns 200 if ready to serve traffic, 503 if not ready
    """
    checks = {
        "database": False,
        "database_latency_ms": None
    }

    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        checks["database"] = True
        checks["database_latency_ms"] = round(latency_ms, 2)

        if latency_ms > 1000:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "degraded", "checks": checks, "message": "Database latency is high"},
            )

    except SQLAlchemyError as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "checks": checks, "message": f"Database check failed: {str(e)}"},
        )

    return {
        "status": "ready",
        "checks": checks,
        "timestamp": utcnow().isoformat()
    }


@router.get("/live")
def liveness_check():
    """
    Liveness check - verifies service is alive

    Used by Kubernetes liveness probe
    """
    return {
        "status": "alive",
        "uptime_seconds": round(time.time() - STARTUP_TIME, 2),
        "timestamp": utcnow().isoformat()
    }


@router.get("/stats")
def health_stats(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    System statistics

    Returns project and user counts plus database latency
    """
    try:
        total_projects = db.query(Project).count()
        total_users = db.query(User).count()

        db_start = time.time()
        db.execute(text("SELECT 1"))
        db_latency_ms = (time.time() - db_start) * 1000

        return {
            "status": "healthy",
            "projects": {"total": total_projects},
            "users": {"total": total_users},
            "database": {
                "connected": True,
                "latency_ms": round(db_latency_ms, 2)
            },
            "system": {
                "uptime_seconds": round(time.time() - STARTUP_TIME, 2),
                "environment": settings.ENVIRONMENT
            },
            "timestamp": utcnow().isoformat()
        }

    except SQLAlchemyError as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "message": str(e), "timestamp": utcnow().isoformat()},
        )
