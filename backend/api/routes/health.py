"""Health check endpoints."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.config import get_settings
from infrastructure.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check(request: Request):
    """Basic health check."""
    adapter = getattr(request.app.state, "dataforseo", None)
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "dataforseo_configured": bool(adapter and adapter.is_configured),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_db)):
    """Health check with database connectivity."""
    try:
        result = await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=5.0)
        result.scalar()
        db_status = "connected"
    except TimeoutError:
        logger.error("Health check DB timeout")
        db_status = "error: database timeout"
    except Exception as e:
        logger.error("Health check DB error: %s", str(e))
        db_status = "error: database check failed"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database": db_status,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/ready")
async def readiness_check(request: Request, db: AsyncSession = Depends(get_db)):
    """Readiness probe: the database answers and live fetches can be made."""
    db_ok = False
    try:
        await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=5.0)
        db_ok = True
    except Exception as e:
        logger.warning("Readiness DB check failed: %s", str(e))

    adapter = getattr(request.app.state, "dataforseo", None)
    upstream_ok = bool(adapter and adapter.is_configured)

    # Without a credential cache hits are still served, so only the database gates readiness
    return {
        "ready": db_ok,
        "database": "ok" if db_ok else "unavailable",
        "dataforseo": "configured" if upstream_ok else "missing credential",
    }


@router.get("/health/live")
async def liveness_check():
    """Liveness probe."""
    return {"alive": True}
