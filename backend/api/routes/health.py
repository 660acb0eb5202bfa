"""Health and readiness endpoints. Only ``/health/services`` needs a login."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from api.routes.auth import get_current_user
from core.errors import ForbiddenError
from infrastructure.config import get_settings
from infrastructure.database import get_db
from infrastructure.database.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()

DB_TIMEOUT_SECONDS = 5.0
REDIS_TIMEOUT_SECONDS = 2.0


def _now() -> str:
    return datetime.now(UTC).isoformat()


async def _database_ok(db: AsyncSession) -> bool:
    try:
        await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=DB_TIMEOUT_SECONDS)
        return True
    except Exception as e:
        logger.error("Database health check failed: %s", type(e).__name__)
        return False


async def _ping_redis() -> None:
    import redis.asyncio as aioredis

    client = aioredis.from_url(settings.redis_url)
    try:
        await asyncio.wait_for(client.ping(), timeout=REDIS_TIMEOUT_SECONDS)
    finally:
        await client.aclose()


@router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": _now(),
    }


@router.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_db)):
    connected = await _database_ok(db)
    return {
        "status": "healthy" if connected else "degraded",
        "database": "connected" if connected else "unavailable",
        "timestamp": _now(),
    }


@router.get("/health/redis")
async def health_redis():
    """Rate limiter storage. ``not_configured`` means limits are per process."""
    if not settings.redis_url:
        return {"status": "not_configured", "service": "redis"}
    try:
        await _ping_redis()
    except asyncio.TimeoutError:
        raise HTTPException(status_code=503, detail="Redis timeout")
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Redis unavailable: {type(e).__name__}")
    return {"status": "healthy", "service": "redis"}


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness probe. Redis never blocks readiness; the limiter falls back to memory."""
    redis_state = "not_configured"
    if settings.redis_url:
        try:
            await _ping_redis()
            redis_state = "ok"
        except Exception:
            redis_state = "degraded"

    db_ok = await _database_ok(db)
    return {
        "ready": db_ok,
        "database": "ok" if db_ok else "unavailable",
        "redis": redis_state,
    }


@router.get("/health/live")
async def liveness_check():
    return {"alive": True}


@router.get("/health/services")
async def services_check(current_user: User = Depends(get_current_user)):
    """Configuration of outside services. Admin only."""
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")

    services = {
        "resend": {
            "configured": email_service.is_configured,
            "from_email": settings.resend_from_email,
        },
        "sentry": {"configured": bool(settings.sentry_dsn)},
    }
    return {
        "status": "healthy" if services["resend"]["configured"] else "degraded",
        "services": services,
        "timestamp": _now(),
    }
