"""
Health check endpoints.
"""

from datetime import datetime, timezone
from typing import Dict, Tuple

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import redis.asyncio as redis
from sqlalchemy import func, select

from config import settings
from models.usage_quota import UsageQuota
from services.llm import get_text_generator

router = APIRouter()


async def _database_status() -> Tuple[str, int]:
    """Reachability plus the number of seeded tier policies."""
    from database import engine

    try:
        async with engine.connect() as conn:
            tiers = (await conn.execute(select(func.count()).select_from(UsageQuota.__table__))).scalar()
    except Exception as e:
        return f"down: {str(e)}", 0
    return "up", int(tiers or 0)


async def _rate_limit_store_status() -> str:
    if settings.RATE_LIMIT_BACKEND != "redis":
        return "in-process"
    try:
        r = redis.from_url(settings.REDIS_URL)
        try:
            await r.ping()
        finally:
            await r.aclose()
    except Exception as e:
        return f"down: {str(e)}"
    return "up"


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    A dead Redis only degrades the service: rate limiting keeps counting
    per process. No tier policies means every generation will be denied.
    """
    database, policy_tiers = await _database_status()
    rate_limit_store = await _rate_limit_store_status()

    checks: Dict[str, object] = {
        "api": "up",
        "database": database,
        "quota_policies": policy_tiers,
        "rate_limit_store": rate_limit_store,
        "openai_api_key": "configured" if settings.OPENAI_API_KEY else "missing",
    }
    healthy = database == "up" and policy_tiers > 0 and rate_limit_store in ("up", "in-process")
    return {
        "status": "healthy" if healthy else "degraded",
        **checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes-style readiness probe."""
    missing = []
    if not get_text_generator().configured:
        missing.append("OPENAI_API_KEY")

    if missing:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "missing": missing},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
