"""Liveness, readiness and version probes."""

from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.config import get_settings
from validatex.database import get_session
from validatex.redis_client import get_redis

router = APIRouter()


async def _probe(check: Callable[[], Awaitable[object]]) -> str:
    try:
        await check()
    except Exception as exc:  # noqa: BLE001
        return f"error: {exc}"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    response: Response,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe.

    The ledger database must answer or the instance is taken out of rotation
    (503). Redis only backs rate limiting, so losing it degrades the instance
    without failing the probe.
    """
    checks = {
        "database": await _probe(lambda: db.execute(text("SELECT 1"))),
        "redis": await _probe(lambda: get_redis().ping()),
    }
    if checks["database"] != "ok":
        response.status_code = 503
        status = "unavailable"
    elif checks["redis"] != "ok":
        status = "degraded"
    else:
        status = "ready"
    return {"status": status, "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "currency": settings.currency,
    }
