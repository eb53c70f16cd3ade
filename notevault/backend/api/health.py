"""
Health Check Endpoints.

Endpoints:
- /health: Liveness check (process running)
- /health/ready: Readiness check (database reachable; Redis and sweeper state reported)
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

import redis.asyncio as redis
from fastapi import APIRouter, HTTPException, Request
from sqlalchemy import text

from notevault.backend.core.config import get_redis_url
from notevault.backend.core.database import get_session_factory
from notevault.backend.core.logging import get_logger
from notevault.backend.core.utils import utc_now

router = APIRouter()
logger = get_logger(__name__)

READY_TIMEOUT_SECONDS = 5.0


async def check_database() -> dict[str, Any]:
    """
    Check database connectivity.

    Returns:
        Dict with status, latency, and optional error message
    """
    try:
        start = utc_now()
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        latency_ms = int((utc_now() - start).total_seconds() * 1000)
        return {"status": "healthy", "latency_ms": latency_ms}
    except Exception as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}


async def check_redis() -> dict[str, Any]:
    """
    Check connectivity to the Redis instance behind the taskiq broker.

    Returns:
        Dict with status, latency, and optional error message
    """
    try:
        start = utc_now()
        client = redis.from_url(get_redis_url())
        try:
            await client.ping()
        finally:
            await client.aclose()
        latency_ms = int((utc_now() - start).total_seconds() * 1000)
        return {"status": "healthy", "latency_ms": latency_ms}
    except Exception as e:
        logger.warning("Redis health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}


def check_sweeper(request: Request) -> dict[str, Any]:
    """Report whether the in-process expiry sweeper is running."""
    sweeper = getattr(request.app.state, "sweeper", None)
    if sweeper is None:
        return {"status": "disabled"}
    return {"status": "running" if sweeper.running else "stopped"}


async def _with_timeout(check: Coroutine[Any, Any, dict[str, Any]]) -> dict[str, Any]:
    try:
        async with asyncio.timeout(READY_TIMEOUT_SECONDS):
            return await check
    except TimeoutError:
        return {"status": "unhealthy", "error": "timed out"}


@router.get("/health")
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    Returns 200 if the process is running. No dependency checks.
    """
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check(request: Request) -> dict[str, Any]:
    """
    Readiness check.

    Returns 503 if the database is unreachable. Redis only carries the
    scheduled sweep and a stopped sweeper only delays cleanup, since reads
    still expire notes lazily, so both are reported without failing readiness.
    """
    db_result = await _with_timeout(check_database())
    redis_result = await _with_timeout(check_redis())

    checks = {
        "database": db_result,
        "redis": redis_result,
        "sweeper": check_sweeper(request),
    }

    if db_result["status"] == "unhealthy":
        logger.warning("Readiness check failed", extra={"checks": checks})
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "checks": checks,
                "timestamp": utc_now().isoformat(),
            },
        )

    return {
        "status": "healthy",
        "checks": checks,
        "timestamp": utc_now().isoformat(),
    }
