from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from drc_loyalty.core.config import get_settings
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.workers.celery_app import celery_app

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)


def _passed(**extra: Any) -> dict[str, Any]:
    return {"status": "ok", **extra}


def _failed(error_code: str) -> dict[str, str]:
    return {"status": "failed", "error": error_code}


async def _check_database() -> dict[str, Any]:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("health_check_failed", check="database", error_type=type(exc).__name__)
        return _failed("database_unavailable")
    return _passed()


async def _check_redis() -> dict[str, Any]:
    client = Redis.from_url(get_settings().redis_url)
    try:
        if await client.ping() is not True:
            return _failed("redis_unexpected_reply")
    except Exception as exc:
        logger.warning("health_check_failed", check="redis", error_type=type(exc).__name__)
        return _failed("redis_unavailable")
    finally:
        await client.aclose()
    return _passed()


def _check_receipt_storage_sync() -> dict[str, Any]:
    image_dir = Path(get_settings().receipt_image_dir)
    if image_dir.exists() and not os.access(image_dir, os.W_OK):
        return _failed("receipt_storage_not_writable")
    return _passed()


async def _check_receipt_storage() -> dict[str, Any]:
    return await asyncio.to_thread(_check_receipt_storage_sync)


def _check_celery_worker_sync() -> dict[str, Any]:
    try:
        replies = celery_app.control.inspect(timeout=1.0).ping() or {}
    except Exception as exc:
        logger.warning("health_check_failed", check="celery", error_type=type(exc).__name__)
        return _failed("celery_unavailable")
    if not replies:
        return _failed("celery_no_workers")
    return _passed(workers=len(replies))


async def _check_celery_worker() -> dict[str, Any]:
    return await asyncio.to_thread(_check_celery_worker_sync)


def _respond(checks: dict[str, dict[str, Any]], *, ok: str, not_ok: str) -> JSONResponse:
    healthy = all(check.get("status") == "ok" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok if healthy else not_ok, "checks": checks},
    )


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health")
async def health() -> JSONResponse:
    database, redis, storage, celery = await asyncio.gather(
        _check_database(),
        _check_redis(),
        _check_receipt_storage(),
        _check_celery_worker(),
    )
    checks = {"database": database, "redis": redis, "storage": storage, "celery": celery}
    return _respond(checks, ok="ok", not_ok="degraded")


@router.get("/ready")
async def ready() -> JSONResponse:
    """Readiness covers what receipt submission needs; workers only affect /health."""
    database, redis = await asyncio.gather(_check_database(), _check_redis())
    return _respond({"database": database, "redis": redis}, ok="ready", not_ok="not_ready")
