from __future__ import annotations

from datetime import datetime, timezone

import structlog
from celery.schedules import crontab

from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.points.constants import EXPIRATION_SWEEP_BATCH_SIZE
from drc_loyalty.economy.points.service import PointsService
from drc_loyalty.workers.asyncio_runner import run_async_job
from drc_loyalty.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_points_expiration_sweep_async(
    *,
    batch_size: int = EXPIRATION_SWEEP_BATCH_SIZE,
) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    totals = {
        "batches": 0,
        "examined": 0,
        "warned": 0,
        "expired": 0,
        "points_expired": 0,
    }
    after_user_id = 0
    while True:
        async with SessionLocal.begin() as session:
            batch = await PointsService.run_expiration_batch(
                session,
                now_utc=now_utc,
                after_user_id=after_user_id,
                batch_size=batch_size,
            )

        totals["batches"] += 1
        totals["examined"] += batch.examined
        totals["warned"] += batch.warned
        totals["expired"] += batch.expired
        totals["points_expired"] += batch.points_expired
        if batch.last_user_id is None or batch.examined < batch_size:
            break
        after_user_id = batch.last_user_id

    logger.info("points_expiration_sweep_finished", **totals)
    return totals


@celery_app.task(name="drc_loyalty.workers.tasks.points_expiration.run_points_expiration_sweep")
def run_points_expiration_sweep(batch_size: int = EXPIRATION_SWEEP_BATCH_SIZE) -> dict[str, int]:
    return run_async_job(run_points_expiration_sweep_async(batch_size=batch_size))


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "points-expiration-sweep-daily": {
            "task": "drc_loyalty.workers.tasks.points_expiration.run_points_expiration_sweep",
            "schedule": crontab(hour=0, minute=15),
            "options": {"queue": "q_normal"},
        },
    }
)
