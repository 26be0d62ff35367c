from __future__ import annotations

from datetime import datetime, timezone

import structlog

from drc_loyalty.db.repo.campaigns_repo import CampaignsRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.points.time import kinshasa_local_date
from drc_loyalty.workers.asyncio_runner import run_async_job
from drc_loyalty.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_campaign_status_rollover_async() -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        ended_count = await CampaignsRepo.end_past_campaigns(
            session,
            today=kinshasa_local_date(now_utc),
            now_utc=now_utc,
        )

    result = {"ended_campaigns": ended_count}
    logger.info("campaign_status_rollover_finished", **result)
    return result


@celery_app.task(name="drc_loyalty.workers.tasks.campaign_maintenance.run_campaign_status_rollover")
def run_campaign_status_rollover() -> dict[str, int]:
    return run_async_job(run_campaign_status_rollover_async())


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "campaign-status-rollover-every-10-minutes": {
            "task": "drc_loyalty.workers.tasks.campaign_maintenance.run_campaign_status_rollover",
            "schedule": 600.0,
            "options": {"queue": "q_normal"},
        },
    }
)
