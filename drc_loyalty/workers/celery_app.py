from celery import Celery

from drc_loyalty.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "drc_loyalty",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "drc_loyalty.workers.tasks.points_expiration",
        "drc_loyalty.workers.tasks.campaign_maintenance",
    ],
)

celery_app.conf.update(
    task_default_queue="q_normal",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="Africa/Kinshasa",
    enable_utc=True,
)


@celery_app.task(name="drc_loyalty.workers.celery_app.ping")
def ping() -> str:
    return "pong"
