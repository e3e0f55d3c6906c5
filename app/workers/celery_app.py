from celery import Celery

from app.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "backupnow",
    broker=settings.get_celery_broker_url(),
    backend=settings.get_celery_result_backend(),
    include=["app.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.celery_task_always_eager,
    # One backup at a time per worker process.
    worker_concurrency=1,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)
