import logging
from functools import lru_cache

from celery.signals import worker_ready

from app.core.config import get_settings
from app.services.backup_engine import BackupJobEngine
from app.services.job_store import BackupJobStore
from app.services.scheduler import BackupJobRunner, run_in_thread, run_inline
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


def _enqueue_on_worker(runner: BackupJobRunner) -> None:
    # The loop runs inside the worker, under that process's own gate.
    runner.state.release()
    process_backup_jobs.delay()


@lru_cache(maxsize=1)
def get_runner() -> BackupJobRunner:
    settings = get_settings()
    store = BackupJobStore()
    engine = BackupJobEngine(store, settings=settings)
    runner = BackupJobRunner(store, engine, dispatch=run_in_thread)
    if settings.runner_mode == "inline":
        runner.dispatch = run_inline
    elif settings.runner_mode == "celery":
        runner.dispatch = lambda _work: _enqueue_on_worker(runner)
    return runner


@celery_app.task(name="app.workers.tasks.process_backup_jobs")
def process_backup_jobs() -> int:
    runner = get_runner()
    if not runner.state.try_acquire():
        logger.info("backup_runner_already_processing")
        return 0
    try:
        processed = runner.process_jobs()
    finally:
        runner.state.release()
        runner.reporter.idle()
    runner.trigger_pending()
    return processed


@worker_ready.connect
def resume_unfinished_jobs(**_: object) -> None:
    if get_settings().resume_on_startup:
        process_backup_jobs.delay()
