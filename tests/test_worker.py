import uuid
from pathlib import Path

import pytest

from app.core.config import get_settings
from app.models.backup_job import JobState
from app.services.discovery import encode_selection
from app.services.remote import TargetDescriptor
from app.workers.celery_app import celery_app
from app.workers.tasks import get_runner, process_backup_jobs, resume_unfinished_jobs


@pytest.fixture()
def celery_runner(monkeypatch):
    monkeypatch.setenv("RUNNER_MODE", "celery")
    monkeypatch.setenv("RESUME_ON_STARTUP", "true")
    get_settings.cache_clear()
    get_runner.cache_clear()
    previous = celery_app.conf.task_always_eager
    celery_app.conf.task_always_eager = True
    yield get_runner()
    celery_app.conf.task_always_eager = previous
    get_settings.cache_clear()
    get_runner.cache_clear()


def test_submission_is_processed_by_the_worker_task(celery_runner, photos):
    host = f"nas-{uuid.uuid4().hex[:8]}"
    target = TargetDescriptor(host=host, share="backup", username="phone", password="s3cret")

    job = celery_runner.submit(target.encode(), encode_selection([str(photos)]))

    assert celery_runner.store.get_job(job.id).state == JobState.COMPLETED
    assert not celery_runner.state.is_processing
    share = Path(get_settings().local_share_root) / host / "backup"
    assert len(list(share.rglob("*.jpg"))) == 2


def test_worker_task_leaves_jobs_to_the_running_pass(celery_runner, store, make_job):
    job = make_job(["/unused"])
    assert celery_runner.state.try_acquire()
    try:
        assert process_backup_jobs.delay().get() == 0
    finally:
        celery_runner.state.release()

    assert store.get_job(job.id).state == JobState.QUEUED


def test_worker_start_resumes_unfinished_jobs(celery_runner, store, make_job, photos):
    first = make_job([str(photos)])
    second = make_job([str(photos / "IMG_001.jpg")], minutes=1)

    resume_unfinished_jobs(sender=None)

    assert store.get_job(first.id).state == JobState.COMPLETED
    assert store.get_job(second.id).state == JobState.COMPLETED
    assert not celery_runner.state.is_processing
