from app.services.scheduler import BackupJobRunner
from app.workers.tasks import get_runner


def get_job_runner() -> BackupJobRunner:
    return get_runner()
