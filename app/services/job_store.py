"""Durable job records, backed by SQLAlchemy."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from app.core.exceptions import JobNotFoundError
from app.db.session import SessionLocal
from app.models.backup_job import ACTIVE_STATES, UNFINISHED_STATES, BackupJob, JobState
from app.models.common import utcnow


class JobStoreSession:
    """Job queries bound to one open transaction."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def insert_or_update(self, job: BackupJob) -> BackupJob:
        merged = self.db.merge(job)
        self.db.flush()
        return merged

    def get_job(self, job_id: str) -> BackupJob | None:
        return self.db.scalar(select(BackupJob).where(BackupJob.id == job_id))

    def find_unfinished_job(self, target_descriptor: str, selection_descriptor: str) -> BackupJob | None:
        return self.db.scalar(
            select(BackupJob)
            .where(
                BackupJob.target_descriptor == target_descriptor,
                BackupJob.selection_descriptor == selection_descriptor,
                BackupJob.state.in_(UNFINISHED_STATES),
            )
            .order_by(BackupJob.created_at.asc())
            .limit(1)
        )

    def find_active_jobs(self) -> list[BackupJob]:
        return list(self.db.scalars(select(BackupJob).where(BackupJob.state.in_(ACTIVE_STATES))).all())

    def find_next_job_to_process(self) -> BackupJob | None:
        return self.db.scalar(
            select(BackupJob)
            .where(BackupJob.state.in_(UNFINISHED_STATES))
            .order_by(BackupJob.created_at.asc(), BackupJob.id.asc())
            .limit(1)
        )

    def list_jobs(self, limit: int = 50) -> list[BackupJob]:
        return list(self.db.scalars(select(BackupJob).order_by(BackupJob.created_at.desc()).limit(limit)).all())

    def request_cancellation(self, job_id: str) -> BackupJob:
        job = self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.is_terminal:
            return job
        now = utcnow()
        job.cancellation_requested_at = job.cancellation_requested_at or now
        if job.state == JobState.QUEUED:
            # Not picked up by the engine yet.
            job.state = JobState.CANCELLED
            job.ended_at = now
        self.db.flush()
        return job

    def clear_all(self) -> int:
        result = self.db.execute(delete(BackupJob))
        return result.rowcount or 0


class BackupJobStore:
    """Every call runs in its own short transaction.

    ``transaction()`` groups several calls into one atomic unit; the lock
    makes it a critical section within this process as well, which is what
    the submit path relies on for its check-then-insert.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory
        self._lock = threading.Lock()

    @contextmanager
    def transaction(self) -> Iterator[JobStoreSession]:
        with self._lock:
            db = self._session_factory()
            try:
                yield JobStoreSession(db)
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def insert_or_update(self, job: BackupJob) -> BackupJob:
        with self.transaction() as tx:
            return tx.insert_or_update(job)

    def get_job(self, job_id: str) -> BackupJob | None:
        with self.transaction() as tx:
            return tx.get_job(job_id)

    def find_unfinished_job(self, target_descriptor: str, selection_descriptor: str) -> BackupJob | None:
        with self.transaction() as tx:
            return tx.find_unfinished_job(target_descriptor, selection_descriptor)

    def find_active_jobs(self) -> list[BackupJob]:
        with self.transaction() as tx:
            return tx.find_active_jobs()

    def find_next_job_to_process(self) -> BackupJob | None:
        with self.transaction() as tx:
            return tx.find_next_job_to_process()

    def list_jobs(self, limit: int = 50) -> list[BackupJob]:
        with self.transaction() as tx:
            return tx.list_jobs(limit)

    def request_cancellation(self, job_id: str) -> BackupJob:
        with self.transaction() as tx:
            return tx.request_cancellation(job_id)

    def clear_all(self) -> int:
        with self.transaction() as tx:
            return tx.clear_all()
