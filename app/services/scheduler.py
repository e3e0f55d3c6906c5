"""Single-flight job runner: queues submissions and works them off one at a time."""

import logging
import threading
from collections.abc import Callable

from app.core.exceptions import InvalidBackupRequestError, MultipleActiveJobsError
from app.core.security import encrypt_secret
from app.models.backup_job import BackupJob, JobState
from app.models.common import new_uuid, utcnow
from app.services.backup_engine import BackupJobEngine
from app.services.job_store import BackupJobStore
from app.services.progress import ProgressReporter
from app.services.remote import TargetDescriptor

logger = logging.getLogger(__name__)

Dispatcher = Callable[[Callable[[], None]], None]


class SchedulerState:
    """Process-local "is processing" gate. Not persisted: the job table is the source of truth."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._processing = False

    def try_acquire(self) -> bool:
        with self._lock:
            if self._processing:
                return False
            self._processing = True
            return True

    def release(self) -> None:
        with self._lock:
            self._processing = False

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._processing


def run_in_thread(work: Callable[[], None]) -> None:
    threading.Thread(target=work, name="backup-runner", daemon=True).start()


def run_inline(work: Callable[[], None]) -> None:
    work()


class BackupJobRunner:
    def __init__(
        self,
        store: BackupJobStore,
        engine: BackupJobEngine,
        state: SchedulerState | None = None,
        reporter: ProgressReporter | None = None,
        dispatch: Dispatcher = run_in_thread,
    ) -> None:
        self.store = store
        self.engine = engine
        self.state = state or SchedulerState()
        self.reporter = reporter or ProgressReporter()
        self.dispatch = dispatch
        self.halted = False

    def submit(self, target_descriptor: str | None, selection_descriptor: str | None) -> BackupJob:
        """Queue a backup, or attach to the unfinished job for the same target and selection.

        The password is kept out of the stored descriptor and saved encrypted
        next to it, so two requests for the same share and folder match even
        if the password changed; the attached job then uses the newer one.
        """
        try:
            if not target_descriptor or not selection_descriptor:
                raise ValueError("missing descriptor")
            target = TargetDescriptor.decode(target_descriptor)
        except ValueError as exc:
            if not self.state.is_processing:
                self.reporter.failed("Invalid backup location or file selection")
            raise InvalidBackupRequestError("Invalid backup location or file selection") from exc

        stored_target = target.encode(include_password=False)
        secret = encrypt_secret(target.password) or None
        with self.store.transaction() as tx:
            job = tx.find_unfinished_job(stored_target, selection_descriptor)
            if job is not None:
                job.target_secret = secret
                logger.info("backup_job_deduplicated", extra={"job_id": job.id})
            else:
                now = utcnow()
                job = tx.insert_or_update(
                    BackupJob(
                        id=new_uuid(),
                        state=JobState.QUEUED,
                        target_descriptor=stored_target,
                        target_secret=secret,
                        selection_descriptor=selection_descriptor,
                        total_files=None,
                        cursor=0,
                        skipped_files=0,
                        created_at=now,
                        updated_at=now,
                    )
                )
                logger.info("backup_job_queued", extra={"job_id": job.id})

        self.trigger()
        return job

    def trigger(self) -> bool:
        """Start the processing loop unless one is already running in this process."""
        if not self.state.try_acquire():
            logger.info("backup_runner_already_processing")
            return False
        logger.info("backup_runner_starting")
        try:
            self.dispatch(self._process_and_release)
        except Exception:
            self.state.release()
            raise
        return True

    def resume(self) -> bool:
        """Called at process start with no new request; picks up whatever the last run left."""
        return self.trigger()

    def _process_and_release(self) -> None:
        try:
            self.process_jobs()
        finally:
            self.state.release()
            self.reporter.idle()
        self.trigger_pending()

    def trigger_pending(self) -> bool:
        """Start another pass for a job queued while the last one was winding down."""
        if self.halted or self.store.find_next_job_to_process() is None:
            return False
        return self.trigger()

    def process_jobs(self) -> int:
        """Run queued jobs oldest first until none is left. Returns how many were run."""
        self.halted = False
        try:
            self._check_single_active_job()
        except MultipleActiveJobsError as exc:
            logger.error("backup_runner_integrity_violation", extra={"job_ids": exc.job_ids})
            self.halted = True
            self.reporter.failed("Multiple active jobs found")
            return 0

        self.reporter.starting()
        processed = 0
        while True:
            job = self.store.find_next_job_to_process()
            if job is None:
                break
            try:
                finished = self.engine.run(job.id, self.reporter.callback_for(job.id))
            except Exception:  # noqa: BLE001
                # Engine failed to record a terminal state; stop this pass.
                logger.exception("backup_runner_job_crashed", extra={"job_id": job.id})
                self.reporter.finished(job.id, JobState.FAILED)
                self.halted = True
                break
            processed += 1
            self.reporter.finished(finished.id, finished.state, finished.skipped_files)
        return processed

    def _check_single_active_job(self) -> None:
        with self.store.transaction() as tx:
            active = tx.find_active_jobs()
            if len(active) <= 1:
                return
            now = utcnow()
            for job in active:
                job.state = JobState.FAILED
                job.ended_at = now
                job.error = "Multiple active jobs found"
            job_ids = [job.id for job in active]
        raise MultipleActiveJobsError(job_ids)
