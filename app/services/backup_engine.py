"""Runs one backup job: discovery once, then a resumable copy loop."""

import logging
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any

from app.core.config import Settings, get_settings
from app.core.exceptions import JobNotFoundError, SourceFileMissingError
from app.core.security import decrypt_secret
from app.models.backup_job import BackupJob, JobState
from app.models.common import as_utc, utcnow
from app.services.discovery import IndexedFile, decode_manifest, decode_selection, discover_files, encode_manifest
from app.services.job_store import BackupJobStore
from app.services.progress import ProgressCallback
from app.services.remote import RemoteTarget, TargetDescriptor, join_remote_path, open_target

logger = logging.getLogger(__name__)

TargetFactory = Callable[[TargetDescriptor], RemoteTarget]


class _JobInterrupted(Exception):
    """The stored record was cancelled or finished by someone else."""


def _ignore_progress(file_index: int, total_files: int | None) -> None:
    return None


def backup_folder_name(job: BackupJob, prefix: str) -> str:
    """One folder per job, named after its creation time in epoch milliseconds."""
    created_ms = int(as_utc(job.created_at).timestamp() * 1000)
    return f"{prefix}_{created_ms}"


def job_target(job: BackupJob) -> TargetDescriptor:
    """Stored descriptor with the encrypted password put back in."""
    target = TargetDescriptor.decode(job.target_descriptor)
    if job.target_secret:
        target = target.model_copy(update={"password": decrypt_secret(job.target_secret)})
    return target


class BackupJobEngine:
    def __init__(
        self,
        store: BackupJobStore,
        target_factory: TargetFactory | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.target_factory = target_factory or (lambda descriptor: open_target(descriptor, self.settings))

    def run(self, job_id: str, on_progress: ProgressCallback | None = None) -> BackupJob:
        """Drive the job to a terminal state and return the final record.

        Errors raised while preparing the job (opening the share, creating
        the backup folder, discovery) fail the job. Errors while copying a
        single file only skip that file. Every write re-reads the record
        first, so a cancellation that lands in between is never overwritten.
        """
        on_progress = on_progress or _ignore_progress
        job = self.store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.is_terminal:
            return job
        if job.cancellation_requested_at is not None:
            return self._finish(job_id, JobState.CANCELLED)

        try:
            target = self.target_factory(job_target(job))
            files_root = self._prepare_destination(target, job)
            if job.manifest is None:
                job = self._discover(job, on_progress)
            elif job.state != JobState.RUNNING:
                job = self._update(job_id, state=JobState.RUNNING)
            return self._copy_all(job, target, files_root, on_progress)
        except _JobInterrupted:
            return self._finish(job_id, JobState.CANCELLED)
        except Exception as exc:  # noqa: BLE001
            logger.exception("backup_job_failed", extra={"job_id": job_id, "error": str(exc)})
            return self._finish(job_id, JobState.FAILED, error=str(exc))

    def _update(self, job_id: str, **changes: Any) -> BackupJob:
        with self.store.transaction() as tx:
            job = tx.get_job(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.is_terminal or job.cancellation_requested_at is not None:
                raise _JobInterrupted(job_id)
            for name, value in changes.items():
                setattr(job, name, value)
            tx.db.flush()
            return job

    def _prepare_destination(self, target: RemoteTarget, job: BackupJob) -> str:
        backup_root = backup_folder_name(job, self.settings.backup_folder_prefix)
        files_root = join_remote_path(backup_root, self.settings.backup_files_dirname)
        for folder in (backup_root, files_root):
            if not target.exists(folder):
                target.mkdir_all(folder)
        return files_root

    def _discover(self, job: BackupJob, on_progress: ProgressCallback) -> BackupJob:
        job = self._update(job.id, state=JobState.STARTING, started_at=job.started_at or utcnow())
        on_progress(0, None)

        files = discover_files(decode_selection(job.selection_descriptor))

        job = self._update(
            job.id,
            manifest=encode_manifest(files),
            total_files=len(files),
            cursor=0,
            state=JobState.RUNNING,
        )
        logger.info("backup_job_indexed", extra={"job_id": job.id, "total_files": job.total_files})
        return job

    def _copy_all(self, job: BackupJob, target: RemoteTarget, files_root: str, on_progress: ProgressCallback) -> BackupJob:
        manifest = decode_manifest(job.manifest or "[]")
        total = job.total_files if job.total_files is not None else len(manifest)
        index = max(job.cursor - 1, 0)
        skipped = job.skipped_files

        for entry in manifest[index:]:
            index += 1
            # Recorded before copying: a crash mid-file retries that same file.
            try:
                job = self._update(job.id, cursor=index, skipped_files=skipped)
            except _JobInterrupted:
                return self._finish(job.id, JobState.CANCELLED, skipped_files=skipped)
            on_progress(index, total)

            try:
                self._copy_file(target, files_root, entry)
            except SourceFileMissingError as exc:
                logger.warning("backup_file_missing", extra={"job_id": job.id, "path": exc.source_path})
                skipped += 1
            except Exception as exc:  # noqa: BLE001
                logger.exception("backup_file_failed", extra={"job_id": job.id, "path": entry.source_path, "error": str(exc)})
                skipped += 1

        return self._finish(job.id, JobState.COMPLETED, skipped_files=skipped)

    def _copy_file(self, target: RemoteTarget, files_root: str, entry: IndexedFile) -> None:
        destination_dir = files_root
        if entry.relative_dir:
            destination_dir = join_remote_path(files_root, entry.relative_dir)
            if not target.exists(destination_dir):
                target.mkdir_all(destination_dir)

        source = Path(entry.source_path)
        if not source.is_file():
            raise SourceFileMissingError(entry.source_path)

        with source.open("rb") as reader, target.open_write_stream(join_remote_path(destination_dir, source.name)) as writer:
            shutil.copyfileobj(reader, writer, self.settings.copy_chunk_size)
        logger.debug("backup_file_copied", extra={"path": entry.source_path})

    def _finish(self, job_id: str, state: str, **changes: Any) -> BackupJob:
        with self.store.transaction() as tx:
            job = tx.get_job(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.is_terminal:
                return job
            if job.cancellation_requested_at is not None:
                state = JobState.CANCELLED
            for name, value in changes.items():
                setattr(job, name, value)
            job.state = state
            job.ended_at = utcnow()
            tx.db.flush()
        logger.info(
            "backup_job_finished",
            extra={"job_id": job.id, "state": state, "cursor": job.cursor, "skipped_files": job.skipped_files},
        )
        return job
