"""Errors raised by the backup job engine and its collaborators."""


class BackupError(Exception):
    """Base class for every backup failure."""


class DiscoveryError(BackupError):
    """Raised when scanning a selection finds no files at all."""

    def __init__(self, roots: list[str]):
        self.roots = roots
        super().__init__(f"No files found in selection of {len(roots)} root(s)")


class RemoteIOError(BackupError):
    """Raised when the remote share cannot be reached, authenticated or written."""

    def __init__(self, operation: str, path: str, reason: str):
        self.operation = operation
        self.path = path
        self.reason = reason
        super().__init__(f"{operation} failed for '{path}': {reason}")


class SourceFileMissingError(BackupError):
    """Raised when a manifest entry no longer exists on local disk."""

    def __init__(self, source_path: str):
        self.source_path = source_path
        super().__init__(f"Source file no longer exists: {source_path}")


class MultipleActiveJobsError(BackupError):
    """Raised when more than one job is STARTING or RUNNING at the same time."""

    def __init__(self, job_ids: list[str]):
        self.job_ids = job_ids
        super().__init__(f"Multiple active jobs found: {', '.join(job_ids)}")


class InvalidBackupRequestError(BackupError):
    """Raised when a submission lacks a backup location or a file selection."""


class JobNotFoundError(BackupError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Backup job with id '{job_id}' not found")
