import logging
import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int | None], None]


def percent(file_index: int, total_files: int | None) -> int:
    if not total_files:
        return 0
    return (file_index * 100) // total_files


@dataclass(slots=True)
class ProgressSnapshot:
    job_id: str | None = None
    file_index: int = 0
    total_files: int | None = None
    indeterminate: bool = True
    percent: int = 0
    message: str = "Idle"
    ongoing: bool = False


class ProgressReporter:
    """Keeps the latest runner status for polling and logs every change.

    Stands in for a foreground notification: same texts, no UI.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = ProgressSnapshot()

    def snapshot(self) -> dict:
        with self._lock:
            return asdict(self._snapshot)

    def _publish(self, snapshot: ProgressSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
        logger.info(snapshot.message, extra={"job_id": snapshot.job_id, "percent": snapshot.percent})

    def starting(self) -> None:
        self._publish(ProgressSnapshot(message="Starting backup...", ongoing=True))

    def callback_for(self, job_id: str) -> ProgressCallback:
        def _on_progress(file_index: int, total_files: int | None) -> None:
            if total_files is None:
                self._publish(ProgressSnapshot(job_id=job_id, message="Scanning files...", ongoing=True))
                return
            self._publish(
                ProgressSnapshot(
                    job_id=job_id,
                    file_index=file_index,
                    total_files=total_files,
                    indeterminate=False,
                    percent=percent(file_index, total_files),
                    message=f"Backing up file {file_index} of {total_files}",
                    ongoing=True,
                )
            )

        return _on_progress

    def finished(self, job_id: str, state: str, skipped_files: int = 0) -> None:
        messages = {"COMPLETED": "Backup Complete", "CANCELLED": "Backup Cancelled"}
        message = messages.get(state, "Backup Failed")
        if state == "COMPLETED" and skipped_files:
            message = f"{message} ({skipped_files} file(s) skipped)"
        self._publish(ProgressSnapshot(job_id=job_id, indeterminate=False, percent=100, message=message))

    def failed(self, message: str) -> None:
        self._publish(ProgressSnapshot(indeterminate=False, message=f"Backup failed: {message}"))

    def idle(self) -> None:
        with self._lock:
            self._snapshot.ongoing = False
