from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class JobState:
    QUEUED = "QUEUED"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


UNFINISHED_STATES = (JobState.QUEUED, JobState.STARTING, JobState.RUNNING)
ACTIVE_STATES = (JobState.STARTING, JobState.RUNNING)
TERMINAL_STATES = (JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED)


class BackupJob(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "backup_jobs"

    state: Mapped[str] = mapped_column(String(16), default=JobState.QUEUED, nullable=False, index=True)
    target_descriptor: Mapped[str] = mapped_column(Text, nullable=False)
    target_secret: Mapped[str | None] = mapped_column(Text, nullable=True)
    selection_descriptor: Mapped[str] = mapped_column(Text, nullable=False)
    manifest: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_files: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cursor: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped_files: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES
