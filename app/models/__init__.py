from app.models.backup_job import BackupJob, JobState
from app.models.preference import Preference

__all__ = ["BackupJob", "JobState", "Preference"]
