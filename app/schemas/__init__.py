from app.schemas.connection import (
    ConnectionRead,
    ConnectionTestResult,
    ConnectionUpdate,
    DirectoryEntryRead,
    DirectoryUpdate,
    FolderCreate,
    SelectionRead,
    SelectionUpdate,
)
from app.schemas.job import JobRead, JobSubmit, RunnerStatus

__all__ = [
    "JobSubmit",
    "JobRead",
    "RunnerStatus",
    "ConnectionUpdate",
    "ConnectionRead",
    "ConnectionTestResult",
    "DirectoryUpdate",
    "DirectoryEntryRead",
    "FolderCreate",
    "SelectionUpdate",
    "SelectionRead",
]
