from datetime import datetime

from pydantic import BaseModel, Field

from app.services.remote import TargetDescriptor


class JobSubmit(BaseModel):
    target: TargetDescriptor
    selection: list[str] = Field(min_length=1)


class JobRead(BaseModel):
    id: str
    state: str
    total_files: int | None
    cursor: int
    skipped_files: int
    error: str | None
    created_at: datetime
    started_at: datetime | None
    ended_at: datetime | None
    cancellation_requested_at: datetime | None

    model_config = {"from_attributes": True}


class RunnerStatus(BaseModel):
    processing: bool
    job_id: str | None
    file_index: int
    total_files: int | None
    indeterminate: bool
    percent: int
    message: str
