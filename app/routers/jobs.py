from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.exceptions import InvalidBackupRequestError, JobNotFoundError
from app.models.backup_job import BackupJob
from app.routers.deps import get_job_runner
from app.schemas.job import JobRead, JobSubmit
from app.services.discovery import encode_selection
from app.services.scheduler import BackupJobRunner

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("", response_model=JobRead, status_code=status.HTTP_202_ACCEPTED)
def submit_job(payload: JobSubmit, runner: BackupJobRunner = Depends(get_job_runner)) -> BackupJob:
    try:
        job = runner.submit(payload.target.encode(), encode_selection(payload.selection))
    except InvalidBackupRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return runner.store.get_job(job.id) or job


@router.get("", response_model=list[JobRead])
def list_jobs(
    limit: int = Query(default=50, ge=1, le=500),
    runner: BackupJobRunner = Depends(get_job_runner),
) -> list[BackupJob]:
    return runner.store.list_jobs(limit)


@router.get("/{job_id}", response_model=JobRead)
def get_job(job_id: str, runner: BackupJobRunner = Depends(get_job_runner)) -> BackupJob:
    job = runner.store.get_job(job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return job


@router.post("/{job_id}/cancel", response_model=JobRead, status_code=status.HTTP_202_ACCEPTED)
def cancel_job(job_id: str, runner: BackupJobRunner = Depends(get_job_runner)) -> BackupJob:
    try:
        return runner.store.request_cancellation(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found") from exc
