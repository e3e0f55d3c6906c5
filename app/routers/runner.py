from fastapi import APIRouter, Depends, status

from app.routers.deps import get_job_runner
from app.schemas.job import RunnerStatus
from app.services.scheduler import BackupJobRunner

router = APIRouter(prefix="/runner", tags=["runner"])


@router.get("", response_model=RunnerStatus)
def runner_status(runner: BackupJobRunner = Depends(get_job_runner)) -> RunnerStatus:
    snapshot = runner.reporter.snapshot()
    return RunnerStatus(
        processing=runner.state.is_processing,
        job_id=snapshot["job_id"],
        file_index=snapshot["file_index"],
        total_files=snapshot["total_files"],
        indeterminate=snapshot["indeterminate"],
        percent=snapshot["percent"],
        message=snapshot["message"],
    )


@router.post("/resume", status_code=status.HTTP_202_ACCEPTED)
def resume_runner(runner: BackupJobRunner = Depends(get_job_runner)) -> dict:
    return {"started": runner.resume()}
