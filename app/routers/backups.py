from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.exceptions import InvalidBackupRequestError
from app.db.session import get_db
from app.models.backup_job import BackupJob
from app.routers.deps import get_job_runner
from app.schemas.job import JobRead
from app.services.connection import ConnectionService, SelectionService
from app.services.discovery import encode_selection
from app.services.scheduler import BackupJobRunner

router = APIRouter(prefix="/backups", tags=["backups"])


@router.post("/now", response_model=JobRead, status_code=status.HTTP_202_ACCEPTED)
def backup_now(db: Session = Depends(get_db), runner: BackupJobRunner = Depends(get_job_runner)) -> BackupJob:
    """Back up the saved selection to the saved share directory."""
    target = ConnectionService(db).get_saved_target()
    selection = SelectionService(db).get_selection()
    try:
        job = runner.submit(
            target.encode() if target else None,
            encode_selection(selection) if selection else None,
        )
    except InvalidBackupRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return runner.store.get_job(job.id) or job
