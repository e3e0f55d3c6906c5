from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.exceptions import RemoteIOError
from app.core.security import mask_secret
from app.db.session import get_db
from app.schemas.connection import (
    ConnectionRead,
    ConnectionTestResult,
    ConnectionUpdate,
    DirectoryEntryRead,
    DirectoryUpdate,
    FolderCreate,
)
from app.services.connection import ConnectionService
from app.services.remote import TargetDescriptor, join_remote_path

router = APIRouter(prefix="/connection", tags=["connection"])


def _to_read(descriptor: TargetDescriptor) -> ConnectionRead:
    return ConnectionRead(
        host=descriptor.host,
        share=descriptor.share,
        username=descriptor.username,
        password=mask_secret(descriptor.password),
        directory=descriptor.route,
        url=descriptor.url,
    )


def _require_saved(service: ConnectionService) -> TargetDescriptor:
    descriptor = service.get_saved_target()
    if descriptor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No saved connection")
    return descriptor


@router.get("", response_model=ConnectionRead)
def get_connection(db: Session = Depends(get_db)) -> ConnectionRead:
    return _to_read(_require_saved(ConnectionService(db)))


@router.put("", response_model=ConnectionRead)
def save_connection(payload: ConnectionUpdate, db: Session = Depends(get_db)) -> ConnectionRead:
    service = ConnectionService(db)
    try:
        service.save_credentials(payload.host, payload.share, payload.username, payload.password)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _to_read(_require_saved(service))


@router.put("/directory", response_model=ConnectionRead)
def save_directory(payload: DirectoryUpdate, db: Session = Depends(get_db)) -> ConnectionRead:
    try:
        descriptor = ConnectionService(db).save_backup_directory(payload.route)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _to_read(descriptor)


@router.post("/test", response_model=ConnectionTestResult)
def test_connection(payload: ConnectionUpdate, db: Session = Depends(get_db)) -> ConnectionTestResult:
    try:
        descriptor = TargetDescriptor(host=payload.host, share=payload.share, username=payload.username, password=payload.password)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ConnectionTestResult(success=ConnectionService(db).test_connection(descriptor))


@router.get("/directories", response_model=list[DirectoryEntryRead])
def list_directories(path: str = Query(default=""), db: Session = Depends(get_db)) -> list[DirectoryEntryRead]:
    service = ConnectionService(db)
    descriptor = _require_saved(service)
    try:
        entries = service.list_directories(descriptor, path)
    except RemoteIOError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return [DirectoryEntryRead(name=entry.name, path=join_remote_path(path, entry.name)) for entry in entries]


@router.post("/directories", response_model=DirectoryEntryRead, status_code=status.HTTP_201_CREATED)
def create_directory(payload: FolderCreate, db: Session = Depends(get_db)) -> DirectoryEntryRead:
    service = ConnectionService(db)
    descriptor = _require_saved(service)
    try:
        folder = service.create_folder(descriptor, payload.path, payload.name)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RemoteIOError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return DirectoryEntryRead(name=folder.rsplit("/", 1)[-1], path=folder)
