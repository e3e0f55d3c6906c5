from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.connection import SelectionRead, SelectionUpdate
from app.services.connection import SelectionService

router = APIRouter(prefix="/selection", tags=["selection"])


@router.get("", response_model=SelectionRead)
def get_selection(db: Session = Depends(get_db)) -> SelectionRead:
    return SelectionRead(paths=SelectionService(db).get_selection())


@router.put("", response_model=SelectionRead)
def save_selection(payload: SelectionUpdate, db: Session = Depends(get_db)) -> SelectionRead:
    return SelectionRead(paths=SelectionService(db).save_selection(payload.paths))
