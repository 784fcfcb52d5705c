from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from timetable_engine.api.deps import get_db, get_timetable_engine
from timetable_engine.schemas.directory import DirectoryPayload
from timetable_engine.services import storage
from timetable_engine.services.engine import TimetableEngine

router = APIRouter()


@router.get("", response_model=DirectoryPayload)
def get_directory(engine: TimetableEngine = Depends(get_timetable_engine)) -> DirectoryPayload:
    return engine.directory.payload


@router.put("", response_model=DirectoryPayload)
def replace_directory(
    payload: DirectoryPayload,
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> DirectoryPayload:
    with engine.lock:
        engine.replace_directory(payload)
        storage.save_directory(db, payload)
        db.commit()
    return payload
