from collections.abc import Generator
from threading import Lock

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from timetable_engine.core.config import get_settings
from timetable_engine.db.session import SessionLocal
from timetable_engine.services import storage
from timetable_engine.services.engine import TimetableEngine

_engine_load_lock = Lock()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_timetable_engine(request: Request, db: Session = Depends(get_db)) -> TimetableEngine:
    """The process-wide engine, loaded from the database on first use."""
    engine = getattr(request.app.state, "timetable_engine", None)
    if engine is not None:
        return engine
    with _engine_load_lock:
        engine = getattr(request.app.state, "timetable_engine", None)
        if engine is None:
            engine = storage.load_engine(db, get_settings())
            request.app.state.timetable_engine = engine
    return engine
