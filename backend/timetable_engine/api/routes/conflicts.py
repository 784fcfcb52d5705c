from fastapi import APIRouter, Depends

from timetable_engine.api.deps import get_timetable_engine
from timetable_engine.schemas.conflict import ConflictReport, DetectRequest
from timetable_engine.services.engine import TimetableEngine

router = APIRouter()


@router.post("/detect", response_model=ConflictReport)
def detect_conflicts(
    payload: DetectRequest,
    engine: TimetableEngine = Depends(get_timetable_engine),
):
    # Dry run: nothing is committed.
    candidate = payload.to_entry()
    clashes = engine.detector.detect(candidate)
    return ConflictReport(conflicts=engine.detector.describe(candidate, clashes))


@router.get("", response_model=ConflictReport)
def list_conflicts(engine: TimetableEngine = Depends(get_timetable_engine)):
    return engine.detector.report()
