from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from timetable_engine.api.deps import get_db, get_timetable_engine
from timetable_engine.schemas.substitution import (
    SubstitutionArchiveDate,
    SubstitutionAssign,
    SubstitutionRecord,
    SubstitutionRecordOut,
)
from timetable_engine.services import storage
from timetable_engine.services.engine import TimetableEngine

router = APIRouter()


def record_out(record: SubstitutionRecord) -> SubstitutionRecordOut:
    return SubstitutionRecordOut(**record.model_dump(), is_archived=record.is_archived)


@router.post("", response_model=SubstitutionRecordOut, status_code=status.HTTP_201_CREATED)
def assign_substitute(
    payload: SubstitutionAssign,
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> SubstitutionRecordOut:
    with engine.lock:
        record = engine.ledger.assign(
            payload.date,
            payload.slot_id,
            payload.section_id,
            payload.absent_teacher_id,
            payload.substitute_teacher_id,
        )
        storage.persist(db, engine)
    return record_out(record)


@router.post("/archive-date", response_model=list[SubstitutionRecordOut])
def archive_for_date(
    payload: SubstitutionArchiveDate,
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> list[SubstitutionRecordOut]:
    with engine.lock:
        records = engine.ledger.archive_for_date(payload.date, payload.section_ids)
        storage.persist(db, engine)
    return [record_out(record) for record in records]


@router.post("/{record_id}/archive", response_model=SubstitutionRecordOut)
def archive_substitution(
    record_id: str,
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> SubstitutionRecordOut:
    with engine.lock:
        record = engine.ledger.archive(record_id)
        storage.persist(db, engine)
    return record_out(record)


@router.get("/active", response_model=list[SubstitutionRecordOut])
def active_substitutions(
    today: date | None = None,
    teacher_id: str | None = None,
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> list[SubstitutionRecordOut]:
    records = engine.ledger.active(today or date.today(), teacher_id)
    return [record_out(record) for record in records]


@router.get("", response_model=list[SubstitutionRecordOut])
def substitution_audit(
    on_date: date | None = Query(default=None, alias="date"),
    teacher_id: str | None = None,
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> list[SubstitutionRecordOut]:
    return [record_out(record) for record in engine.ledger.audit(on_date, teacher_id)]
