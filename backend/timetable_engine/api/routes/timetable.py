from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from timetable_engine.api.deps import get_db, get_timetable_engine
from timetable_engine.schemas.timetable import (
    EntityType,
    MasterViewRequest,
    MasterViewResponse,
    MoveRequest,
    MoveResponse,
    ResolveResponse,
    ScheduleEntry,
    ScheduleEntryCreate,
    ScheduleEntryOut,
    WeekGridRequest,
    WeekGridResponse,
    normalize_day,
)
from timetable_engine.services import storage
from timetable_engine.services.calendar import week_dates
from timetable_engine.services.engine import TimetableEngine

router = APIRouter()


def entry_out(entry: ScheduleEntry) -> ScheduleEntryOut:
    return ScheduleEntryOut(**entry.model_dump())


@router.post("/entries", response_model=ScheduleEntryOut, status_code=status.HTTP_201_CREATED)
def upsert_entry(
    payload: ScheduleEntryCreate,
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> ScheduleEntryOut:
    with engine.lock:
        entry = engine.store.upsert(payload.to_entry(), acknowledge_conflicts=payload.acknowledge_conflicts)
        storage.persist(db, engine)
    return entry_out(entry)


@router.delete("/entries/{entry_id}", response_model=ScheduleEntryOut)
def remove_entry(
    entry_id: str,
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> ScheduleEntryOut:
    with engine.lock:
        entry = engine.store.remove(entry_id)
        storage.persist(db, engine)
    return entry_out(entry)


@router.get("/slots/{day}/{slot_id}", response_model=list[ScheduleEntryOut])
def list_slot(
    day: str,
    slot_id: int,
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> list[ScheduleEntryOut]:
    return [entry_out(entry) for entry in engine.store.entries_for_slot(normalize_day(day), slot_id)]


@router.get("/resolve", response_model=ResolveResponse)
def resolve(
    entity_type: EntityType,
    entity_id: str = Query(min_length=1),
    day: str = Query(min_length=1),
    slot_id: int = Query(ge=1),
    on_date: date | None = Query(default=None, alias="date"),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> ResolveResponse:
    resolved = engine.resolver.resolve(entity_type, entity_id, day, slot_id, on_date)
    return ResolveResponse(
        entity_type=entity_type,
        entity_id=entity_id,
        day=normalize_day(day),
        slot_id=slot_id,
        date=on_date,
        free=resolved is None,
        entry=resolved,
    )


@router.post("/week", response_model=WeekGridResponse)
def week_grid(
    payload: WeekGridRequest,
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> WeekGridResponse:
    dates = None
    if payload.reference_date is not None:
        dates = week_dates(payload.reference_date, engine.store.week_days)
    grid = engine.resolver.week_grid(payload.entity_type, payload.entity_id, payload.slot_ids, dates)
    return WeekGridResponse(
        entity_type=payload.entity_type,
        entity_id=payload.entity_id,
        week_dates=dates,
        grid=grid,
    )


@router.post("/master", response_model=MasterViewResponse)
def master_view(
    payload: MasterViewRequest,
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> MasterViewResponse:
    day = normalize_day(payload.day)
    rows = engine.resolver.master_view(payload.section_ids, day, payload.slot_ids, payload.date)
    return MasterViewResponse(day=day, date=payload.date, rows=rows)


@router.post("/move", response_model=MoveResponse)
def move_entry(
    payload: MoveRequest,
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> MoveResponse:
    with engine.lock:
        moved = engine.move(
            payload.entity_type,
            payload.entity_id,
            (payload.source.day, payload.source.slot_id),
            (payload.target.day, payload.target.slot_id),
        )
        storage.persist(db, engine)
    return MoveResponse(moved=[entry_out(entry) for entry in moved])


@router.get("/busy-teachers", response_model=list[str])
def busy_teachers(
    day: str = Query(min_length=1),
    slot_id: int = Query(ge=1),
    on_date: date | None = Query(default=None, alias="date"),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> list[str]:
    return engine.resolver.busy_teachers(day, slot_id, on_date)
