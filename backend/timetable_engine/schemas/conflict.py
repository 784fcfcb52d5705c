from pydantic import BaseModel
from typing import Literal, List

from timetable_engine.schemas.timetable import ScheduleEntryCreate


class ConflictDetail(BaseModel):
    id: str
    conflict_type: Literal["teacher_conflict", "room_conflict"]
    description: str
    day: str
    slot_id: int
    affected_entries: List[str]  # entry ids involved, candidate first


class ConflictReport(BaseModel):
    conflicts: List[ConflictDetail]


class DetectRequest(ScheduleEntryCreate):
    pass
