from __future__ import annotations

import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field, field_validator

DAY_VALUES = {
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
}

DAY_SHORT_MAP = {
    "Mon": "Monday",
    "Tue": "Tuesday",
    "Wed": "Wednesday",
    "Thu": "Thursday",
    "Fri": "Friday",
    "Sat": "Saturday",
    "Sun": "Sunday",
}

BASE_KEY = "base"


def normalize_day(value: str) -> str:
    day = (value or "").strip().capitalize()
    return DAY_SHORT_MAP.get(day, day)


def normalize_ref(value: str | None) -> str:
    """Teacher ids and room names compare trimmed and case-insensitively."""
    return (value or "").strip().lower()


def entry_key(day: str, slot_id: int, section_id: str, entry_date: datetime.date | None) -> str:
    scope = entry_date.isoformat() if entry_date is not None else BASE_KEY
    return f"{day}:{slot_id}:{section_id}:{scope}"


class EntityType(str, Enum):
    CLASS = "CLASS"
    STAFF = "STAFF"
    ROOM = "ROOM"


class EntrySource(str, Enum):
    override = "override"
    block = "block"
    base = "base"
    implicit = "implicit"


class ScheduleEntry(BaseModel):
    """One occupancy of a (day, slot) by a section.

    Fields are deliberately lenient; ScheduleStore reports every missing field
    at once instead of failing on the first one.
    """

    day: str = ""
    slot_id: int = 0
    section_id: str = ""
    teacher_id: str = ""
    subject: str = ""
    room: str | None = None
    date: datetime.date | None = None
    is_substitution: bool = False
    block_id: str | None = None
    clashing: bool = False

    model_config = {"frozen": True}

    @field_validator("day", mode="before")
    @classmethod
    def clean_day(cls, value: str | None) -> str:
        return normalize_day(value or "")

    @field_validator("section_id", "teacher_id", "subject", mode="before")
    @classmethod
    def strip_text(cls, value: str | None) -> str:
        return (value or "").strip()

    @field_validator("room", "block_id", mode="before")
    @classmethod
    def strip_optional(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        return trimmed or None

    @computed_field
    @property
    def id(self) -> str:
        return entry_key(self.day, self.slot_id, self.section_id, self.date)

    @property
    def is_base(self) -> bool:
        return self.date is None


class ResolvedEntry(BaseModel):
    """The authoritative answer for one entity at one (day, slot[, date])."""

    source: EntrySource
    day: str
    slot_id: int
    section_id: str
    teacher_id: str
    subject: str
    room: str | None = None
    date: datetime.date | None = None
    entry_id: str | None = None
    block_id: str | None = None
    is_substitution: bool = False
    clashing: bool = False

    @classmethod
    def from_entry(cls, entry: ScheduleEntry, source: EntrySource, *, query_date: datetime.date | None = None) -> "ResolvedEntry":
        return cls(
            source=source,
            day=entry.day,
            slot_id=entry.slot_id,
            section_id=entry.section_id,
            teacher_id=entry.teacher_id,
            subject=entry.subject,
            room=entry.room,
            date=entry.date or query_date,
            entry_id=entry.id,
            block_id=entry.block_id,
            is_substitution=entry.is_substitution,
            clashing=entry.clashing,
        )


class ScheduleEntryCreate(BaseModel):
    day: str
    slot_id: int = Field(ge=1, le=50)
    section_id: str = ""
    teacher_id: str = ""
    subject: str = ""
    room: str | None = Field(default=None, max_length=100)
    date: datetime.date | None = None
    block_id: str | None = None
    acknowledge_conflicts: bool = False

    def to_entry(self) -> ScheduleEntry:
        return ScheduleEntry(**self.model_dump(exclude={"acknowledge_conflicts"}))


class ScheduleEntryOut(BaseModel):
    id: str
    day: str
    slot_id: int
    section_id: str
    teacher_id: str
    subject: str
    room: str | None = None
    date: datetime.date | None = None
    is_substitution: bool = False
    block_id: str | None = None
    clashing: bool = False

    model_config = {"from_attributes": True}


class ResolveResponse(BaseModel):
    entity_type: EntityType
    entity_id: str
    day: str
    slot_id: int
    date: datetime.date | None = None
    free: bool
    entry: ResolvedEntry | None = None


class WeekGridRequest(BaseModel):
    entity_type: EntityType
    entity_id: str = Field(min_length=1, max_length=100)
    slot_ids: list[int] = Field(min_length=1, max_length=20)
    reference_date: datetime.date | None = None


class WeekGridResponse(BaseModel):
    entity_type: EntityType
    entity_id: str
    week_dates: dict[str, datetime.date] | None = None
    grid: dict[str, dict[int, ResolvedEntry | None]]


class MasterViewRequest(BaseModel):
    section_ids: list[str] = Field(min_length=1, max_length=200)
    day: str
    slot_ids: list[int] = Field(min_length=1, max_length=20)
    date: datetime.date | None = None


class MasterViewResponse(BaseModel):
    day: str
    date: datetime.date | None = None
    rows: dict[str, dict[int, ResolvedEntry | None]]


class CellRef(BaseModel):
    day: str
    slot_id: int = Field(ge=1, le=50)


class MoveRequest(BaseModel):
    entity_type: EntityType
    entity_id: str = Field(min_length=1, max_length=100)
    source: CellRef
    target: CellRef


class MoveResponse(BaseModel):
    moved: list[ScheduleEntryOut] = Field(default_factory=list)
