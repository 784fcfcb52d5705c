from __future__ import annotations

import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SubstitutionStatus(str, Enum):
    created = "created"
    active = "active"
    archived = "archived"


class SubstitutionRecord(BaseModel):
    id: str
    date: datetime.date
    day: str
    slot_id: int
    section_id: str
    absent_teacher_id: str
    substitute_teacher_id: str
    subject: str = ""
    room: str | None = None
    entry_id: str | None = None
    status: SubstitutionStatus = SubstitutionStatus.created

    model_config = {"from_attributes": True}

    @property
    def is_archived(self) -> bool:
        return self.status == SubstitutionStatus.archived

    @property
    def is_active(self) -> bool:
        return self.status == SubstitutionStatus.active


class SubstitutionAssign(BaseModel):
    date: datetime.date
    slot_id: int = Field(ge=1, le=50)
    section_id: str = Field(min_length=1, max_length=100)
    absent_teacher_id: str = Field(min_length=1, max_length=100)
    substitute_teacher_id: str = Field(min_length=1, max_length=100)


class SubstitutionArchiveDate(BaseModel):
    date: datetime.date
    section_ids: list[str] | None = None


class SubstitutionRecordOut(BaseModel):
    id: str
    date: datetime.date
    day: str
    slot_id: int
    section_id: str
    absent_teacher_id: str
    substitute_teacher_id: str
    subject: str
    room: str | None = None
    entry_id: str | None = None
    status: SubstitutionStatus
    is_archived: bool

    model_config = {"from_attributes": True}
