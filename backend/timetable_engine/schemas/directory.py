from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class Wing(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=100)


class Section(BaseModel):
    id: str = Field(min_length=1, max_length=100)
    name: str = Field(default="", max_length=100, validate_default=True)
    wing_id: str | None = None

    @field_validator("name", mode="after")
    @classmethod
    def default_name(cls, value: str, info) -> str:
        return value.strip() or info.data.get("id", "")


class Teacher(BaseModel):
    id: str = Field(min_length=1, max_length=100)
    name: str = Field(default="", max_length=200)
    class_teacher_of: str | None = None


class SubjectLoad(BaseModel):
    subject: str = Field(min_length=1, max_length=100)
    periods: int = Field(default=0, ge=0, le=60)


class TeacherAssignment(BaseModel):
    teacher_id: str = Field(min_length=1, max_length=100)
    grade: str = Field(min_length=1, max_length=20)
    loads: list[SubjectLoad] = Field(default_factory=list)
    anchor_subject: str | None = None


class DirectoryPayload(BaseModel):
    wings: list[Wing] = Field(default_factory=list)
    sections: list[Section] = Field(default_factory=list)
    teachers: list[Teacher] = Field(default_factory=list)
    assignments: list[TeacherAssignment] = Field(default_factory=list)
