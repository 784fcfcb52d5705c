import datetime

from sqlalchemy import Date, DateTime, Enum as SAEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from timetable_engine.db.base import Base
from timetable_engine.schemas.substitution import SubstitutionStatus


class SubstitutionRecordRow(Base):
    __tablename__ = "substitution_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)
    day: Mapped[str] = mapped_column(String(12), nullable=False)
    slot_id: Mapped[int] = mapped_column(Integer, nullable=False)
    section_id: Mapped[str] = mapped_column(String(100), nullable=False)
    absent_teacher_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    substitute_teacher_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    room: Mapped[str | None] = mapped_column(String(100), nullable=True)
    entry_id: Mapped[str | None] = mapped_column(String(160), nullable=True)
    status: Mapped[SubstitutionStatus] = mapped_column(
        SAEnum(SubstitutionStatus, name="substitution_status"),
        nullable=False,
        default=SubstitutionStatus.created,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
