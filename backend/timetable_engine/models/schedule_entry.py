import datetime

from sqlalchemy import Boolean, Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from timetable_engine.db.base import Base


class ScheduleEntryRow(Base):
    __tablename__ = "schedule_entries"

    # Deterministic key "{day}:{slot}:{section}:{date|base}", shared with the in-memory store.
    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    day: Mapped[str] = mapped_column(String(12), nullable=False, index=True)
    slot_id: Mapped[int] = mapped_column(Integer, nullable=False)
    section_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    teacher_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    room: Mapped[str | None] = mapped_column(String(100), nullable=True)
    date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True, index=True)
    is_substitution: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    block_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    clashing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
