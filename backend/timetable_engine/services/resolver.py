from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging

from timetable_engine.core.config import Settings
from timetable_engine.core.exceptions import ResourceNotFoundError, ScheduleValidationError
from timetable_engine.schemas.timetable import (
    EntityType,
    EntrySource,
    ResolvedEntry,
    ScheduleEntry,
    normalize_day,
    normalize_ref,
)
from timetable_engine.services.block_registry import CombinedBlockRegistry
from timetable_engine.services.calendar import weekday_name
from timetable_engine.services.directory import SchoolDirectory
from timetable_engine.services.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)

FIRST_LOAD = "first_load"
ANCHOR_SUBJECT = "anchor_subject"


@dataclass(frozen=True)
class HomeroomPolicy:
    slot_id: int = 1
    min_grade: int = 1
    max_grade: int = 10
    subject_rule: str = FIRST_LOAD
    fallback_subject: str = "Class Teacher Period"

    @classmethod
    def from_settings(cls, settings: Settings) -> "HomeroomPolicy":
        return cls(
            slot_id=settings.homeroom_slot_id,
            min_grade=settings.homeroom_min_grade,
            max_grade=settings.homeroom_max_grade,
            subject_rule=settings.homeroom_subject_rule,
            fallback_subject=settings.homeroom_fallback_subject,
        )

    def covers_grade(self, grade: int | None) -> bool:
        return grade is not None and self.min_grade <= grade <= self.max_grade


def entry_matches(entry: ScheduleEntry, entity_type: EntityType, entity_id: str) -> bool:
    if entity_type == EntityType.CLASS:
        return entry.section_id == entity_id.strip()
    if entity_type == EntityType.STAFF:
        return normalize_ref(entry.teacher_id) == normalize_ref(entity_id)
    room = normalize_ref(entry.room)
    return bool(room) and room == normalize_ref(entity_id)


def _ordered(entries) -> list[ScheduleEntry]:
    return sorted(entries, key=lambda entry: (entry.section_id, entry.id))


class Resolver:
    """Answers "what applies here" for a class, teacher or room.

    Precedence: date override, then combined block allocation, then base entry,
    then the implicit homeroom duty for the first period, else free (None).
    """

    def __init__(
        self,
        store: ScheduleStore,
        blocks: CombinedBlockRegistry,
        directory: SchoolDirectory,
        policy: HomeroomPolicy | None = None,
    ) -> None:
        self.store = store
        self.blocks = blocks
        self.directory = directory
        self.policy = policy or HomeroomPolicy()

    def resolve(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        day: str,
        slot_id: int,
        date: date | None = None,
        *,
        skip_substitutions: bool = False,
    ) -> ResolvedEntry | None:
        entity_type = EntityType(entity_type)
        day = normalize_day(day)
        if date is not None and weekday_name(date) != day:
            raise ScheduleValidationError(f"{date.isoformat()} is not a {day}", ["date"])

        entries = self.store.entries_for_slot(day, slot_id)
        if skip_substitutions:
            entries = tuple(entry for entry in entries if not entry.is_substitution)

        explicit = self._resolve_explicit(entity_type, entity_id, entries, date)
        if explicit is not None:
            return explicit
        return self._implicit_duty(entity_type, entity_id, day, slot_id, entries, date)

    def _resolve_explicit(
        self,
        entity_type: EntityType,
        entity_id: str,
        entries: tuple[ScheduleEntry, ...],
        on_date: date | None,
    ) -> ResolvedEntry | None:
        shadowed: set[str] = set()
        if on_date is not None:
            overrides = [entry for entry in entries if entry.date == on_date]
            shadowed = {entry.section_id for entry in overrides}
            for entry in _ordered(overrides):
                if entry_matches(entry, entity_type, entity_id):
                    return ResolvedEntry.from_entry(entry, EntrySource.override)

        effective = _ordered(
            entry for entry in entries if entry.date is None and entry.section_id not in shadowed
        )

        for entry in effective:
            if entry.block_id is None or entry.block_id not in self.blocks:
                continue
            try:
                match = self.blocks.allocation_for(entry.block_id, entity_type, entity_id)
            except ResourceNotFoundError:
                continue
            if match.section_id != entry.section_id:
                continue
            allocation = match.allocation
            resolved = ResolvedEntry.from_entry(entry, EntrySource.block, query_date=on_date)
            return resolved.model_copy(
                update={
                    "teacher_id": allocation.teacher_id,
                    "subject": allocation.subject,
                    "room": allocation.room,
                }
            )

        for entry in effective:
            if entry.block_id is not None and entry.block_id in self.blocks:
                continue
            if entry_matches(entry, entity_type, entity_id):
                return ResolvedEntry.from_entry(entry, EntrySource.base, query_date=on_date)
        return None

    def _implicit_duty(
        self,
        entity_type: EntityType,
        entity_id: str,
        day: str,
        slot_id: int,
        entries: tuple[ScheduleEntry, ...],
        on_date: date | None,
    ) -> ResolvedEntry | None:
        if slot_id != self.policy.slot_id or entity_type == EntityType.ROOM:
            return None

        if entity_type == EntityType.CLASS:
            section_id = entity_id.strip()
            teacher = self.directory.homeroom_teacher_of(section_id)
            if teacher is None:
                return None
            # The homeroom teacher is committed elsewhere in this slot.
            if self._resolve_explicit(EntityType.STAFF, teacher.id, entries, on_date) is not None:
                return None
        else:
            teacher = self.directory.teacher(entity_id)
            section_id = self.directory.homeroom_section_of(entity_id)
            if teacher is None or section_id is None:
                return None
            # Someone else already holds the homeroom's first period.
            if self._resolve_explicit(EntityType.CLASS, section_id, entries, on_date) is not None:
                return None

        grade = self.directory.grade_of_section(section_id)
        if not self.policy.covers_grade(grade):
            return None

        return ResolvedEntry(
            source=EntrySource.implicit,
            day=day,
            slot_id=slot_id,
            section_id=section_id,
            teacher_id=teacher.id,
            subject=self._homeroom_subject(teacher.id, grade),
            date=on_date,
        )

    def _homeroom_subject(self, teacher_id: str, grade: int) -> str:
        assignment = self.directory.assignment_for(teacher_id, grade)
        if assignment is None:
            return self.policy.fallback_subject
        if self.policy.subject_rule == ANCHOR_SUBJECT and assignment.anchor_subject:
            return assignment.anchor_subject.strip()
        if assignment.loads:
            return assignment.loads[0].subject
        return self.policy.fallback_subject

    def week_grid(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        slot_ids: list[int],
        week_dates: dict[str, date] | None = None,
    ) -> dict[str, dict[int, ResolvedEntry | None]]:
        grid: dict[str, dict[int, ResolvedEntry | None]] = {}
        for day in self.store.week_days:
            on_date = week_dates.get(day) if week_dates else None
            grid[day] = {
                slot_id: self.resolve(entity_type, entity_id, day, slot_id, on_date) for slot_id in slot_ids
            }
        return grid

    def master_view(
        self,
        section_ids: list[str],
        day: str,
        slot_ids: list[int],
        date: date | None = None,
    ) -> dict[str, dict[int, ResolvedEntry | None]]:
        return {
            section_id: {
                slot_id: self.resolve(EntityType.CLASS, section_id, day, slot_id, date) for slot_id in slot_ids
            }
            for section_id in section_ids
        }

    def busy_teachers(self, day: str, slot_id: int, date: date | None = None) -> list[str]:
        """Teachers effectively committed in a slot, homeroom duty included."""
        day = normalize_day(day)
        busy: dict[str, str] = {}
        for entry in self.store.entries_for_slot(day, slot_id):
            if entry.date is not None and entry.date != date:
                continue
            resolved = self.resolve(EntityType.CLASS, entry.section_id, day, slot_id, date)
            if resolved is not None:
                busy.setdefault(normalize_ref(resolved.teacher_id), resolved.teacher_id)
        if slot_id == self.policy.slot_id:
            for teacher in self.directory.homeroom_teachers():
                if normalize_ref(teacher.id) in busy:
                    continue
                if self.resolve(EntityType.STAFF, teacher.id, day, slot_id, date) is not None:
                    busy[normalize_ref(teacher.id)] = teacher.id
        return sorted(busy.values())
