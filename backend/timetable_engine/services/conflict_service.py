from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import TYPE_CHECKING

from timetable_engine.schemas.conflict import ConflictDetail, ConflictReport
from timetable_engine.schemas.timetable import ScheduleEntry, normalize_ref

if TYPE_CHECKING:
    from timetable_engine.services.schedule_store import ScheduleStore


def _shares_teacher(a: ScheduleEntry, b: ScheduleEntry) -> bool:
    teacher = normalize_ref(a.teacher_id)
    return bool(teacher) and teacher == normalize_ref(b.teacher_id)


def _shares_room(a: ScheduleEntry, b: ScheduleEntry) -> bool:
    room = normalize_ref(a.room)
    return bool(room) and room == normalize_ref(b.room)


def _same_block(a: ScheduleEntry, b: ScheduleEntry) -> bool:
    return a.block_id is not None and a.block_id == b.block_id


def _overridden_sections(view: Iterable[ScheduleEntry], on_date: date) -> set[str]:
    return {entry.section_id for entry in view if entry.date == on_date}


class ConflictDetector:
    """Teacher and room double-booking checks over one (day, slot) bucket.

    An override only competes with entries that apply on its own date; a base
    entry applies on every date unless an override shadows it for its section.
    """

    def __init__(self, store: "ScheduleStore") -> None:
        self.store = store

    def _view(
        self,
        candidate: ScheduleEntry,
        pending: Iterable[ScheduleEntry],
        removed: Iterable[str],
    ) -> list[ScheduleEntry]:
        staged = [
            entry
            for entry in pending
            if entry.day == candidate.day and entry.slot_id == candidate.slot_id and entry.id != candidate.id
        ]
        hidden = set(removed) | {entry.id for entry in staged} | {candidate.id}
        existing = [
            entry for entry in self.store.entries_for_slot(candidate.day, candidate.slot_id) if entry.id not in hidden
        ]
        return existing + staged

    @staticmethod
    def _applies_with(candidate: ScheduleEntry, other: ScheduleEntry, view: list[ScheduleEntry]) -> bool:
        if candidate.date is None and other.date is None:
            return True
        if candidate.date is None:
            # The base candidate competes on the override's date unless it is shadowed there.
            return candidate.section_id not in _overridden_sections(view, other.date)
        if other.date is not None:
            return other.date == candidate.date
        shadowed = _overridden_sections(view, candidate.date) | {candidate.section_id}
        return other.section_id not in shadowed

    def detect(
        self,
        candidate: ScheduleEntry,
        *,
        pending: Iterable[ScheduleEntry] = (),
        removed: Iterable[str] = (),
    ) -> list[ScheduleEntry]:
        view = self._view(candidate, pending, removed)
        conflicts: list[ScheduleEntry] = []
        for other in view:
            if _same_block(candidate, other):
                continue
            if not (_shares_teacher(candidate, other) or _shares_room(candidate, other)):
                continue
            if not self._applies_with(candidate, other, view):
                continue
            conflicts.append(other)
        return sorted(conflicts, key=lambda entry: entry.id)

    def describe(self, candidate: ScheduleEntry, conflicts: Iterable[ScheduleEntry]) -> list[ConflictDetail]:
        details: list[ConflictDetail] = []
        for other in conflicts:
            if _shares_teacher(candidate, other):
                details.append(
                    ConflictDetail(
                        id=f"teacher:{candidate.id}|{other.id}",
                        conflict_type="teacher_conflict",
                        description=(
                            f"Teacher {candidate.teacher_id} is already teaching {other.section_id} "
                            f"on {other.day} slot {other.slot_id}"
                        ),
                        day=candidate.day,
                        slot_id=candidate.slot_id,
                        affected_entries=[candidate.id, other.id],
                    )
                )
            if _shares_room(candidate, other):
                details.append(
                    ConflictDetail(
                        id=f"room:{candidate.id}|{other.id}",
                        conflict_type="room_conflict",
                        description=(
                            f"Room {candidate.room} is occupied by {other.section_id} "
                            f"on {other.day} slot {other.slot_id}"
                        ),
                        day=candidate.day,
                        slot_id=candidate.slot_id,
                        affected_entries=[candidate.id, other.id],
                    )
                )
        return details

    def report(self) -> ConflictReport:
        """Every clash currently on record, each pair reported once."""
        conflicts: list[ConflictDetail] = []
        for day, slot_id in self.store.slots():
            for entry in self.store.entries_for_slot(day, slot_id):
                later = [other for other in self.detect(entry) if other.id > entry.id]
                conflicts.extend(self.describe(entry, later))
        return ConflictReport(conflicts=conflicts)
