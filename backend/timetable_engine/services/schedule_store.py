from __future__ import annotations

from collections.abc import Iterable
import logging
from threading import Lock
from typing import TYPE_CHECKING

from timetable_engine.core.config import DEFAULT_WEEK_DAYS
from timetable_engine.core.exceptions import (
    ResourceNotFoundError,
    ScheduleConflictError,
    ScheduleValidationError,
)
from timetable_engine.schemas.timetable import ScheduleEntry, normalize_ref
from timetable_engine.services.calendar import weekday_name
from timetable_engine.services.conflict_service import ConflictDetector

if TYPE_CHECKING:
    from timetable_engine.services.block_registry import CombinedBlockRegistry
    from timetable_engine.services.directory import SchoolDirectory

logger = logging.getLogger(__name__)

SlotKey = tuple[str, int]


class ScheduleStore:
    """Base and date-override entries, bucketed by (day, slot).

    Each bucket is an immutable tuple that a commit replaces wholesale, so a
    reader holding a bucket never observes a half-applied change.
    """

    def __init__(
        self,
        *,
        week_days: Iterable[str] | None = None,
        blocks: "CombinedBlockRegistry | None" = None,
        directory: "SchoolDirectory | None" = None,
    ) -> None:
        self.week_days = list(week_days or DEFAULT_WEEK_DAYS)
        self.blocks = blocks
        self.directory = directory
        self._buckets: dict[SlotKey, tuple[ScheduleEntry, ...]] = {}
        self._index: dict[str, SlotKey] = {}
        self._lock = Lock()
        self.detector = ConflictDetector(self)

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._index

    def entries_for_slot(self, day: str, slot_id: int) -> tuple[ScheduleEntry, ...]:
        return self._buckets.get((day, slot_id), ())

    def slots(self) -> list[SlotKey]:
        return sorted(key for key, bucket in self._buckets.items() if bucket)

    def find(self, entry_id: str) -> ScheduleEntry | None:
        key = self._index.get(entry_id)
        if key is None:
            return None
        for entry in self._buckets.get(key, ()):
            if entry.id == entry_id:
                return entry
        return None

    def get(self, entry_id: str) -> ScheduleEntry:
        entry = self.find(entry_id)
        if entry is None:
            raise ResourceNotFoundError("Schedule entry", entry_id)
        return entry

    def all_entries(self) -> list[ScheduleEntry]:
        return sorted(
            (entry for bucket in self._buckets.values() for entry in bucket),
            key=lambda entry: entry.id,
        )

    def entries_for_block(self, block_id: str) -> list[ScheduleEntry]:
        return [entry for entry in self.all_entries() if entry.block_id == block_id]

    def validate(self, entry: ScheduleEntry) -> None:
        fields: list[str] = []
        if not entry.section_id:
            fields.append("section_id")
        if not entry.teacher_id:
            fields.append("teacher_id")
        if not entry.subject:
            fields.append("subject")
        if entry.slot_id < 1:
            fields.append("slot_id")
        if entry.day not in self.week_days:
            fields.append("day")
        if entry.date is not None and weekday_name(entry.date) != entry.day:
            fields.append("date")
        if entry.is_substitution and entry.date is None:
            fields.append("date")
        if fields:
            raise ScheduleValidationError(f"Schedule entry {entry.id} has missing or invalid fields", fields)

        if self.directory is not None and not self.directory.has_section(entry.section_id):
            raise ResourceNotFoundError("Section", entry.section_id)
        if entry.block_id is not None and self.blocks is not None:
            block = self.blocks.get(entry.block_id)
            if entry.section_id not in block.section_ids:
                raise ScheduleValidationError(
                    f"Section {entry.section_id} is not a member of block {entry.block_id}",
                    ["block_id"],
                )
            allocation = block.allocation_for_section(entry.section_id)
            stale = [
                name
                for name, stored, expected in (
                    ("teacher_id", entry.teacher_id, allocation.teacher_id),
                    ("subject", entry.subject, allocation.subject),
                    ("room", entry.room, allocation.room),
                )
                if normalize_ref(stored) != normalize_ref(expected)
            ]
            if stale:
                raise ScheduleValidationError(
                    f"Entry {entry.id} does not match its allocation in block {entry.block_id}",
                    stale,
                )

    def upsert(
        self,
        entry: ScheduleEntry,
        *,
        acknowledge_conflicts: bool = False,
        allow_substitution: bool = False,
    ) -> ScheduleEntry:
        """Validate, conflict-check and commit one entry.

        Raises ScheduleConflictError without committing when the entry would
        double-book a teacher or room, unless ``acknowledge_conflicts`` is set,
        in which case the entry is committed with ``clashing=True``.
        ``allow_substitution`` is reserved for the substitution ledger.
        """
        committed = self.apply(
            upserts=[entry],
            acknowledge_conflicts=acknowledge_conflicts,
            allow_substitution=allow_substitution,
        )
        return committed[0]

    def remove(self, entry_id: str, *, allow_substitution: bool = False) -> ScheduleEntry:
        """Remove one entry. Removing an override exposes the base entry again."""
        entry = self.get(entry_id)
        self.apply(removals=[entry_id], allow_substitution=allow_substitution)
        return entry

    def apply(
        self,
        upserts: Iterable[ScheduleEntry] = (),
        removals: Iterable[str] = (),
        *,
        acknowledge_conflicts: bool = False,
        allow_substitution: bool = False,
    ) -> list[ScheduleEntry]:
        """Commit a batch of upserts and removals all-or-nothing."""
        upserts = list(upserts)
        removal_ids = list(dict.fromkeys(removals))

        with self._lock:
            for entry_id in removal_ids:
                existing = self.find(entry_id)
                if existing is None:
                    raise ResourceNotFoundError("Schedule entry", entry_id)
                if existing.is_substitution and not allow_substitution:
                    raise ScheduleValidationError(
                        f"Entry {entry_id} is a substitution override owned by the substitution ledger",
                        ["is_substitution"],
                    )

            seen: set[str] = set()
            for entry in upserts:
                if entry.id in seen:
                    raise ScheduleValidationError(f"Entry {entry.id} appears twice in one batch", ["id"])
                seen.add(entry.id)
                self.validate(entry)
                existing = self.find(entry.id)
                owned = entry.is_substitution or (
                    existing is not None and existing.is_substitution and entry.id not in removal_ids
                )
                if owned and not allow_substitution:
                    raise ScheduleValidationError(
                        f"Entry {entry.id} is a substitution override owned by the substitution ledger",
                        ["is_substitution"],
                    )

            staged: list[ScheduleEntry] = []
            all_conflicts: dict[str, ScheduleEntry] = {}
            report = []
            for entry in upserts:
                conflicts = self.detector.detect(entry, pending=staged, removed=removal_ids)
                if conflicts:
                    for other in conflicts:
                        all_conflicts[other.id] = other
                    report.extend(self.detector.describe(entry, conflicts))
                staged.append(entry.model_copy(update={"clashing": bool(conflicts)}))

            if all_conflicts and not acknowledge_conflicts:
                logger.info(
                    "Rejected %d schedule change(s): %d conflicting entr%s",
                    len(upserts),
                    len(all_conflicts),
                    "y" if len(all_conflicts) == 1 else "ies",
                )
                raise ScheduleConflictError(
                    "Teacher or room is already committed in this slot",
                    conflicts=sorted(all_conflicts.values(), key=lambda entry: entry.id),
                    report=report,
                )

            self._commit(staged, removal_ids)

        if all_conflicts:
            logger.warning("Committed %d schedule change(s) with acknowledged clashes", len(staged))
        else:
            logger.debug("Committed %d upsert(s), %d removal(s)", len(staged), len(removal_ids))
        return staged

    def _commit(self, staged: list[ScheduleEntry], removal_ids: list[str]) -> None:
        touched: dict[SlotKey, dict[str, ScheduleEntry]] = {}

        def bucket_for(key: SlotKey) -> dict[str, ScheduleEntry]:
            if key not in touched:
                touched[key] = {entry.id: entry for entry in self._buckets.get(key, ())}
            return touched[key]

        for entry_id in removal_ids:
            key = self._index[entry_id]
            bucket_for(key).pop(entry_id, None)
        for entry in staged:
            bucket_for((entry.day, entry.slot_id))[entry.id] = entry

        for key, entries in touched.items():
            bucket = tuple(sorted(entries.values(), key=lambda entry: entry.id))
            if bucket:
                self._buckets[key] = bucket
            else:
                self._buckets.pop(key, None)
        for entry_id in removal_ids:
            self._index.pop(entry_id, None)
        for entry in staged:
            self._index[entry.id] = (entry.day, entry.slot_id)

    def load(self, entries: Iterable[ScheduleEntry]) -> int:
        """Bulk-load trusted rows from storage; clashes on record are kept as tagged."""
        count = 0
        with self._lock:
            staged = []
            for entry in entries:
                self.validate(entry)
                staged.append(entry)
            self._commit(staged, [])
            count = len(staged)
        logger.info("Loaded %d schedule entries", count)
        return count
