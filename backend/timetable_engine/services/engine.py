from __future__ import annotations

import logging
from threading import RLock

from timetable_engine.core.config import Settings, get_settings
from timetable_engine.core.exceptions import AppError, ResourceNotFoundError, ScheduleValidationError
from timetable_engine.schemas.block import CombinedBlock
from timetable_engine.schemas.directory import DirectoryPayload
from timetable_engine.schemas.timetable import EntityType, ScheduleEntry, normalize_day
from timetable_engine.services.block_registry import CombinedBlockRegistry, validate_block
from timetable_engine.services.directory import SchoolDirectory
from timetable_engine.services.notification_hub import NotificationHub
from timetable_engine.services.resolver import HomeroomPolicy, Resolver, entry_matches
from timetable_engine.services.schedule_store import ScheduleStore
from timetable_engine.services.substitution_ledger import SubstitutionLedger

logger = logging.getLogger(__name__)


class TimetableEngine:
    """Wires the store, block registry, resolver and ledger around one directory.

    ``lock`` is for hosts that accept concurrent editors; the components
    themselves assume one mutation at a time.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        directory: SchoolDirectory | None = None,
        hub: NotificationHub | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.directory = directory or SchoolDirectory()
        self.hub = hub or NotificationHub()
        self.blocks = CombinedBlockRegistry()
        self.store = ScheduleStore(
            week_days=self.settings.week_days,
            blocks=self.blocks,
            directory=self.directory,
        )
        self.detector = self.store.detector
        self.resolver = Resolver(
            self.store,
            self.blocks,
            self.directory,
            HomeroomPolicy.from_settings(self.settings),
        )
        self.ledger = SubstitutionLedger(self.store, self.resolver, hub=self.hub)
        self.lock = RLock()

    def replace_directory(self, payload: DirectoryPayload) -> None:
        self.directory.replace(payload)
        logger.info(
            "Directory replaced: %d sections, %d teachers",
            len(payload.sections),
            len(payload.teachers),
        )

    def block_placements(self, block_id: str) -> list[tuple[str, int]]:
        return sorted(
            {(entry.day, entry.slot_id) for entry in self.store.entries_for_block(block_id) if entry.date is None}
        )

    def _expand(self, block: CombinedBlock, day: str, slot_id: int) -> list[ScheduleEntry]:
        return [
            ScheduleEntry(
                day=day,
                slot_id=slot_id,
                section_id=section_id,
                teacher_id=allocation.teacher_id,
                subject=allocation.subject,
                room=allocation.room,
                block_id=block.id,
            )
            for section_id, allocation in zip(block.section_ids, block.allocations)
        ]

    def _check_cells_free(self, block: CombinedBlock, entries: list[ScheduleEntry]) -> None:
        for entry in entries:
            occupant = self.store.find(entry.id)
            if occupant is not None and occupant.block_id != block.id:
                raise ScheduleValidationError(
                    f"Section {entry.section_id} already has a lesson on {entry.day} slot {entry.slot_id}",
                    ["day", "slot_id"],
                )

    def define_block(self, block: CombinedBlock, *, acknowledge_conflicts: bool = False) -> CombinedBlock:
        """Create or redefine a block; placed copies are re-expanded atomically."""
        validate_block(block)
        previous = self.blocks.find(block.id)
        placements = self.block_placements(block.id)
        upserts: list[ScheduleEntry] = []
        removals: list[str] = []
        for day, slot_id in placements:
            expanded = self._expand(block, day, slot_id)
            self._check_cells_free(block, expanded)
            keep = {entry.id for entry in expanded}
            upserts.extend(expanded)
            removals.extend(
                entry.id
                for entry in self.store.entries_for_slot(day, slot_id)
                if entry.block_id == block.id and entry.date is None and entry.id not in keep
            )

        self.blocks.define(block)
        if not placements:
            return block
        try:
            self.store.apply(upserts, removals, acknowledge_conflicts=acknowledge_conflicts)
        except AppError:
            if previous is not None:
                self.blocks.define(previous)
            else:
                self.blocks.remove(block.id)
            raise
        logger.info("Re-expanded block %s at %d placement(s)", block.id, len(placements))
        return block

    def remove_block(self, block_id: str) -> CombinedBlock:
        self.blocks.get(block_id)
        removals = [entry.id for entry in self.store.entries_for_block(block_id) if entry.date is None]
        if removals:
            self.store.apply(removals=removals)
        return self.blocks.remove(block_id)

    def place_block(
        self,
        block_id: str,
        day: str,
        slot_id: int,
        *,
        acknowledge_conflicts: bool = False,
    ) -> list[ScheduleEntry]:
        block = self.blocks.get(block_id)
        entries = self._expand(block, normalize_day(day), slot_id)
        self._check_cells_free(block, entries)
        committed = self.store.apply(entries, acknowledge_conflicts=acknowledge_conflicts)
        logger.info("Placed block %s at %s slot %s", block_id, day, slot_id)
        return committed

    def unplace_block(self, block_id: str, day: str, slot_id: int) -> list[ScheduleEntry]:
        day = normalize_day(day)
        placed = [
            entry
            for entry in self.store.entries_for_slot(day, slot_id)
            if entry.block_id == block_id and entry.date is None
        ]
        if not placed:
            raise ResourceNotFoundError("Block placement", f"{block_id}@{day}:{slot_id}")
        self.store.apply(removals=[entry.id for entry in placed])
        return placed

    def _base_entry_in_cell(
        self, entity_type: EntityType, entity_id: str, day: str, slot_id: int, field: str
    ) -> ScheduleEntry | None:
        matches = [
            entry for entry in self.store.entries_for_slot(day, slot_id) if entry_matches(entry, entity_type, entity_id)
        ]
        base = [entry for entry in matches if entry.date is None]
        if not base and matches:
            raise ScheduleValidationError(
                f"Only date-specific overrides exist for {entity_id} on {day} slot {slot_id}; they cannot be moved",
                [field],
            )
        return min(base, key=lambda entry: entry.id) if base else None

    def _group(self, entry: ScheduleEntry | None) -> list[ScheduleEntry]:
        if entry is None:
            return []
        if entry.block_id is None:
            return [entry]
        return [
            other
            for other in self.store.entries_for_slot(entry.day, entry.slot_id)
            if other.block_id == entry.block_id and other.date is None
        ]

    def move(
        self,
        entity_type: EntityType | str,
        entity_id: str,
        source: tuple[str, int],
        target: tuple[str, int],
    ) -> list[ScheduleEntry]:
        """Move an entity's base entry to another cell, swapping with what it finds there.

        Block entries travel together; every moved entry is conflict-checked at
        its new cell and the whole move is rejected on any clash.
        """
        entity_type = EntityType(entity_type)
        source = (normalize_day(source[0]), source[1])
        target = (normalize_day(target[0]), target[1])
        if source == target:
            return []

        from_source = self._group(self._base_entry_in_cell(entity_type, entity_id, *source, "source"))
        from_target = self._group(self._base_entry_in_cell(entity_type, entity_id, *target, "target"))
        if not from_source and not from_target:
            raise ResourceNotFoundError("Schedule entry", f"{entity_id}@{source[0]}:{source[1]}")

        moved = [
            entry.model_copy(update={"day": target[0], "slot_id": target[1], "clashing": False})
            for entry in from_source
        ] + [
            entry.model_copy(update={"day": source[0], "slot_id": source[1], "clashing": False})
            for entry in from_target
        ]
        removals = [entry.id for entry in from_source + from_target]
        leaving = set(removals)
        for entry in moved:
            occupant = self.store.find(entry.id)
            if occupant is not None and occupant.id not in leaving:
                raise ScheduleValidationError(
                    f"Section {entry.section_id} already has an entry on {entry.day} slot {entry.slot_id}",
                    ["target"],
                )

        committed = self.store.apply(moved, removals)
        logger.info(
            "Moved %d entr%s between %s:%s and %s:%s",
            len(committed),
            "y" if len(committed) == 1 else "ies",
            source[0],
            source[1],
            target[0],
            target[1],
        )
        return committed
