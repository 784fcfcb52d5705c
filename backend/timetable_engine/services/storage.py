from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from timetable_engine.core.config import Settings
from timetable_engine.models.combined_block import CombinedBlockRow
from timetable_engine.models.schedule_entry import ScheduleEntryRow
from timetable_engine.models.school_directory import SchoolDirectoryRow
from timetable_engine.models.substitution_record import SubstitutionRecordRow
from timetable_engine.schemas.block import CombinedBlock
from timetable_engine.schemas.directory import DirectoryPayload
from timetable_engine.schemas.substitution import SubstitutionRecord
from timetable_engine.schemas.timetable import ScheduleEntry
from timetable_engine.services.engine import TimetableEngine

logger = logging.getLogger(__name__)

DIRECTORY_ROW_ID = 1

ENTRY_COLUMNS = (
    "day",
    "slot_id",
    "section_id",
    "teacher_id",
    "subject",
    "room",
    "date",
    "is_substitution",
    "block_id",
    "clashing",
)

RECORD_COLUMNS = (
    "date",
    "day",
    "slot_id",
    "section_id",
    "absent_teacher_id",
    "substitute_teacher_id",
    "subject",
    "room",
    "entry_id",
    "status",
)


def _entry_from_row(row: ScheduleEntryRow) -> ScheduleEntry:
    return ScheduleEntry(**{column: getattr(row, column) for column in ENTRY_COLUMNS})


def _block_from_row(row: CombinedBlockRow) -> CombinedBlock:
    return CombinedBlock(
        id=row.id,
        name=row.name,
        section_ids=row.section_ids or [],
        allocations=row.allocations or [],
    )


def _block_values(block: CombinedBlock) -> dict:
    return {
        "name": block.name,
        "section_ids": list(block.section_ids),
        "allocations": [allocation.model_dump() for allocation in block.allocations],
    }


def load_engine(db: Session, settings: Settings | None = None) -> TimetableEngine:
    """Build an engine from stored rows: directory, then blocks, then entries, then records."""
    engine = TimetableEngine(settings=settings)

    directory_row = db.get(SchoolDirectoryRow, DIRECTORY_ROW_ID)
    if directory_row is not None:
        engine.replace_directory(DirectoryPayload.model_validate(directory_row.payload))

    engine.blocks.load(_block_from_row(row) for row in db.scalars(select(CombinedBlockRow)))
    engine.store.load(
        _entry_from_row(row) for row in db.scalars(select(ScheduleEntryRow).order_by(ScheduleEntryRow.id))
    )
    engine.ledger.load(
        SubstitutionRecord.model_validate(row) for row in db.scalars(select(SubstitutionRecordRow))
    )
    return engine


def save_directory(db: Session, payload: DirectoryPayload) -> None:
    db.merge(SchoolDirectoryRow(id=DIRECTORY_ROW_ID, payload=payload.model_dump(mode="json")))


def sync_entries(db: Session, entries: list[ScheduleEntry]) -> tuple[int, int]:
    """Mirror the store into schedule_entries; returns (written, deleted)."""
    rows = {row.id: row for row in db.scalars(select(ScheduleEntryRow))}
    written = 0
    for entry in entries:
        values = entry.model_dump(include=set(ENTRY_COLUMNS))
        row = rows.pop(entry.id, None)
        if row is not None and all(getattr(row, column) == values[column] for column in ENTRY_COLUMNS):
            continue
        db.merge(ScheduleEntryRow(id=entry.id, **values))
        written += 1
    for row in rows.values():
        db.delete(row)
    return written, len(rows)


def sync_blocks(db: Session, blocks: list[CombinedBlock]) -> None:
    rows = {row.id: row for row in db.scalars(select(CombinedBlockRow))}
    for block in blocks:
        values = _block_values(block)
        row = rows.pop(block.id, None)
        if row is not None and all(getattr(row, key) == value for key, value in values.items()):
            continue
        db.merge(CombinedBlockRow(id=block.id, **values))
    for row in rows.values():
        db.delete(row)


def sync_records(db: Session, records: list[SubstitutionRecord]) -> None:
    # Records are never deleted, only archived.
    rows = {row.id: row for row in db.scalars(select(SubstitutionRecordRow))}
    for record in records:
        row = rows.get(record.id)
        if row is not None and all(getattr(row, column) == getattr(record, column) for column in RECORD_COLUMNS):
            continue
        db.merge(
            SubstitutionRecordRow(id=record.id, **{column: getattr(record, column) for column in RECORD_COLUMNS})
        )


def persist(db: Session, engine: TimetableEngine) -> None:
    """Write the engine's current state through; safe to repeat after a failed commit."""
    sync_blocks(db, list(engine.blocks))
    written, deleted = sync_entries(db, engine.store.all_entries())
    sync_records(db, engine.ledger.audit())
    db.commit()
    logger.debug("Persisted schedule: %d entries written, %d deleted", written, deleted)
