from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date
import logging
import uuid

from timetable_engine.core.exceptions import (
    InvalidTransitionError,
    ResourceNotFoundError,
    ScheduleConflictError,
    ScheduleValidationError,
)
from timetable_engine.schemas.substitution import SubstitutionRecord, SubstitutionStatus
from timetable_engine.schemas.timetable import EntityType, ScheduleEntry, entry_key, normalize_ref
from timetable_engine.services.calendar import weekday_name
from timetable_engine.services.notification_hub import (
    SUBSTITUTION_ACTIVATED,
    SUBSTITUTION_ARCHIVED,
    NotificationHub,
)
from timetable_engine.services.resolver import Resolver
from timetable_engine.services.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[SubstitutionStatus, set[SubstitutionStatus]] = {
    SubstitutionStatus.created: {SubstitutionStatus.active},
    SubstitutionStatus.active: {SubstitutionStatus.archived},
    SubstitutionStatus.archived: set(),
}


def _transition(record: SubstitutionRecord, target: SubstitutionStatus) -> SubstitutionRecord:
    if target not in ALLOWED_TRANSITIONS[record.status]:
        raise InvalidTransitionError(
            f"Substitution {record.id} cannot move from {record.status.value} to {target.value}"
        )
    return record.model_copy(update={"status": target})


class SubstitutionLedger:
    """Absence cover assignments and their CREATED -> ACTIVE -> ARCHIVED lifecycle.

    The ledger is the only writer of substitution overrides in the store.
    Records are never deleted.
    """

    def __init__(
        self,
        store: ScheduleStore,
        resolver: Resolver,
        *,
        hub: NotificationHub | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.hub = hub
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._records: dict[str, SubstitutionRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def assign(
        self,
        date: date,
        slot_id: int,
        section_id: str,
        absent_teacher_id: str,
        substitute_teacher_id: str,
    ) -> SubstitutionRecord:
        section_id = (section_id or "").strip()
        absent_teacher_id = (absent_teacher_id or "").strip()
        substitute_teacher_id = (substitute_teacher_id or "").strip()

        missing = [
            name
            for name, value in (
                ("section_id", section_id),
                ("absent_teacher_id", absent_teacher_id),
                ("substitute_teacher_id", substitute_teacher_id),
            )
            if not value
        ]
        if missing:
            raise ScheduleValidationError("Substitution is missing required fields", missing)
        if normalize_ref(absent_teacher_id) == normalize_ref(substitute_teacher_id):
            raise ScheduleValidationError(
                "Substitute teacher must be different from the absent teacher",
                ["substitute_teacher_id"],
            )

        day = weekday_name(date)
        if day not in self.store.week_days:
            raise ScheduleValidationError(f"{date.isoformat()} falls on {day}, outside the teaching week", ["date"])

        covered = self.resolver.resolve(
            EntityType.CLASS, section_id, day, slot_id, date, skip_substitutions=True
        )
        if covered is None:
            raise ResourceNotFoundError("Schedule entry", entry_key(day, slot_id, section_id, None))
        if normalize_ref(covered.teacher_id) != normalize_ref(absent_teacher_id):
            raise ScheduleValidationError(
                f"{absent_teacher_id} is not scheduled for {section_id} on {day} slot {slot_id}",
                ["absent_teacher_id"],
            )

        record = SubstitutionRecord(
            id=self._id_factory(),
            date=date,
            day=day,
            slot_id=slot_id,
            section_id=section_id,
            absent_teacher_id=absent_teacher_id,
            substitute_teacher_id=substitute_teacher_id,
            subject=covered.subject,
            room=covered.room,
        )
        override = ScheduleEntry(
            day=day,
            slot_id=slot_id,
            section_id=section_id,
            teacher_id=substitute_teacher_id,
            subject=covered.subject,
            room=covered.room,
            date=date,
            is_substitution=True,
        )
        try:
            committed = self.store.upsert(override, allow_substitution=True)
        except ScheduleConflictError:
            logger.info(
                "Substitute %s is already committed on %s slot %s; assignment %s dropped",
                substitute_teacher_id,
                date.isoformat(),
                slot_id,
                record.id,
            )
            raise

        for previous in self._records.values():
            if previous.is_active and previous.entry_id == committed.id:
                self._records[previous.id] = _transition(previous, SubstitutionStatus.archived)
                logger.info("Substitution %s superseded by %s", previous.id, record.id)

        record = _transition(record, SubstitutionStatus.active).model_copy(update={"entry_id": committed.id})
        self._records[record.id] = record
        logger.info(
            "Substitution %s active: %s covers %s for %s on %s slot %s",
            record.id,
            substitute_teacher_id,
            absent_teacher_id,
            section_id,
            date.isoformat(),
            slot_id,
        )
        self._publish(SUBSTITUTION_ACTIVATED, record)
        return record

    def archive(self, record_id: str) -> SubstitutionRecord:
        """Retire a record. The override entry it produced stays as history."""
        record = self.get(record_id)
        archived = _transition(record, SubstitutionStatus.archived)
        self._records[record_id] = archived
        logger.info("Substitution %s archived", record_id)
        self._publish(SUBSTITUTION_ARCHIVED, archived)
        return archived

    def archive_for_date(self, on_date: date, section_ids: Iterable[str] | None = None) -> list[SubstitutionRecord]:
        wanted = {section.strip() for section in section_ids} if section_ids is not None else None
        targets = [
            record
            for record in self.audit(on_date)
            if record.is_active and (wanted is None or record.section_id in wanted)
        ]
        return [self.archive(record.id) for record in targets]

    def get(self, record_id: str) -> SubstitutionRecord:
        record = self._records.get(record_id)
        if record is None:
            raise ResourceNotFoundError("Substitution record", record_id)
        return record

    def active(self, today: date, teacher_id: str | None = None) -> list[SubstitutionRecord]:
        """ACTIVE duties dated today or later; ``today`` is supplied by the caller."""
        return [
            record
            for record in self._sorted()
            if record.is_active
            and record.date >= today
            and (teacher_id is None or normalize_ref(record.substitute_teacher_id) == normalize_ref(teacher_id))
        ]

    def audit(self, on_date: date | None = None, teacher_id: str | None = None) -> list[SubstitutionRecord]:
        wanted = normalize_ref(teacher_id) if teacher_id is not None else None
        return [
            record
            for record in self._sorted()
            if (on_date is None or record.date == on_date)
            and (
                wanted is None
                or normalize_ref(record.substitute_teacher_id) == wanted
                or normalize_ref(record.absent_teacher_id) == wanted
            )
        ]

    def load(self, records: Iterable[SubstitutionRecord]) -> int:
        count = 0
        for record in records:
            self._records[record.id] = record
            count += 1
        logger.info("Loaded %d substitution records", count)
        return count

    def _sorted(self) -> list[SubstitutionRecord]:
        return sorted(self._records.values(), key=lambda record: (record.date, record.slot_id, record.section_id, record.id))

    def _publish(self, event: str, record: SubstitutionRecord) -> None:
        if self.hub is None:
            return
        self.hub.publish(
            event,
            {
                "teacher_id": record.substitute_teacher_id,
                "record": record.model_dump(mode="json"),
            },
        )
