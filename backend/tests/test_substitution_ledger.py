from datetime import date

import pytest

from timetable_engine.core.exceptions import (
    InvalidTransitionError,
    ResourceNotFoundError,
    ScheduleConflictError,
    ScheduleValidationError,
)
from timetable_engine.schemas.substitution import SubstitutionStatus
from timetable_engine.schemas.timetable import EntityType, ScheduleEntry
from timetable_engine.services.notification_hub import SUBSTITUTION_ACTIVATED, SUBSTITUTION_ARCHIVED

MONDAY = date(2024, 5, 6)
TUESDAY = date(2024, 5, 7)
NEXT_MONDAY = date(2024, 5, 13)


def base(section, teacher, slot, day="Monday", room=None, subject="Math"):
    return ScheduleEntry(day=day, slot_id=slot, section_id=section, teacher_id=teacher, subject=subject, room=room)


@pytest.fixture
def ledger_engine(engine):
    engine.store.upsert(base("9A", "T1", 3, room="R101"))
    engine.store.upsert(base("9B", "T2", 3, room="R102"))
    engine.store.upsert(base("9A", "T1", 3, day="Tuesday", room="R101"))
    return engine


def test_assign_creates_active_record_and_shadow_override(ledger_engine):
    record = ledger_engine.ledger.assign(MONDAY, 3, "9A", "T1", "T6")

    assert record.status == SubstitutionStatus.active
    assert (record.day, record.subject, record.room) == ("Monday", "Math", "R101")
    assert record.entry_id == "Monday:3:9A:2024-05-06"
    shadow = ledger_engine.store.get(record.entry_id)
    assert shadow.is_substitution is True
    assert shadow.teacher_id == "T6"
    assert ledger_engine.store.get("Monday:3:9A:base").teacher_id == "T1"


def test_conflicting_substitute_creates_no_record(ledger_engine):
    with pytest.raises(ScheduleConflictError):
        ledger_engine.ledger.assign(MONDAY, 3, "9A", "T1", "T2")

    assert len(ledger_engine.ledger) == 0
    assert "Monday:3:9A:2024-05-06" not in ledger_engine.store


def test_absent_teacher_must_hold_the_covered_entry(ledger_engine):
    with pytest.raises(ScheduleValidationError) as exc_info:
        ledger_engine.ledger.assign(MONDAY, 3, "9A", "T2", "T6")
    assert exc_info.value.fields == ["absent_teacher_id"]


def test_assign_requires_a_covered_entry(ledger_engine):
    with pytest.raises(ResourceNotFoundError):
        ledger_engine.ledger.assign(MONDAY, 4, "9A", "T1", "T6")


def test_assign_rejects_bad_input(ledger_engine):
    with pytest.raises(ScheduleValidationError) as exc_info:
        ledger_engine.ledger.assign(MONDAY, 3, "9A", "T1", " t1 ")
    assert exc_info.value.fields == ["substitute_teacher_id"]

    with pytest.raises(ScheduleValidationError) as exc_info:
        ledger_engine.ledger.assign(MONDAY, 3, "", "T1", "")
    assert exc_info.value.fields == ["section_id", "substitute_teacher_id"]

    # 2024-05-10 is a Friday, outside the Sunday-Thursday week.
    with pytest.raises(ScheduleValidationError) as exc_info:
        ledger_engine.ledger.assign(date(2024, 5, 10), 3, "9A", "T1", "T6")
    assert exc_info.value.fields == ["date"]


def test_implicit_homeroom_duty_can_be_covered(engine):
    record = engine.ledger.assign(MONDAY, 1, "IV A", "T3", "T6")

    resolved = engine.resolver.resolve(EntityType.CLASS, "IV A", "Monday", 1, MONDAY)
    assert (resolved.teacher_id, resolved.subject) == ("T6", "English")
    assert record.subject == "English"


def test_reassignment_archives_superseded_record(ledger_engine):
    first = ledger_engine.ledger.assign(MONDAY, 3, "9A", "T1", "T6")
    second = ledger_engine.ledger.assign(MONDAY, 3, "9A", "T1", "T5")

    assert ledger_engine.ledger.get(first.id).status == SubstitutionStatus.archived
    assert ledger_engine.ledger.get(second.id).status == SubstitutionStatus.active
    assert ledger_engine.store.get(second.entry_id).teacher_id == "T5"


def test_archive_is_terminal_and_keeps_history(ledger_engine):
    record = ledger_engine.ledger.assign(MONDAY, 3, "9A", "T1", "T6")
    before = ledger_engine.resolver.resolve(EntityType.CLASS, "9A", "Monday", 3, MONDAY)

    archived = ledger_engine.ledger.archive(record.id)

    assert archived.is_archived
    assert ledger_engine.resolver.resolve(EntityType.CLASS, "9A", "Monday", 3, MONDAY) == before
    with pytest.raises(InvalidTransitionError):
        ledger_engine.ledger.archive(record.id)
    with pytest.raises(ResourceNotFoundError):
        ledger_engine.ledger.archive("missing")


def test_active_and_audit_queries(ledger_engine):
    monday = ledger_engine.ledger.assign(MONDAY, 3, "9A", "T1", "T6")
    tuesday = ledger_engine.ledger.assign(TUESDAY, 3, "9A", "T1", "T5")
    ledger_engine.ledger.archive(monday.id)

    assert [record.id for record in ledger_engine.ledger.active(MONDAY)] == [tuesday.id]
    assert ledger_engine.ledger.active(NEXT_MONDAY) == []
    assert ledger_engine.ledger.active(MONDAY, teacher_id="t6") == []
    assert [record.id for record in ledger_engine.ledger.audit()] == [monday.id, tuesday.id]
    assert [record.id for record in ledger_engine.ledger.audit(MONDAY)] == [monday.id]
    assert [record.id for record in ledger_engine.ledger.audit(teacher_id="T1")] == [monday.id, tuesday.id]


def test_archive_for_date(ledger_engine):
    first = ledger_engine.ledger.assign(MONDAY, 3, "9A", "T1", "T6")
    second = ledger_engine.ledger.assign(MONDAY, 3, "9B", "T2", "T5")

    archived = ledger_engine.ledger.archive_for_date(MONDAY, ["9B"])
    assert [record.id for record in archived] == [second.id]

    archived = ledger_engine.ledger.archive_for_date(MONDAY)
    assert [record.id for record in archived] == [first.id]
    assert ledger_engine.ledger.active(MONDAY) == []


def test_activation_and_archive_are_published(ledger_engine):
    events = []
    ledger_engine.hub.subscribe(SUBSTITUTION_ACTIVATED, events.append)
    unsubscribe = ledger_engine.hub.subscribe(SUBSTITUTION_ARCHIVED, events.append)

    record = ledger_engine.ledger.assign(MONDAY, 3, "9A", "T1", "T6")
    ledger_engine.ledger.archive(record.id)
    unsubscribe()
    ledger_engine.ledger.archive_for_date(MONDAY)

    assert [event["event"] for event in events] == [SUBSTITUTION_ACTIVATED, SUBSTITUTION_ARCHIVED]
    assert events[0]["teacher_id"] == "T6"
    assert events[0]["record"]["id"] == record.id


def test_failing_listener_does_not_abort_assignment(ledger_engine):
    def broken(_event):
        raise RuntimeError("dispatcher offline")

    ledger_engine.hub.subscribe(SUBSTITUTION_ACTIVATED, broken)

    record = ledger_engine.ledger.assign(MONDAY, 3, "9A", "T1", "T6")
    assert record.is_active
