from datetime import date

import pytest

from timetable_engine.schemas.timetable import ScheduleEntry
from timetable_engine.services.schedule_store import ScheduleStore

MONDAY = date(2024, 5, 6)
NEXT_MONDAY = date(2024, 5, 13)


def make_entry(section, teacher, room, slot=2, **extra):
    return ScheduleEntry(
        day="Monday", slot_id=slot, section_id=section, teacher_id=teacher, subject="Math", room=room, **extra
    )


@pytest.fixture
def store():
    return ScheduleStore()


def test_detect_teacher_conflict(store):
    existing = store.upsert(make_entry("8B", "T1", "R199"))

    conflicts = store.detector.detect(make_entry("9A", "T1", "R200"))

    assert conflicts == [existing]


def test_detect_room_conflict_and_describe(store):
    store.upsert(make_entry("8B", "T1", "R101"))
    candidate = make_entry("9A", "T2", "r101")

    conflicts = store.detector.detect(candidate)
    details = store.detector.describe(candidate, conflicts)

    assert len(details) == 1
    assert details[0].conflict_type == "room_conflict"
    assert "Room r101" in details[0].description
    assert details[0].affected_entries == ["Monday:2:9A:base", "Monday:2:8B:base"]


def test_teacher_ids_compare_trimmed_and_case_insensitive(store):
    store.upsert(make_entry("8B", "t1", None))
    assert store.detector.detect(make_entry("9A", " T1 ", None))


def test_missing_rooms_never_conflict(store):
    store.upsert(make_entry("8B", "T1", None))
    assert store.detector.detect(make_entry("9A", "T2", None)) == []


def test_same_entry_id_is_not_a_conflict(store):
    store.upsert(make_entry("9A", "T1", "R1"))
    assert store.detector.detect(make_entry("9A", "T1", "R1")) == []


def test_conflict_symmetry(store):
    a = make_entry("8B", "T1", "R1")
    b = make_entry("9A", "T1", "R2")
    store.upsert(a)
    assert [item.id for item in store.detector.detect(b)] == [a.id]

    store.upsert(b, acknowledge_conflicts=True)
    store.remove(a.id)
    assert [item.id for item in store.detector.detect(a)] == [b.id]


def test_same_block_entries_are_exempt(store):
    store.upsert(make_entry("9A", "T1", "R1", block_id="B"))
    assert store.detector.detect(make_entry("9B", "T1", "R1", block_id="B")) == []


def test_different_blocks_sharing_teacher_conflict(store):
    store.upsert(make_entry("9A", "T1", "R1", block_id="B1"))
    assert store.detector.detect(make_entry("9B", "T1", "R2", block_id="B2"))


def test_override_only_competes_on_its_own_date(store):
    store.upsert(make_entry("8B", "T2", "R1", date=MONDAY))

    assert store.detector.detect(make_entry("9A", "T2", "R2", date=NEXT_MONDAY)) == []
    assert store.detector.detect(make_entry("9A", "T2", "R2", date=MONDAY))


def test_base_competes_with_override_on_override_date(store):
    override = store.upsert(make_entry("8B", "T2", "R1", date=MONDAY))
    assert store.detector.detect(make_entry("9A", "T2", "R2")) == [override]


def test_shadowed_base_does_not_conflict_on_override_date(store):
    # T1 is replaced in 8B on Monday, so T1 is free to cover 9A that day.
    store.upsert(make_entry("8B", "T1", "R1"))
    store.upsert(make_entry("8B", "T6", "R1", date=MONDAY))

    assert store.detector.detect(make_entry("9A", "T1", "R2", date=MONDAY)) == []
    assert store.detector.detect(make_entry("9A", "T1", "R2", date=NEXT_MONDAY))


def test_base_candidate_is_shadowed_by_own_override(store):
    store.upsert(make_entry("8B", "T6", "R1", date=MONDAY))
    store.upsert(make_entry("9A", "T2", "R2", date=MONDAY))

    # 9A has its own Monday override, so its base entry does not apply that day.
    assert store.detector.detect(make_entry("9A", "T6", "R5")) == []


def test_report_lists_each_clash_once(store):
    store.upsert(make_entry("8B", "T1", "R1"))
    store.upsert(make_entry("9A", "T1", "R1"), acknowledge_conflicts=True)
    store.upsert(make_entry("9B", "T2", "R9", slot=3))

    report = store.detector.report()

    assert sorted(item.conflict_type for item in report.conflicts) == ["room_conflict", "teacher_conflict"]
    assert all(item.affected_entries == ["Monday:2:8B:base", "Monday:2:9A:base"] for item in report.conflicts)
