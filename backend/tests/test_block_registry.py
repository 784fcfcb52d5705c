import pytest

from timetable_engine.core.exceptions import ResourceNotFoundError, ScheduleValidationError
from timetable_engine.schemas.block import BlockAllocation, CombinedBlock
from timetable_engine.schemas.timetable import EntityType
from timetable_engine.services.block_registry import CombinedBlockRegistry


def make_block(block_id="B", sections=("9A", "9B"), allocations=None, name="Electives"):
    if allocations is None:
        allocations = [("T1", "Math", "R101"), ("T2", "Science", "R102")]
    return CombinedBlock(
        id=block_id,
        name=name,
        section_ids=sections,
        allocations=[BlockAllocation(teacher_id=t, subject=s, room=r) for t, s, r in allocations],
    )


def test_define_and_lookup_allocations():
    registry = CombinedBlockRegistry()
    registry.define(make_block())

    by_section = registry.allocation_for("B", EntityType.CLASS, "9A")
    by_teacher = registry.allocation_for("B", EntityType.STAFF, " t2 ")
    by_room = registry.allocation_for("B", "ROOM", "r101")

    assert by_section.allocation.subject == "Math"
    assert (by_teacher.section_id, by_teacher.allocation.subject) == ("9B", "Science")
    assert by_room.section_id == "9A"


def test_allocation_for_non_member_is_not_found():
    registry = CombinedBlockRegistry()
    registry.define(make_block())

    with pytest.raises(ResourceNotFoundError):
        registry.allocation_for("B", EntityType.STAFF, "T6")
    with pytest.raises(ResourceNotFoundError):
        registry.allocation_for("missing", EntityType.CLASS, "9A")


def test_allocations_must_match_sections_one_to_one():
    with pytest.raises(ScheduleValidationError) as exc_info:
        CombinedBlockRegistry().define(make_block(allocations=[("T1", "Math", "R101")]))
    assert "allocations" in exc_info.value.fields


def test_incomplete_block_lists_fields():
    block = make_block(name="", sections=("9A", "9A"), allocations=[("T1", "", "R101"), ("T2", "Art", "")])
    with pytest.raises(ScheduleValidationError) as exc_info:
        CombinedBlockRegistry().define(block)

    assert exc_info.value.fields == ["name", "section_ids", "allocations[0].subject", "allocations[1].room"]


@pytest.mark.parametrize(
    "allocations",
    [
        [("T1", "Math", "R101"), ("t1", "Science", "R102")],
        [("T1", "Math", "R101"), ("T2", "Science", "r101")],
    ],
)
def test_teachers_and_rooms_unique_within_block(allocations):
    with pytest.raises(ScheduleValidationError):
        CombinedBlockRegistry().define(make_block(allocations=allocations))


def test_remove_and_membership():
    registry = CombinedBlockRegistry()
    registry.define(make_block("B2"))
    registry.define(make_block("B1"))

    assert [block.id for block in registry] == ["B1", "B2"]
    assert registry.remove("B1").id == "B1"
    assert "B1" not in registry
    assert len(registry) == 1
    with pytest.raises(ResourceNotFoundError):
        registry.remove("B1")
