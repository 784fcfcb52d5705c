from __future__ import annotations

from collections.abc import Iterable, Iterator
import logging

from timetable_engine.core.exceptions import ResourceNotFoundError, ScheduleValidationError
from timetable_engine.schemas.block import BlockAllocationMatch, CombinedBlock
from timetable_engine.schemas.timetable import EntityType, normalize_ref

logger = logging.getLogger(__name__)


def validate_block(block: CombinedBlock) -> None:
    fields: list[str] = []
    if not block.id:
        fields.append("id")
    if not block.name:
        fields.append("name")
    if not block.section_ids or any(not section for section in block.section_ids):
        fields.append("section_ids")
    elif len(set(block.section_ids)) != len(block.section_ids):
        fields.append("section_ids")
    if not block.allocations or len(block.allocations) != len(block.section_ids):
        fields.append("allocations")
    for index, allocation in enumerate(block.allocations):
        for name in ("teacher_id", "subject", "room"):
            if not getattr(allocation, name):
                fields.append(f"allocations[{index}].{name}")
    if fields:
        raise ScheduleValidationError(f"Combined block {block.id or '<new>'} is incomplete", fields)

    teachers = [normalize_ref(allocation.teacher_id) for allocation in block.allocations]
    if len(set(teachers)) != len(teachers):
        raise ScheduleValidationError(
            "A teacher cannot hold more than one allocation within the same block",
            ["allocations.teacher_id"],
        )
    rooms = [normalize_ref(allocation.room) for allocation in block.allocations]
    if len(set(rooms)) != len(rooms):
        raise ScheduleValidationError(
            "Duplicate room detected within the same block period",
            ["allocations.room"],
        )


class CombinedBlockRegistry:
    """Owns combined block definitions; entries refer to them only by id."""

    def __init__(self) -> None:
        self._blocks: dict[str, CombinedBlock] = {}

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._blocks

    def __iter__(self) -> Iterator[CombinedBlock]:
        return iter(sorted(self._blocks.values(), key=lambda block: block.id))

    def __len__(self) -> int:
        return len(self._blocks)

    def define(self, block: CombinedBlock) -> CombinedBlock:
        validate_block(block)
        replaced = block.id in self._blocks
        self._blocks[block.id] = block
        logger.info(
            "%s combined block %s (%d sections)",
            "Redefined" if replaced else "Defined",
            block.id,
            len(block.section_ids),
        )
        return block

    def remove(self, block_id: str) -> CombinedBlock:
        block = self._blocks.pop(block_id, None)
        if block is None:
            raise ResourceNotFoundError("Combined block", block_id)
        logger.info("Removed combined block %s", block_id)
        return block

    def get(self, block_id: str) -> CombinedBlock:
        block = self._blocks.get(block_id)
        if block is None:
            raise ResourceNotFoundError("Combined block", block_id)
        return block

    def find(self, block_id: str | None) -> CombinedBlock | None:
        if block_id is None:
            return None
        return self._blocks.get(block_id)

    def allocation_for(self, block_id: str, entity_type: EntityType, entity_id: str) -> BlockAllocationMatch:
        block = self.get(block_id)
        entity_type = EntityType(entity_type)
        wanted = entity_id.strip() if entity_type == EntityType.CLASS else normalize_ref(entity_id)
        for section_id, allocation in zip(block.section_ids, block.allocations):
            if entity_type == EntityType.CLASS:
                hit = section_id == wanted
            elif entity_type == EntityType.STAFF:
                hit = normalize_ref(allocation.teacher_id) == wanted
            else:
                hit = normalize_ref(allocation.room) == wanted
            if hit:
                return BlockAllocationMatch(block_id=block.id, section_id=section_id, allocation=allocation)
        raise ResourceNotFoundError(f"{entity_type.value} allocation in block {block_id}", entity_id)

    def load(self, blocks: Iterable[CombinedBlock]) -> None:
        for block in blocks:
            validate_block(block)
            self._blocks[block.id] = block
