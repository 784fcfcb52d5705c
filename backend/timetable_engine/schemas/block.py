from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class BlockAllocation(BaseModel):
    teacher_id: str = ""
    subject: str = ""
    room: str = ""

    model_config = {"frozen": True}

    @field_validator("teacher_id", "subject", "room", mode="before")
    @classmethod
    def strip_text(cls, value: str | None) -> str:
        return (value or "").strip()


class CombinedBlock(BaseModel):
    """Several sections sharing one period, taught in parallel.

    ``allocations[i]`` is the row seen by ``section_ids[i]``.
    """

    id: str = ""
    name: str = ""
    section_ids: tuple[str, ...] = ()
    allocations: tuple[BlockAllocation, ...] = ()

    model_config = {"frozen": True}

    @field_validator("id", "name", mode="before")
    @classmethod
    def strip_text(cls, value: str | None) -> str:
        return (value or "").strip()

    @field_validator("section_ids", mode="before")
    @classmethod
    def strip_sections(cls, value):
        return tuple(str(item).strip() for item in (value or ()))

    def allocation_for_section(self, section_id: str) -> BlockAllocation | None:
        try:
            index = self.section_ids.index(section_id)
        except ValueError:
            return None
        if index >= len(self.allocations):
            return None
        return self.allocations[index]


class BlockAllocationMatch(BaseModel):
    block_id: str
    section_id: str
    allocation: BlockAllocation


class CombinedBlockIn(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = ""
    section_ids: list[str] = Field(default_factory=list, max_length=40)
    allocations: list[BlockAllocation] = Field(default_factory=list, max_length=40)
    acknowledge_conflicts: bool = False

    def to_block(self) -> CombinedBlock:
        return CombinedBlock(
            id=self.id,
            name=self.name,
            section_ids=self.section_ids,
            allocations=self.allocations,
        )


class CombinedBlockOut(BaseModel):
    id: str
    name: str
    section_ids: list[str]
    allocations: list[BlockAllocation]
    placements: list[tuple[str, int]] = Field(default_factory=list)


class BlockPlacementRequest(BaseModel):
    day: str
    slot_id: int = Field(ge=1, le=50)
    acknowledge_conflicts: bool = False
