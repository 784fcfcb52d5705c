from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from timetable_engine.api.deps import get_db, get_timetable_engine
from timetable_engine.api.routes.timetable import entry_out
from timetable_engine.schemas.block import BlockPlacementRequest, CombinedBlock, CombinedBlockIn, CombinedBlockOut
from timetable_engine.schemas.timetable import ScheduleEntryOut
from timetable_engine.services import storage
from timetable_engine.services.engine import TimetableEngine

router = APIRouter()


def block_out(engine: TimetableEngine, block: CombinedBlock) -> CombinedBlockOut:
    return CombinedBlockOut(
        id=block.id,
        name=block.name,
        section_ids=list(block.section_ids),
        allocations=list(block.allocations),
        placements=engine.block_placements(block.id),
    )


@router.get("", response_model=list[CombinedBlockOut])
def list_blocks(engine: TimetableEngine = Depends(get_timetable_engine)) -> list[CombinedBlockOut]:
    return [block_out(engine, block) for block in engine.blocks]


@router.post("", response_model=CombinedBlockOut, status_code=status.HTTP_201_CREATED)
def define_block(
    payload: CombinedBlockIn,
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> CombinedBlockOut:
    with engine.lock:
        block = engine.define_block(payload.to_block(), acknowledge_conflicts=payload.acknowledge_conflicts)
        storage.persist(db, engine)
        return block_out(engine, block)


@router.delete("/{block_id}", response_model=CombinedBlockOut)
def remove_block(
    block_id: str,
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> CombinedBlockOut:
    with engine.lock:
        block = engine.remove_block(block_id)
        storage.persist(db, engine)
    return CombinedBlockOut(
        id=block.id,
        name=block.name,
        section_ids=list(block.section_ids),
        allocations=list(block.allocations),
    )


@router.post(
    "/{block_id}/placements",
    response_model=list[ScheduleEntryOut],
    status_code=status.HTTP_201_CREATED,
)
def place_block(
    block_id: str,
    payload: BlockPlacementRequest,
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> list[ScheduleEntryOut]:
    with engine.lock:
        entries = engine.place_block(
            block_id,
            payload.day,
            payload.slot_id,
            acknowledge_conflicts=payload.acknowledge_conflicts,
        )
        storage.persist(db, engine)
    return [entry_out(entry) for entry in entries]


@router.delete("/{block_id}/placements", response_model=list[ScheduleEntryOut])
def unplace_block(
    block_id: str,
    day: str = Query(min_length=1),
    slot_id: int = Query(ge=1),
    db: Session = Depends(get_db),
    engine: TimetableEngine = Depends(get_timetable_engine),
) -> list[ScheduleEntryOut]:
    with engine.lock:
        entries = engine.unplace_block(block_id, day, slot_id)
        storage.persist(db, engine)
    return [entry_out(entry) for entry in entries]
