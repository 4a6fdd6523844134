from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.task import Task
from app.models.time_block import TimeBlock
from app.schemas.time_block import TimeBlockCreate, TimeBlockPublic, TimeBlockUpdate
from app.services import planner_store

router = APIRouter()


def _get_block_or_404(db: Session, block_id: int) -> TimeBlock:
    block = db.query(TimeBlock).filter(TimeBlock.id == block_id).first()
    if not block:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Time block not found"
        )
    return block


def _check_times(start: datetime, end: datetime) -> None:
    if end <= start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Time block end_time must be after start_time",
        )


@router.get("/", response_model=list[TimeBlockPublic])
def list_time_blocks(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    manual_only: bool = False,
    db: Session = Depends(get_db),
) -> list[TimeBlockPublic]:
    query = db.query(TimeBlock)
    if start is not None:
        query = query.filter(TimeBlock.end_time >= planner_store.to_planner_time(db, start))
    if end is not None:
        query = query.filter(TimeBlock.start_time <= planner_store.to_planner_time(db, end))
    if manual_only:
        query = query.filter(TimeBlock.is_manual.is_(True))
    return query.order_by(TimeBlock.start_time.asc()).all()


@router.post("/", response_model=TimeBlockPublic, status_code=status.HTTP_201_CREATED)
def create_time_block(
    payload: TimeBlockCreate, db: Session = Depends(get_db)
) -> TimeBlockPublic:
    """Place a manual block; the scheduler will work around it."""
    if db.get(Task, payload.task_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    start = planner_store.to_planner_time(db, payload.start_time)
    end = planner_store.to_planner_time(db, payload.end_time)
    _check_times(start, end)
    block = TimeBlock(
        task_id=payload.task_id,
        start_time=start,
        end_time=end,
        kind=payload.kind.value,
        notes=payload.notes,
        completed=False,
        is_manual=True,
    )
    db.add(block)
    db.commit()
    db.refresh(block)
    block_id = block.id
    planner_store.after_mutation(db)
    return _get_block_or_404(db, block_id)


@router.patch("/{block_id}", response_model=TimeBlockPublic)
def update_time_block(
    block_id: int, payload: TimeBlockUpdate, db: Session = Depends(get_db)
) -> TimeBlockPublic:
    block = _get_block_or_404(db, block_id)
    data = payload.dict(exclude_unset=True)
    if data.get("kind") is not None:
        data["kind"] = data["kind"].value
    for key in ("start_time", "end_time"):
        if data.get(key) is not None:
            data[key] = planner_store.to_planner_time(db, data[key])
    moved = "start_time" in data or "end_time" in data
    for key, value in data.items():
        if value is not None:
            setattr(block, key, value)
    _check_times(block.start_time, block.end_time)
    if moved:
        # A block the user has moved is theirs from now on
        block.is_manual = True
    db.add(block)
    db.commit()
    if moved:
        planner_store.after_mutation(db)
    return _get_block_or_404(db, block_id)


@router.delete("/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_time_block(block_id: int, db: Session = Depends(get_db)) -> None:
    block = _get_block_or_404(db, block_id)
    was_manual = block.is_manual
    db.delete(block)
    db.commit()
    if was_manual:
        planner_store.after_mutation(db)
