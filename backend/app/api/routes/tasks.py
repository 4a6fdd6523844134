import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.course import Course
from app.models.task import Task
from app.models.time_block import TimeBlock
from app.schemas.task import TaskCreate, TaskPublic, TaskUpdate
from app.schemas.time_block import TimeBlockPublic
from app.services import planner_store

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_task_or_404(db: Session, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found",
        )
    return task


def _check_course(db: Session, course_id: int | None) -> None:
    if course_id is not None and db.get(Course, course_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found",
        )


@router.get("/", response_model=list[TaskPublic])
def list_tasks(
    course_id: int | None = None,
    include_completed: bool = True,
    db: Session = Depends(get_db),
) -> list[TaskPublic]:
    query = db.query(Task)
    if course_id is not None:
        query = query.filter(Task.course_id == course_id)
    if not include_completed:
        query = query.filter(Task.status != "completed")
    return query.order_by(Task.due_date.asc(), Task.id.asc()).all()


@router.get("/{task_id}", response_model=TaskPublic)
def get_task(task_id: int, db: Session = Depends(get_db)) -> TaskPublic:
    return _get_task_or_404(db, task_id)


@router.get("/{task_id}/blocks", response_model=list[TimeBlockPublic])
def list_task_blocks(task_id: int, db: Session = Depends(get_db)) -> list[TimeBlockPublic]:
    _get_task_or_404(db, task_id)
    return (
        db.query(TimeBlock)
        .filter(TimeBlock.task_id == task_id)
        .order_by(TimeBlock.start_time.asc())
        .all()
    )


@router.post("/", response_model=TaskPublic, status_code=status.HTTP_201_CREATED)
def create_task(payload: TaskCreate, db: Session = Depends(get_db)) -> TaskPublic:
    """Create a task, its DUE marker, and schedule it straight away."""
    _check_course(db, payload.course_id)
    data = payload.dict()
    data["kind"] = payload.kind.value
    data["status"] = payload.status.value
    data["due_date"] = planner_store.to_planner_time(db, payload.due_date)
    task = Task(**data)
    db.add(task)
    db.flush()
    planner_store.sync_deadline_event(db, task)
    db.commit()
    logger.info(f"Task created: {task.id} | {task.title}")

    planner_store.after_mutation(db, task_id=task.id)
    return _get_task_or_404(db, task.id)


@router.patch("/{task_id}", response_model=TaskPublic)
def update_task(
    task_id: int, payload: TaskUpdate, db: Session = Depends(get_db)
) -> TaskPublic:
    task = _get_task_or_404(db, task_id)
    data = payload.dict(exclude_unset=True)
    if "course_id" in data:
        _check_course(db, data["course_id"])
    if data.get("kind") is not None:
        data["kind"] = data["kind"].value
    if data.get("status") is not None:
        data["status"] = data["status"].value
    if data.get("due_date") is not None:
        data["due_date"] = planner_store.to_planner_time(db, data["due_date"])
    for key, value in data.items():
        if value is None and key in {"title", "kind", "due_date", "difficulty", "status", "is_hard_deadline"}:
            continue
        setattr(task, key, value)
    db.add(task)
    planner_store.sync_deadline_event(db, task)
    db.commit()
    logger.info(f"Task edited: {task.id}")

    planner_store.after_mutation(db)
    return _get_task_or_404(db, task_id)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: int, db: Session = Depends(get_db)) -> None:
    """Delete a task along with its blocks and DUE marker."""
    task = _get_task_or_404(db, task_id)
    db.delete(task)
    db.commit()
    logger.info(f"Task deleted: {task_id}")
    planner_store.after_mutation(db)
