from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.task import Task
from app.schemas.schedule import ScheduleResult, ScheduleRunResponse, WorkloadSummary
from app.services import planner_store
from app.services.workload import summarize

router = APIRouter()


def _run_response(result: ScheduleResult) -> ScheduleRunResponse:
    scheduled_ids = {block.task_id for block in result.generated}
    return ScheduleRunResponse(
        generated_at=result.generated_at,
        tasks_scheduled=len(scheduled_ids),
        blocks_created=len(result.generated),
        outcomes=result.outcomes,
    )


@router.post("/tasks/{task_id}", response_model=ScheduleRunResponse)
def schedule_single_task(
    task_id: int,
    reference: datetime | None = None,
    db: Session = Depends(get_db),
) -> ScheduleRunResponse:
    if db.get(Task, task_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return _run_response(planner_store.run_schedule_task(db, task_id, reference))


@router.post("/reschedule", response_model=ScheduleRunResponse)
def reschedule_everything(
    reference: datetime | None = None,
    db: Session = Depends(get_db),
) -> ScheduleRunResponse:
    """Clear every automatic block and rebuild the whole schedule."""
    return _run_response(planner_store.run_reschedule_all(db, reference))


@router.get("/summary", response_model=WorkloadSummary)
def workload_summary(
    reference: datetime | None = None,
    db: Session = Depends(get_db),
) -> WorkloadSummary:
    return summarize(planner_store.load_snapshot(db), reference)
