from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.event import Event
from app.schemas.event import EventCreate, EventPublic, EventUpdate
from app.services import planner_store

router = APIRouter()


def _get_event_or_404(db: Session, event_id: int) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        )
    return event


def _check_times(start: datetime, end: datetime) -> None:
    if end <= start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event end_time must be after start_time",
        )


@router.get("/", response_model=list[EventPublic])
def list_events(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[EventPublic]:
    query = db.query(Event)
    if start is not None:
        query = query.filter(Event.end_time >= planner_store.to_planner_time(db, start))
    if end is not None:
        query = query.filter(Event.start_time <= planner_store.to_planner_time(db, end))
    return query.order_by(Event.start_time.asc()).all()


@router.post("/", response_model=EventPublic, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, db: Session = Depends(get_db)) -> EventPublic:
    data = payload.dict()
    data["kind"] = payload.kind.value
    data["start_time"] = planner_store.to_planner_time(db, payload.start_time)
    data["end_time"] = planner_store.to_planner_time(db, payload.end_time)
    _check_times(data["start_time"], data["end_time"])
    event = Event(**data)
    db.add(event)
    db.commit()
    db.refresh(event)
    planner_store.after_mutation(db)
    return _get_event_or_404(db, event.id)


@router.patch("/{event_id}", response_model=EventPublic)
def update_event(
    event_id: int, payload: EventUpdate, db: Session = Depends(get_db)
) -> EventPublic:
    event = _get_event_or_404(db, event_id)
    data = payload.dict(exclude_unset=True)
    if data.get("kind") is not None:
        data["kind"] = data["kind"].value
    for key in ("start_time", "end_time"):
        if data.get(key) is not None:
            data[key] = planner_store.to_planner_time(db, data[key])
    for key, value in data.items():
        setattr(event, key, value)
    _check_times(event.start_time, event.end_time)
    db.add(event)
    db.commit()
    planner_store.after_mutation(db)
    return _get_event_or_404(db, event_id)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: int, db: Session = Depends(get_db)) -> None:
    event = _get_event_or_404(db, event_id)
    db.delete(event)
    db.commit()
    planner_store.after_mutation(db)
