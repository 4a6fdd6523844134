from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.course import Course, CourseSession
from app.schemas.course import CourseCreate, CoursePublic, CourseSessionCreate, CourseUpdate
from app.services import planner_store

router = APIRouter()


def _get_course_or_404(db: Session, course_id: int) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Course not found"
        )
    return course


def _build_sessions(sessions: list[CourseSessionCreate]) -> list[CourseSession]:
    built = []
    for session in sessions:
        data = session.dict()
        data["kind"] = session.kind.value
        built.append(CourseSession(**data))
    return built


@router.get("/", response_model=list[CoursePublic])
def list_courses(db: Session = Depends(get_db)) -> list[CoursePublic]:
    return db.query(Course).order_by(Course.name.asc()).all()


@router.get("/{course_id}", response_model=CoursePublic)
def get_course(course_id: int, db: Session = Depends(get_db)) -> CoursePublic:
    return _get_course_or_404(db, course_id)


@router.post("/", response_model=CoursePublic, status_code=status.HTTP_201_CREATED)
def create_course(payload: CourseCreate, db: Session = Depends(get_db)) -> CoursePublic:
    data = payload.dict(exclude={"schedule"})
    course = Course(**data, schedule=_build_sessions(payload.schedule))
    db.add(course)
    db.commit()
    db.refresh(course)
    if course.schedule:
        planner_store.after_mutation(db)
    return _get_course_or_404(db, course.id)


@router.patch("/{course_id}", response_model=CoursePublic)
def update_course(
    course_id: int, payload: CourseUpdate, db: Session = Depends(get_db)
) -> CoursePublic:
    course = _get_course_or_404(db, course_id)
    data = payload.dict(exclude_unset=True, exclude={"schedule"})
    for key, value in data.items():
        setattr(course, key, value)
    schedule_changed = payload.schedule is not None
    if schedule_changed:
        course.schedule = _build_sessions(payload.schedule)
    db.add(course)
    db.commit()
    if schedule_changed:
        planner_store.after_mutation(db)
    return _get_course_or_404(db, course_id)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(course_id: int, db: Session = Depends(get_db)) -> None:
    """Delete a course together with its tasks and events."""
    course = _get_course_or_404(db, course_id)
    db.delete(course)
    db.commit()
    planner_store.after_mutation(db)
