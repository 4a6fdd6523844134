from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.preferences import Preferences, PreferencesUpdate
from app.services import planner_store

router = APIRouter()


@router.get("/", response_model=Preferences)
def read_preferences(db: Session = Depends(get_db)) -> Preferences:
    return planner_store.get_preferences(db)


@router.put("/", response_model=Preferences)
def update_preferences(
    payload: PreferencesUpdate, db: Session = Depends(get_db)
) -> Preferences:
    try:
        preferences = planner_store.save_preferences(db, payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc
    planner_store.after_mutation(db)
    return preferences
