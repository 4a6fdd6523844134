from fastapi import APIRouter

from app.api.routes import (
    courses,
    events,
    preferences,
    schedule,
    tasks,
    time_blocks,
)


api_router = APIRouter()
api_router.include_router(courses.router, prefix="/courses", tags=["courses"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(time_blocks.router, prefix="/time-blocks", tags=["time-blocks"])
api_router.include_router(preferences.router, prefix="/preferences", tags=["preferences"])
api_router.include_router(schedule.router, prefix="/schedule", tags=["schedule"])
