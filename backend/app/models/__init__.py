from app.models.course import Course, CourseSession
from app.models.task import Task
from app.models.event import Event
from app.models.time_block import TimeBlock
from app.models.preferences import PlannerPreferences

__all__ = [
    "Course",
    "CourseSession",
    "Task",
    "Event",
    "TimeBlock",
    "PlannerPreferences",
]
