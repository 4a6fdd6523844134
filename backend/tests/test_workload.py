from datetime import date, datetime

from app.models.course import Course
from app.models.task import Task
from app.schemas.preferences import Preferences
from app.schemas.schedule import PlannedBlock
from app.services.snapshot import ScheduleSnapshot
from app.services.workload import summarize

REFERENCE = datetime(2024, 3, 4, 8, 0)


def test_summary_totals_by_course_and_overlaps():
    tasks = [
        Task(id=1, title="Care plan", kind="assignment", estimated_hours=2, course_id=1,
             due_date=datetime(2024, 3, 7, 18)),
        Task(id=2, title="Chapter 3", kind="reading", estimated_hours=1,
             due_date=datetime(2024, 3, 7, 18)),
    ]
    blocks = [
        PlannedBlock(id=1, task_id=1, start_time=datetime(2024, 3, 4, 9), end_time=datetime(2024, 3, 4, 11), is_manual=True),
        PlannedBlock(id=2, task_id=2, start_time=datetime(2024, 3, 4, 10), end_time=datetime(2024, 3, 4, 11), is_manual=True),
    ]
    snapshot = ScheduleSnapshot(
        tasks=tasks, courses=[Course(id=1, name="Anatomy")], blocks=blocks
    )

    summary = summarize(snapshot, REFERENCE)

    assert summary.total_hours == 3.0
    assert summary.average_per_day == 3.0
    assert summary.block_count == 2
    assert summary.by_course == {"Anatomy": 2.0, "General": 1.0}
    assert summary.by_weekday == {"monday": 3.0}
    overlaps = [c for c in summary.conflicts if c.type == "overlap"]
    assert len(overlaps) == 1
    assert overlaps[0].task_ids == [1, 2]
    assert not [c for c in summary.conflicts if c.type == "insufficient-time"]
    assert summary.energy_warnings == []


def test_summary_flags_overload_unmet_effort_and_low_energy():
    exam = Task(id=3, title="Pharmacology final", kind="exam", estimated_hours=10,
                due_date=datetime(2024, 3, 20, 9))
    friday = [(9, 11), (12, 14), (15, 17)]
    blocks = [
        PlannedBlock(task_id=3, start_time=datetime(2024, 3, 8, start), end_time=datetime(2024, 3, 8, end))
        for start, end in friday
    ]

    summary = summarize(ScheduleSnapshot(tasks=[exam], blocks=blocks, preferences=Preferences()), REFERENCE)

    kinds = {conflict.type for conflict in summary.conflicts}
    assert kinds == {"too-many-hours", "insufficient-time"}
    assert [w.day.date() for w in summary.energy_warnings] == [date(2024, 3, 8)]
    assert summary.energy_warnings[0].weekday == "friday"
