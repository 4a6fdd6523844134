from datetime import date, datetime, time, timedelta
from itertools import combinations

import pytest

from app.models.course import Course, CourseSession
from app.models.event import Event
from app.models.task import Task
from app.models.time_block import BlockKind
from app.schemas.preferences import WEEKDAY_NAMES, Preferences
from app.schemas.schedule import PlannedBlock
from app.services import scheduling
from app.services.availability import AvailabilityCalculator
from app.services.intervals import Interval, overlaps
from app.services.scheduling import reschedule_all, schedule_task
from app.services.snapshot import ScheduleSnapshot

REFERENCE = datetime(2024, 3, 4, 8, 0)  # Monday morning
FLAT_ENERGY = {name: 1.0 for name in WEEKDAY_NAMES}


def _build_task(task_id: int, **overrides) -> Task:
    params = {
        "id": task_id,
        "title": f"Task {task_id}",
        "kind": "assignment",
        "due_date": REFERENCE + timedelta(days=5, hours=10),
        "difficulty": 3,
        "estimated_hours": 3,
    }
    params.update(overrides)
    return Task(**params)


def _minutes(blocks) -> int:
    return sum(block.duration_minutes for block in blocks)


def _assert_no_overlap(blocks, break_minutes: int) -> None:
    pad = timedelta(minutes=break_minutes)
    for a, b in combinations(blocks, 2):
        assert a.end_time + pad <= b.start_time or b.end_time + pad <= a.start_time, (a, b)


def test_exam_is_spread_over_days_before_soft_deadline():
    prefs = Preferences(daily_max_hours=2, session_minutes=120, energy_levels=FLAT_ENERGY)
    exam = _build_task(
        1,
        kind="exam",
        difficulty=5,
        estimated_hours=None,
        buffer_days=7,
        due_date=REFERENCE + timedelta(days=10, hours=10),
    )

    result = reschedule_all(ScheduleSnapshot(tasks=[exam], preferences=prefs), REFERENCE)

    outcome = result.outcomes[0]
    assert outcome.required_minutes == 20 * 60
    assert outcome.soft_deadline == datetime(2024, 3, 7, 18, 0)
    assert [block.start_time.date() for block in result.generated] == [
        date(2024, 3, 4),
        date(2024, 3, 5),
        date(2024, 3, 6),
        date(2024, 3, 7),
    ]
    assert all(block.duration_minutes == 120 for block in result.generated)
    assert all(block.end_time <= outcome.soft_deadline for block in result.generated)
    assert result.generated[-1].kind == BlockKind.REVIEW
    assert outcome.status == "partial"


def test_all_day_event_keeps_day_free():
    prefs = Preferences(daily_max_hours=2, session_minutes=120, energy_levels=FLAT_ENERGY)
    exam = _build_task(
        1, kind="exam", difficulty=5, estimated_hours=None, due_date=REFERENCE + timedelta(days=10, hours=10)
    )
    offsite = Event(
        id=1,
        title="Hospital orientation",
        kind="lecture",
        start_time=datetime(2024, 3, 6, 0),
        end_time=datetime(2024, 3, 7, 0),
        all_day=True,
    )

    result = reschedule_all(
        ScheduleSnapshot(tasks=[exam], events=[offsite], preferences=prefs), REFERENCE
    )

    days = {block.start_time.date() for block in result.generated}
    assert date(2024, 3, 6) not in days
    assert len(days) == 3


def test_task_due_tomorrow_is_under_scheduled_without_error():
    reference = datetime(2024, 3, 4, 10, 0)
    prefs = Preferences(daily_max_hours=2, energy_levels=FLAT_ENERGY)
    rush = _build_task(1, estimated_hours=6, due_date=reference + timedelta(days=1))

    result = schedule_task(1, ScheduleSnapshot(tasks=[rush], preferences=prefs), reference)

    assert 0 < _minutes(result.generated) < 6 * 60
    assert all(block.end_time <= rush.due_date for block in result.generated)
    assert result.outcomes[0].status == "partial"


def test_blocks_never_overlap_and_respect_daily_cap():
    prefs = Preferences()
    tasks = [
        _build_task(1, estimated_hours=5),
        _build_task(2, kind="reading", estimated_hours=4, due_date=REFERENCE + timedelta(days=3, hours=10)),
        _build_task(3, kind="project", estimated_hours=8, buffer_days=1),
        _build_task(4, kind="lab", estimated_hours=2, difficulty=4),
    ]
    manual = PlannedBlock(
        id=50,
        task_id=1,
        start_time=datetime(2024, 3, 5, 13, 0),
        end_time=datetime(2024, 3, 5, 14, 0),
        is_manual=True,
    )

    result = reschedule_all(
        ScheduleSnapshot(tasks=tasks, blocks=[manual], preferences=prefs), REFERENCE
    )

    _assert_no_overlap(result.blocks, prefs.break_minutes)
    for block in result.generated:
        assert block.start_time >= REFERENCE
        assert block.duration_minutes >= prefs.min_session_minutes
        assert block.duration_minutes <= prefs.session_minutes
    per_day: dict[date, int] = {}
    for block in result.blocks:
        per_day[block.start_time.date()] = per_day.get(block.start_time.date(), 0) + block.duration_minutes
    assert max(per_day.values()) <= prefs.daily_max_hours * 60


def test_generated_effort_never_exceeds_estimate():
    prefs = Preferences()
    tasks = [_build_task(1, estimated_hours=2.5), _build_task(2, estimated_hours=1, difficulty=5)]

    result = reschedule_all(ScheduleSnapshot(tasks=tasks, preferences=prefs), REFERENCE)

    by_task = {outcome.task_id: outcome for outcome in result.outcomes}
    assert _minutes(b for b in result.generated if b.task_id == 1) == by_task[1].required_minutes == 150
    assert _minutes(b for b in result.generated if b.task_id == 2) == by_task[2].required_minutes == 120


def test_reschedule_all_is_idempotent():
    prefs = Preferences()
    tasks = [_build_task(1, estimated_hours=4), _build_task(2, kind="exam", estimated_hours=6)]

    first = reschedule_all(ScheduleSnapshot(tasks=tasks, preferences=prefs), REFERENCE)
    second = reschedule_all(
        ScheduleSnapshot(tasks=tasks, blocks=first.blocks, preferences=prefs), REFERENCE
    )

    def spans(result):
        return [(b.task_id, b.start_time, b.end_time, b.kind) for b in result.generated]

    assert spans(first) == spans(second)


def test_more_urgent_task_claims_earliest_time():
    prefs = Preferences()
    relaxed = _build_task(1, estimated_hours=2, due_date=REFERENCE + timedelta(days=12))
    urgent = _build_task(2, estimated_hours=2, due_date=REFERENCE + timedelta(days=1, hours=12))

    result = reschedule_all(ScheduleSnapshot(tasks=[relaxed, urgent], preferences=prefs), REFERENCE)

    first_urgent = min(b.start_time for b in result.generated if b.task_id == 2)
    first_relaxed = min(b.start_time for b in result.generated if b.task_id == 1)
    assert first_urgent < first_relaxed
    assert [o.task_id for o in result.outcomes] == [2, 1]


def test_manual_and_completed_blocks_survive_rescheduling():
    prefs = Preferences()
    active = _build_task(1, estimated_hours=2)
    done = _build_task(2, status="completed")
    manual = PlannedBlock(
        id=10, task_id=1, start_time=datetime(2024, 3, 4, 9), end_time=datetime(2024, 3, 4, 10), is_manual=True
    )
    finished = PlannedBlock(
        id=11, task_id=2, start_time=datetime(2024, 3, 1, 9), end_time=datetime(2024, 3, 1, 11), completed=True
    )
    stale = PlannedBlock(
        id=12, task_id=1, start_time=datetime(2024, 3, 8, 9), end_time=datetime(2024, 3, 8, 10)
    )

    result = reschedule_all(
        ScheduleSnapshot(tasks=[active, done], blocks=[manual, finished, stale], preferences=prefs),
        REFERENCE,
    )

    kept_ids = {block.id for block in result.blocks if block.id is not None}
    assert kept_ids == {10, 11}
    assert result.replaced_task_ids == [1]
    assert all(block.task_id != 2 for block in result.generated)
    _assert_no_overlap(result.blocks, prefs.break_minutes)


def test_schedule_task_replaces_only_its_own_automatic_blocks():
    prefs = Preferences()
    first = _build_task(1, estimated_hours=1.5)
    second = _build_task(2, estimated_hours=1.5)
    other = PlannedBlock(
        id=20, task_id=2, start_time=datetime(2024, 3, 4, 13), end_time=datetime(2024, 3, 4, 14, 30)
    )
    old = PlannedBlock(
        id=21, task_id=1, start_time=datetime(2024, 3, 9, 13), end_time=datetime(2024, 3, 9, 14, 30)
    )

    result = schedule_task(
        1, ScheduleSnapshot(tasks=[first, second], blocks=[other, old], preferences=prefs), REFERENCE
    )

    assert result.replaced_task_ids == [1]
    assert {block.id for block in result.blocks if block.id} == {20}
    assert _minutes(result.generated) == 90
    _assert_no_overlap(result.blocks, prefs.break_minutes)


def test_unschedulable_task_is_left_alone():
    done = _build_task(1, status="completed")
    block = PlannedBlock(
        id=5, task_id=1, start_time=datetime(2024, 3, 1, 9), end_time=datetime(2024, 3, 1, 10)
    )

    result = schedule_task(1, ScheduleSnapshot(tasks=[done], blocks=[block]), REFERENCE)

    assert result.generated == []
    assert result.replaced_task_ids == []
    assert result.blocks == [block]
    assert result.outcomes[0].reason == "completed"


def test_failure_in_one_task_does_not_stop_the_run(monkeypatch: pytest.MonkeyPatch):
    real_allocate = scheduling.allocate_task

    def flaky_allocate(task, calculator, ledger, reference):
        if task.task_id == 1:
            raise RuntimeError("boom")
        return real_allocate(task, calculator, ledger, reference)

    monkeypatch.setattr(scheduling, "allocate_task", flaky_allocate)
    tasks = [_build_task(1, estimated_hours=2), _build_task(2, estimated_hours=2)]

    result = reschedule_all(ScheduleSnapshot(tasks=tasks), REFERENCE)

    statuses = {outcome.task_id: outcome.status for outcome in result.outcomes}
    assert statuses == {1: "failed", 2: "scheduled"}
    assert {block.task_id for block in result.generated} == {2}


def test_dict_inputs_are_accepted():
    snapshot = ScheduleSnapshot(
        tasks=[
            {
                "id": 7,
                "title": "Read chapter 4",
                "kind": "Reading",
                "due_date": "2024-03-08",
                "estimated_hours": 1,
            }
        ],
        courses=[
            {"id": 1, "name": "Anatomy", "schedule": [{"day_of_week": 0, "start_time": "18:00", "end_time": "21:00"}]}
        ],
    )

    result = reschedule_all(snapshot, REFERENCE)

    assert _minutes(result.generated) == 60
    for block in result.generated:
        if block.start_time.date() == date(2024, 3, 4):
            assert not (18 <= block.start_time.hour < 21)


def test_text_ids_and_missing_ids_do_not_stop_the_run():
    tasks = [
        {"id": "t1", "title": "Essay draft", "kind": "assignment", "due_date": "2024-03-09T18:00:00", "estimated_hours": 2},
        {"title": "Untracked chore", "kind": "assignment", "due_date": "2024-03-09T18:00:00", "estimated_hours": 2},
        _build_task(2, estimated_hours=2),
    ]

    result = reschedule_all(ScheduleSnapshot(tasks=tasks), REFERENCE)

    statuses = {outcome.task_id: outcome.status for outcome in result.outcomes}
    assert statuses == {"t1": "scheduled", 2: "scheduled"}
    assert {block.task_id for block in result.generated} == {"t1", 2}
    assert result.replaced_task_ids == [2, "t1"]

    single = schedule_task("t1", ScheduleSnapshot(tasks=tasks), REFERENCE)
    assert single.replaced_task_ids == ["t1"]
    assert _minutes(single.generated) == 120


def test_replaced_ids_sort_numerically():
    tasks = [_build_task(task_id, estimated_hours=1) for task_id in (10, 2, 33)]

    result = reschedule_all(ScheduleSnapshot(tasks=tasks), REFERENCE)

    assert result.replaced_task_ids == [2, 10, 33]


def test_blocks_stay_clear_of_classes_and_timed_events():
    course = Course(
        id=1,
        name="Physiology",
        schedule=[
            CourseSession(day_of_week=day, start_time=time(13), end_time=time(15)) for day in range(5)
        ],
    )
    events = [
        Event(id=1, title="Study group", kind="review",
              start_time=datetime(2024, 3, 5, 15, 30), end_time=datetime(2024, 3, 5, 17, 30)),
        Event(id=2, title="Skills lab", kind="lab",
              start_time=datetime(2024, 3, 6, 9, 0), end_time=datetime(2024, 3, 6, 11, 0)),
    ]
    tasks = [
        _build_task(1, estimated_hours=6, course_id=1),
        _build_task(2, kind="exam", estimated_hours=5, difficulty=4, course_id=1),
        _build_task(3, kind="reading", estimated_hours=3, due_date=REFERENCE + timedelta(days=3, hours=10)),
    ]
    snapshot = ScheduleSnapshot(tasks=tasks, courses=[course], events=events)

    result = reschedule_all(snapshot, REFERENCE)

    assert result.generated
    calculator = AvailabilityCalculator.from_snapshot(snapshot)
    for block in result.generated:
        span = Interval(block.start_time, block.end_time)
        fixed = calculator.busy_intervals(block.start_time.date(), [])
        assert not any(overlaps(span, busy) for busy in fixed), block
