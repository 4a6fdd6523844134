from datetime import date, datetime, time

from app.models.course import Course, CourseSession
from app.models.event import Event
from app.schemas.preferences import Preferences
from app.schemas.schedule import PlannedBlock
from app.services.availability import AvailabilityCalculator, booked_minutes
from app.services.intervals import Interval
from app.services.snapshot import ScheduleSnapshot

MONDAY = date(2024, 3, 4)


def _calculator(courses=(), events=(), **prefs) -> AvailabilityCalculator:
    snapshot = ScheduleSnapshot(
        tasks=[], courses=list(courses), events=list(events), preferences=Preferences(**prefs)
    )
    return AvailabilityCalculator.from_snapshot(snapshot)


def _course() -> Course:
    return Course(
        id=1,
        name="Pharmacology",
        schedule=[
            CourseSession(day_of_week=0, start_time=time(10), end_time=time(12)),
            CourseSession(day_of_week=2, start_time=time(14), end_time=time(16)),
        ],
    )


def test_course_sessions_block_their_weekday_only():
    calculator = _calculator(courses=[_course()])

    monday = calculator.for_day(MONDAY, [])
    tuesday = calculator.for_day(date(2024, 3, 5), [])

    assert Interval(datetime(2024, 3, 4, 10), datetime(2024, 3, 4, 12)) in monday.busy
    assert monday.gaps[0] == Interval(datetime(2024, 3, 4, 9), datetime(2024, 3, 4, 10))
    assert tuesday.busy == []
    assert tuesday.free_minutes == 13 * 60


def test_blocks_are_padded_with_break():
    calculator = _calculator(break_minutes=15)
    block = PlannedBlock(
        task_id=1, start_time=datetime(2024, 3, 4, 13), end_time=datetime(2024, 3, 4, 14)
    )

    availability = calculator.for_day(MONDAY, [block])

    assert availability.busy == [
        Interval(datetime(2024, 3, 4, 12, 45), datetime(2024, 3, 4, 14, 15))
    ]


def test_deadline_markers_never_block_time():
    marker = Event(
        id=3,
        title="DUE: Essay",
        kind="deadline",
        start_time=datetime(2024, 3, 4, 12),
        end_time=datetime(2024, 3, 4, 12, 30),
    )
    availability = _calculator(events=[marker]).for_day(MONDAY, [])

    assert availability.busy == []


def test_all_day_and_clinical_events_book_the_whole_day():
    all_day = Event(
        id=1,
        title="Conference",
        kind="lecture",
        start_time=datetime(2024, 3, 4, 0),
        end_time=datetime(2024, 3, 5, 0),
        all_day=True,
    )
    clinical = Event(
        id=2,
        title="Ward rotation",
        kind="clinical",
        start_time=datetime(2024, 3, 6, 7),
        end_time=datetime(2024, 3, 6, 15),
    )
    calculator = _calculator(events=[all_day, clinical])

    assert calculator.for_day(MONDAY, []).fully_booked
    assert not calculator.for_day(date(2024, 3, 5), []).fully_booked
    assert calculator.for_day(date(2024, 3, 6), []).fully_booked


def test_multi_day_event_is_clipped_per_day():
    trip = Event(
        id=4,
        title="Field trip",
        kind="simulation",
        start_time=datetime(2024, 3, 4, 20),
        end_time=datetime(2024, 3, 5, 10),
    )
    calculator = _calculator(events=[trip])

    tuesday = calculator.for_day(date(2024, 3, 5), [])

    assert tuesday.gaps[0].start == datetime(2024, 3, 5, 10)


def test_window_never_starts_before_now():
    availability = _calculator().for_day(MONDAY, [], not_before=datetime(2024, 3, 4, 15, 10))

    assert availability.window.start == datetime(2024, 3, 4, 15, 10)
    assert availability.gaps == [Interval(datetime(2024, 3, 4, 15, 10), datetime(2024, 3, 4, 22))]


def test_booked_minutes_counts_blocks_by_start_day():
    blocks = [
        PlannedBlock(task_id=1, start_time=datetime(2024, 3, 4, 9), end_time=datetime(2024, 3, 4, 10, 30)),
        PlannedBlock(task_id=1, start_time=datetime(2024, 3, 5, 9), end_time=datetime(2024, 3, 5, 10)),
    ]

    assert booked_minutes(blocks, MONDAY, MONDAY) == 90
    assert booked_minutes(blocks, MONDAY, date(2024, 3, 10)) == 150
