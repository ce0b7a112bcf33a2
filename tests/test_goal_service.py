"""
Tests for weekly goals: distribution, activation and progress.
"""

import datetime

import pytest

from studytracker.domain.exceptions import NotFoundError, ValidationError
from studytracker.domain.models import Distribution, Performance, PomodoroSession, SessionType, Weekday
from studytracker.infra.store import Collection
from studytracker.services.goal_service import (
    distribute_hours, get_week_end, get_week_start, validate_custom_hours,
)

WEDNESDAY = datetime.date(2026, 10, 21)
MONDAY = datetime.date(2026, 10, 19)
SUNDAY = datetime.date(2026, 10, 25)


def at(day, hour=10):
    return datetime.datetime.combine(day, datetime.time(hour))


async def log_hours(state, subject_id, day, hours, perf_id):
    perf = Performance(id=perf_id, topic_id="topic_x", subject_id=subject_id,
                       hours_studied=hours, date=at(day))
    await state.save(Collection.PERFORMANCES, lambda prev: prev + [perf])


class TestWeekBoundaries:

    @pytest.mark.parametrize("day", [MONDAY, WEDNESDAY, SUNDAY])
    def test_week_start_is_monday(self, day):
        assert get_week_start(day) == MONDAY

    def test_week_end_is_six_days_later(self):
        assert get_week_end(MONDAY) == SUNDAY


class TestDistributeHours:

    def test_uniform(self):
        daily = distribute_hours(35, Distribution.UNIFORM)
        assert daily == {day: 5.0 for day in Weekday}

    def test_uniform_with_excluded_days(self):
        daily = distribute_hours(30, Distribution.UNIFORM, excluded_days=["saturday", "Sunday"])
        assert daily[Weekday.SATURDAY] == 0
        assert daily[Weekday.SUNDAY] == 0
        assert all(daily[d] == 6.0 for d in list(Weekday)[:5])

    def test_uniform_with_every_day_excluded(self):
        daily = distribute_hours(10, Distribution.UNIFORM, excluded_days=list(Weekday))
        assert set(daily.values()) == {0.0}

    def test_custom_fills_missing_days_with_zero(self):
        daily = distribute_hours(6, Distribution.CUSTOM, {"monday": 4, Weekday.FRIDAY: 2})
        assert daily[Weekday.MONDAY] == 4
        assert daily[Weekday.FRIDAY] == 2
        assert daily[Weekday.SUNDAY] == 0
        assert len(daily) == 7

    def test_unknown_weekday(self):
        with pytest.raises(ValidationError):
            distribute_hours(6, Distribution.CUSTOM, {"funday": 6})


class TestValidateCustomHours:

    def test_within_tolerance(self):
        validate_custom_hours(10, {"monday": 5, "tuesday": 4.95})

    def test_off_by_more_than_tolerance(self):
        with pytest.raises(ValidationError):
            validate_custom_hours(10, {"monday": 5, "tuesday": 4.5})

    def test_excluded_days_do_not_count(self):
        validate_custom_hours(8, {"monday": 8, "sunday": 3}, excluded_days=["sunday"])
        with pytest.raises(ValidationError):
            validate_custom_hours(11, {"monday": 8, "sunday": 3}, excluded_days=["sunday"])


@pytest.mark.asyncio
async def test_create_weekly_goal(goal_service, subjects):
    goal = await goal_service.create_weekly_goal(
        " Semana 1 ", [s.id for s in subjects], 35, today=WEDNESDAY,
    )

    assert goal.name == "Semana 1"
    assert goal.week_start == MONDAY
    assert goal.week_end == SUNDAY
    assert goal.is_active
    assert goal.daily_hours == {day: 5.0 for day in Weekday}
    assert goal_service.get_active_goal().id == goal.id


@pytest.mark.asyncio
async def test_create_on_sunday_belongs_to_previous_monday(goal_service):
    goal = await goal_service.create_weekly_goal("Domingo", [], 7, today=SUNDAY)
    assert goal.week_start == MONDAY


@pytest.mark.parametrize("name,hours", [("", 10), ("   ", 10), ("Goal", -1)])
@pytest.mark.asyncio
async def test_create_rejects_invalid_input(goal_service, name, hours):
    with pytest.raises(ValidationError):
        await goal_service.create_weekly_goal(name, [], hours)
    assert goal_service.weekly_goals == []


@pytest.mark.asyncio
async def test_only_latest_goal_is_active(goal_service):
    first = await goal_service.create_weekly_goal("First", [], 10, today=WEDNESDAY)
    second = await goal_service.create_weekly_goal("Second", [], 20, today=WEDNESDAY)

    active = [g for g in goal_service.weekly_goals if g.is_active]
    assert [g.id for g in active] == [second.id]

    await goal_service.set_active_goal(first.id)
    active = [g for g in goal_service.weekly_goals if g.is_active]
    assert [g.id for g in active] == [first.id]


@pytest.mark.asyncio
async def test_set_active_goal_unknown(goal_service):
    await goal_service.create_weekly_goal("Only", [], 10)
    with pytest.raises(NotFoundError):
        await goal_service.set_active_goal("goal_missing")
    assert goal_service.get_active_goal() is not None


@pytest.mark.asyncio
async def test_update_weekly_goal(goal_service):
    goal = await goal_service.create_weekly_goal("Old", [], 10, today=WEDNESDAY)

    updated = await goal_service.update_weekly_goal(goal.id, name="New", week_start=MONDAY + datetime.timedelta(days=7))
    assert updated.name == "New"
    assert updated.week_end == SUNDAY + datetime.timedelta(days=7)
    assert goal_service.weekly_goals[0].name == "New"

    with pytest.raises(ValidationError):
        await goal_service.update_weekly_goal(goal.id, is_active=False)
    with pytest.raises(ValidationError):
        await goal_service.update_weekly_goal(goal.id, total_hours=-3)
    with pytest.raises(NotFoundError):
        await goal_service.update_weekly_goal("goal_missing", name="x")


@pytest.mark.asyncio
async def test_delete_weekly_goal(goal_service):
    keep = await goal_service.create_weekly_goal("Keep", [], 10)
    drop = await goal_service.create_weekly_goal("Drop", [], 10)

    await goal_service.delete_weekly_goal(drop.id)
    await goal_service.delete_weekly_goal("goal_missing")

    assert [g.id for g in goal_service.weekly_goals] == [keep.id]
    # Deleting the active goal leaves none active
    assert goal_service.get_active_goal() is None


@pytest.mark.asyncio
async def test_get_current_week_goals(goal_service):
    this_week = await goal_service.create_weekly_goal("Now", [], 10, today=WEDNESDAY)
    await goal_service.create_weekly_goal("Later", [], 10, today=WEDNESDAY + datetime.timedelta(days=14))

    assert [g.id for g in goal_service.get_current_week_goals(WEDNESDAY)] == [this_week.id]


@pytest.mark.asyncio
async def test_week_progress_counts_goal_subjects_inside_the_week(state, goal_service, subjects):
    math, portuguese = subjects
    goal = await goal_service.create_weekly_goal("Math", [math.id], 10, today=WEDNESDAY)

    await log_hours(state, math.id, MONDAY, 2.0, "p1")
    await log_hours(state, math.id, SUNDAY, 1.0, "p2")
    await log_hours(state, math.id, MONDAY - datetime.timedelta(days=1), 5.0, "p3")
    await log_hours(state, portuguese.id, WEDNESDAY, 4.0, "p4")

    progress = goal_service.get_week_progress()
    assert progress.completed == pytest.approx(3.0)
    assert progress.target == 10
    assert progress.percentage == 30
    assert goal_service.get_week_progress(goal) == progress


@pytest.mark.asyncio
async def test_week_progress_without_goal(goal_service):
    progress = goal_service.get_week_progress()
    assert (progress.completed, progress.target, progress.percentage) == (0, 0, 0)


@pytest.mark.asyncio
async def test_day_progress_is_capped(state, goal_service, subjects):
    math = subjects[0]
    goal = await goal_service.create_weekly_goal(
        "Weekdays", [math.id], 10, excluded_days=["saturday", "sunday"], today=WEDNESDAY,
    )
    await log_hours(state, math.id, WEDNESDAY, 1.0, "p1")
    await log_hours(state, math.id, MONDAY, 5.0, "p2")

    wednesday = goal_service.get_day_progress(goal, Weekday.WEDNESDAY)
    assert wednesday.target == 2.0
    assert wednesday.percentage == 50

    monday = goal_service.get_day_progress(goal, "monday")
    assert monday.completed == 5.0
    assert monday.percentage == 100

    assert goal_service.get_day_progress(goal, "saturday").percentage == 0


@pytest.mark.asyncio
async def test_today_goals_split_across_subjects(state, goal_service, subjects):
    math, portuguese = subjects
    await goal_service.create_weekly_goal("Both", [math.id, portuguese.id], 14, today=WEDNESDAY)

    sessions = [
        PomodoroSession(id="s1", subject_id=math.id, start_time=at(WEDNESDAY), duration=30, is_completed=True),
        PomodoroSession(id="s2", subject_id=math.id, start_time=at(WEDNESDAY, 11), duration=30, is_completed=False),
        PomodoroSession(id="s3", start_time=at(WEDNESDAY), duration=5, is_completed=True, type=SessionType.BREAK),
    ]
    await state.save(Collection.POMODORO_SESSIONS, lambda prev: prev + sessions)

    goals = goal_service.get_today_goals(WEDNESDAY)
    assert [g.subject_id for g in goals] == [math.id, portuguese.id]
    assert all(g.target_hours == 1.0 for g in goals)

    math_goal = goal_service.get_goal_progress(math.id, WEDNESDAY)
    assert math_goal.completed_hours == pytest.approx(0.5)
    assert math_goal.percentage == 50
    assert math_goal.remaining == pytest.approx(0.5)

    assert goal_service.get_goal_progress(portuguese.id, WEDNESDAY).percentage == 0


@pytest.mark.asyncio
async def test_today_goals_skip_excluded_days_and_deleted_subjects(goal_service, subject_service, subjects):
    math, portuguese = subjects
    await goal_service.create_weekly_goal(
        "Weekdays", [math.id, portuguese.id], 10, excluded_days=["sunday"], today=WEDNESDAY,
    )

    assert goal_service.get_today_goals(SUNDAY) == []

    await subject_service.delete_subject(portuguese.id)
    goals = goal_service.get_today_goals(WEDNESDAY)
    assert [g.subject_id for g in goals] == [math.id]
    assert goals[0].target_hours == pytest.approx(10 / 6)

    missing = goal_service.get_goal_progress(portuguese.id, WEDNESDAY)
    assert (missing.target_hours, missing.completed_hours, missing.percentage) == (0, 0, 0)


@pytest.mark.asyncio
async def test_goals_survive_reload(state, goal_service):
    from studytracker.infra.store import AppState

    goal = await goal_service.create_weekly_goal(
        "Custom", [], 6, Distribution.CUSTOM, {"monday": 4, "tuesday": 2}, today=WEDNESDAY,
    )

    reloaded = AppState(state.repo)
    await reloaded.load()

    [restored] = reloaded.weekly_goals
    assert restored.id == goal.id
    assert restored.daily_hours[Weekday.MONDAY] == 4
    assert restored.week_start == MONDAY
    assert restored.distribution == Distribution.CUSTOM


@pytest.mark.asyncio
async def test_create_goal_from_form_text(goal_service):
    validate_custom_hours("7,5", {"monday": "4,5", "tuesday": "3", "friday": "x"})

    goal = await goal_service.create_weekly_goal(
        "Form", [], "7,5", Distribution.CUSTOM, {"monday": "4,5", "tuesday": "3"}, today=WEDNESDAY,
    )
    assert goal.total_hours == 7.5
    assert goal.daily_hours[Weekday.MONDAY] == 4.5
    assert goal.daily_hours[Weekday.TUESDAY] == 3.0
