"""
Goal Service - Weekly study-hour goals and their progress.

A goal covers one Monday-to-Sunday week and spreads its hours across the
days either evenly (skipping excluded days) or with per-day values. Exactly
one goal is active at a time.
"""

import datetime
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from studytracker.domain.exceptions import NotFoundError, ValidationError
from studytracker.domain.models import (
    DailyGoal, Distribution, GoalProgress, Performance, Weekday, WeeklyGoal,
)
from studytracker.infra.store import AppState, Collection
from studytracker.services.pomodoro_service import total_study_time
from studytracker.utils import new_id, parse_float, percentage

logger = logging.getLogger(__name__)

CUSTOM_HOURS_TOLERANCE = 0.1

DayKey = Union[Weekday, str]


def get_week_start(day: datetime.date) -> datetime.date:
    """Monday of the week containing `day` (Sunday belongs to the week before)"""
    return day - datetime.timedelta(days=day.weekday())


def get_week_end(week_start: datetime.date) -> datetime.date:
    return week_start + datetime.timedelta(days=6)


def to_weekday(day: DayKey) -> Weekday:
    try:
        return Weekday(day.lower())
    except (AttributeError, ValueError):
        raise ValidationError(f"Unknown weekday: {day!r}") from None


def _to_weekdays(days: Iterable[DayKey]) -> List[Weekday]:
    result = []
    for day in days:
        weekday = to_weekday(day)
        if weekday not in result:
            result.append(weekday)
    return result


def distribute_hours(total_hours: float, distribution: Distribution,
                     custom_daily_hours: Optional[Mapping[DayKey, float]] = None,
                     excluded_days: Iterable[DayKey] = ()) -> Dict[Weekday, float]:
    """
    Build the per-day targets of a goal.

    Uniform: every non-excluded day gets total / active days, excluded days 0.
    Custom: the given values, missing days default to 0.
    """
    excluded = _to_weekdays(excluded_days)

    if Distribution(distribution) == Distribution.UNIFORM:
        active_days = [d for d in Weekday if d not in excluded]
        hours_per_day = total_hours / len(active_days) if active_days else 0.0
        return {d: 0.0 if d in excluded else hours_per_day for d in Weekday}

    custom = {to_weekday(k): parse_float(v) for k, v in (custom_daily_hours or {}).items()}
    return {d: custom.get(d, 0.0) for d in Weekday}


def validate_custom_hours(total_hours: Union[float, str], daily_hours: Mapping[DayKey, float],
                          excluded_days: Iterable[DayKey] = ()) -> None:
    """
    Check that per-day hours add up to the weekly total.

    Raises:
        ValidationError: if the sum over non-excluded days is off by more than 0.1h
    """
    total_hours = parse_float(total_hours)
    excluded = _to_weekdays(excluded_days)
    custom_total = sum(parse_float(v) for k, v in daily_hours.items() if to_weekday(k) not in excluded)
    if abs(custom_total - total_hours) > CUSTOM_HOURS_TOLERANCE:
        raise ValidationError(
            f"The custom hours add up to {custom_total:g}h but the goal total is {total_hours:g}h."
        )


def _hours_between(performances: Iterable[Performance], subject_ids: List[str],
                   start: datetime.date, end: datetime.date) -> float:
    return sum(
        p.hours_studied for p in performances
        if start <= p.date.date() <= end and p.subject_id in subject_ids
    )


class GoalService:
    """Weekly goal planner backed by the shared application state"""

    def __init__(self, state: AppState):
        self.state = state

    @property
    def weekly_goals(self) -> List[WeeklyGoal]:
        return self.state.weekly_goals

    def _get_goal(self, goal_id: str) -> WeeklyGoal:
        goal = next((g for g in self.weekly_goals if g.id == goal_id), None)
        if goal is None:
            raise NotFoundError("goal", goal_id)
        return goal

    async def create_weekly_goal(self, name: str, subject_ids: List[str], total_hours: Union[float, str],
                                 distribution: Distribution = Distribution.UNIFORM,
                                 custom_daily_hours: Optional[Mapping[DayKey, float]] = None,
                                 excluded_days: Iterable[DayKey] = (),
                                 today: Optional[datetime.date] = None) -> WeeklyGoal:
        """
        Create a goal for the current week and make it the only active one.

        Custom distributions are expected to be checked with
        validate_custom_hours() beforehand.

        Args:
            name: Display name
            subject_ids: Subjects whose study time counts towards the goal
            total_hours: Weekly quota (form text such as "7,5" is accepted)
            distribution: uniform or custom
            custom_daily_hours: Per-day hours for custom goals
            excluded_days: Days without study
            today: Reference day (defaults to today)

        Returns:
            The new active goal
        """
        total_hours = parse_float(total_hours)
        if not name or not name.strip():
            raise ValidationError("Enter a name for the goal.")
        if total_hours < 0:
            raise ValidationError("Weekly hours cannot be negative.")

        distribution = Distribution(distribution)
        excluded = _to_weekdays(excluded_days)
        week_start = get_week_start(today or datetime.date.today())

        goal = WeeklyGoal(
            id=new_id("goal"),
            name=name.strip(),
            subjects=list(subject_ids),
            total_hours=total_hours,
            week_start=week_start,
            week_end=get_week_end(week_start),
            distribution=distribution,
            daily_hours=distribute_hours(total_hours, distribution, custom_daily_hours, excluded),
            excluded_days=excluded,
            is_active=True,
        )

        # Deactivating the others and adding the new goal is a single write
        await self.state.save(Collection.WEEKLY_GOALS, lambda prev: [
            g.model_copy(update={"is_active": False}) if g.is_active else g for g in prev
        ] + [goal])
        logger.info(f"Created weekly goal '{goal.name}' ({total_hours:g}h, {distribution.value})")
        return goal

    async def update_weekly_goal(self, goal_id: str, **changes) -> WeeklyGoal:
        """
        Change fields of a goal. Activation goes through set_active_goal().

        Raises:
            NotFoundError: unknown goal
            ValidationError: is_active given, or the result is not a valid goal
        """
        if "is_active" in changes:
            raise ValidationError("Use set_active_goal() to change the active goal.")

        goal = self._get_goal(goal_id)
        data = {**goal.model_dump(), **changes}
        if "week_start" in changes and "week_end" not in changes:
            data["week_end"] = get_week_end(data["week_start"])
        try:
            updated = WeeklyGoal.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid goal: {e}") from e

        await self.state.save(Collection.WEEKLY_GOALS, lambda prev: [
            updated if g.id == goal_id else g for g in prev
        ])
        return updated

    async def delete_weekly_goal(self, goal_id: str) -> None:
        await self.state.save(Collection.WEEKLY_GOALS,
                              lambda prev: [g for g in prev if g.id != goal_id])

    async def set_active_goal(self, goal_id: str) -> None:
        self._get_goal(goal_id)
        await self.state.save(Collection.WEEKLY_GOALS, lambda prev: [
            g.model_copy(update={"is_active": g.id == goal_id}) for g in prev
        ])

    def get_active_goal(self) -> Optional[WeeklyGoal]:
        return next((g for g in self.weekly_goals if g.is_active), None)

    def get_current_week_goals(self, today: Optional[datetime.date] = None) -> List[WeeklyGoal]:
        """Goals whose week overlaps the current one"""
        week_start = get_week_start(today or datetime.date.today())
        week_end = get_week_end(week_start)
        return [g for g in self.weekly_goals if g.week_start <= week_end and g.week_end >= week_start]

    def get_week_progress(self, goal: Optional[WeeklyGoal] = None) -> GoalProgress:
        """Hours logged for the goal's subjects within its week (defaults to the active goal)"""
        goal = goal or self.get_active_goal()
        if goal is None:
            return GoalProgress()

        completed = _hours_between(self.state.performances, goal.subjects,
                                   goal.week_start, goal.week_end)
        return GoalProgress(
            completed=completed,
            target=goal.total_hours,
            percentage=percentage(completed, goal.total_hours),
        )

    def get_day_progress(self, goal: WeeklyGoal, weekday: DayKey) -> GoalProgress:
        """Progress towards one day's target (capped at 100%)"""
        weekday = to_weekday(weekday)
        day = goal.date_for(weekday)
        completed = _hours_between(self.state.performances, goal.subjects, day, day)
        target = goal.daily_hours.get(weekday, 0.0)
        pct = min(100, percentage(completed, target)) if target > 0 else 0
        return GoalProgress(completed=completed, target=target, percentage=pct)

    def get_today_goals(self, today: Optional[datetime.date] = None) -> List[DailyGoal]:
        """
        Split today's target of the active goal evenly across its subjects.

        Completed hours come from today's finished pomodoro work sessions.
        Subjects that no longer exist are skipped.
        """
        today = today or datetime.date.today()
        goal = self.get_active_goal()
        if goal is None:
            return []

        weekday = Weekday.from_date(today)
        if weekday in goal.excluded_days:
            return []

        target = goal.daily_hours.get(weekday, 0.0)
        known = {s.id for s in self.state.subjects}
        subject_ids = [sid for sid in goal.subjects if sid in known]
        if target <= 0 or not subject_ids:
            return []

        hours_per_subject = target / len(subject_ids)
        return [
            DailyGoal(
                subject_id=sid,
                target_hours=hours_per_subject,
                completed_hours=total_study_time(self.state.pomodoro_sessions, today, sid),
                date=today,
            )
            for sid in subject_ids
        ]

    def get_goal_progress(self, subject_id: str, today: Optional[datetime.date] = None) -> DailyGoal:
        """Today's goal for one subject (zeroed when the subject has none)"""
        today = today or datetime.date.today()
        goal = next((g for g in self.get_today_goals(today) if g.subject_id == subject_id), None)
        return goal or DailyGoal(subject_id=subject_id, target_hours=0.0, completed_hours=0.0, date=today)
