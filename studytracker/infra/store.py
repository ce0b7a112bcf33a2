"""
Application state container.

All collections live here in memory and are written through the record
repository whenever they change. Services receive the same AppState instance
instead of reaching for module-level globals.

Architecture Decision: swap first, persist second
save()/save_many() compute every new value before touching the in-memory
state and swap them in without awaiting in between. Readers on the event
loop therefore never see half of a multi-collection change. A failed write
leaves memory ahead of the database; the error is logged and re-raised.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import TypeAdapter
from sqlalchemy.exc import SQLAlchemyError

from studytracker.domain.models import (
    Subject, Performance, PomodoroSession, PomodoroSettings,
    WeeklyGoal, PerformanceSettings, UserPreferences,
)
from studytracker.infra.repository import RecordRepository

logger = logging.getLogger(__name__)


class Collection(str, Enum):
    """Record keys, one per persisted collection"""
    SUBJECTS = "subjects"
    PERFORMANCES = "performances"
    POMODORO_SESSIONS = "pomodoroSessions"
    POMODORO_SETTINGS = "pomodoroSettings"
    WEEKLY_GOALS = "weeklyGoals"
    PERFORMANCE_SETTINGS = "performanceSettings"


_ADAPTERS: Dict[Collection, TypeAdapter] = {
    Collection.SUBJECTS: TypeAdapter(List[Subject]),
    Collection.PERFORMANCES: TypeAdapter(List[Performance]),
    Collection.POMODORO_SESSIONS: TypeAdapter(List[PomodoroSession]),
    Collection.POMODORO_SETTINGS: TypeAdapter(PomodoroSettings),
    Collection.WEEKLY_GOALS: TypeAdapter(List[WeeklyGoal]),
    Collection.PERFORMANCE_SETTINGS: TypeAdapter(PerformanceSettings),
}

Updater = Callable[[Any], Any]


class AppState:
    """In-memory collections with load-on-init and write-on-mutate semantics"""

    def __init__(self, repository: Optional[RecordRepository] = None,
                 preferences: Optional[UserPreferences] = None):
        self.repo = repository or RecordRepository()
        self.preferences = preferences or UserPreferences()
        self._values: Dict[Collection, Any] = self._defaults()
        self.is_loaded = False

    def _defaults(self) -> Dict[Collection, Any]:
        return {
            Collection.SUBJECTS: [],
            Collection.PERFORMANCES: [],
            Collection.POMODORO_SESSIONS: [],
            Collection.POMODORO_SETTINGS: self.preferences.pomodoro_settings(),
            Collection.WEEKLY_GOALS: [],
            Collection.PERFORMANCE_SETTINGS: PerformanceSettings(),
        }

    async def load(self) -> None:
        """Read every collection once; missing ones keep their defaults"""
        stored = await self.repo.get_all()
        for key in Collection:
            raw = stored.get(key.value)
            if raw is None:
                continue
            self._values[key] = _ADAPTERS[key].validate_python(raw)
        self.is_loaded = True
        logger.info(
            f"State loaded: {len(self.subjects)} subjects, "
            f"{len(self.performances)} performances, {len(self.weekly_goals)} goals"
        )

    def get(self, key: Collection) -> Any:
        return self._values[key]

    async def save(self, key: Collection, updater: Updater) -> Any:
        """Apply updater to the latest value of one collection and persist it"""
        new_values = await self.save_many({key: updater})
        return new_values[key]

    async def save_many(self, updaters: Dict[Collection, Updater]) -> Dict[Collection, Any]:
        """
        Apply several updaters and persist the results in one transaction.

        If any updater raises, nothing is changed.
        """
        new_values = {key: updater(self._values[key]) for key, updater in updaters.items()}
        self._values.update(new_values)

        payload = {
            key.value: _ADAPTERS[key].dump_python(value, mode="json")
            for key, value in new_values.items()
        }
        try:
            await self.repo.put_many(payload)
        except SQLAlchemyError as e:
            logger.error(f"Failed to persist {', '.join(payload)}: {e}")
            raise
        return new_values

    # Read accessors

    @property
    def subjects(self) -> List[Subject]:
        return self._values[Collection.SUBJECTS]

    @property
    def performances(self) -> List[Performance]:
        return self._values[Collection.PERFORMANCES]

    @property
    def pomodoro_sessions(self) -> List[PomodoroSession]:
        return self._values[Collection.POMODORO_SESSIONS]

    @property
    def pomodoro_settings(self) -> PomodoroSettings:
        return self._values[Collection.POMODORO_SETTINGS]

    @property
    def weekly_goals(self) -> List[WeeklyGoal]:
        return self._values[Collection.WEEKLY_GOALS]

    @property
    def performance_settings(self) -> PerformanceSettings:
        return self._values[Collection.PERFORMANCE_SETTINGS]
