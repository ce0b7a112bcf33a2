"""
Application wiring.

Creates the single AppState and hands the same instance to every service, so
the ledger, the timer and the statistics all look at one set of collections.
"""

import logging
from typing import Optional

from studytracker.infra.config import Settings, get_settings
from studytracker.infra.db import init_db
from studytracker.infra.repository import RecordRepository
from studytracker.infra.store import AppState
from studytracker.services import (
    GoalService, PerformanceFilterService, PerformanceService, PomodoroService,
    ReportService, StatisticsService, SubjectService,
)

logger = logging.getLogger(__name__)


class StudyTrackerApp:
    """Owns the state container and the services built on top of it"""

    def __init__(self, settings: Optional[Settings] = None, state: Optional[AppState] = None):
        self.settings = settings or get_settings()
        self.state = state or AppState(RecordRepository(), self.settings.preferences)

        self.subjects = SubjectService(self.state)
        self.performance = PerformanceService(self.state, self.subjects)
        self.pomodoro = PomodoroService(self.state, self.performance)
        self.goals = GoalService(self.state)
        self.filters = PerformanceFilterService(self.state)
        self.stats = StatisticsService(self.state)
        self.reports = ReportService(self.state)

    async def start(self) -> None:
        """Create tables if needed and load every collection"""
        await init_db(self.settings.get_db_url())
        await self.state.load()
        logger.info("StudyTracker ready")

    async def shutdown(self) -> None:
        """Abort a running timer so the interval is logged, then stop its scheduler"""
        await self.pomodoro.stop_session()
        self.pomodoro.close()
