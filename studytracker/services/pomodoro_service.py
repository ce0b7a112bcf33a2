"""
Pomodoro Service - Focus timer and session log.

Architecture Decision: Explicit state machine + APScheduler
IDLE -> RUNNING <-> PAUSED -> IDLE. The countdown is driven by an interval
job on an AsyncIOScheduler that calls tick() once per second. Pausing pauses
the job; completing, stopping or resetting removes it. All in-memory state
changes happen before the first await of an operation, so a tick that arrives
after stop_session() finds the timer IDLE and does nothing.
"""

import asyncio
import datetime
import logging
from enum import Enum
from typing import Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pydantic import ValidationError as PydanticValidationError

from studytracker.domain.exceptions import NotFoundError, ValidationError
from studytracker.domain.models import PomodoroSession, PomodoroSettings, SessionType
from studytracker.infra.store import AppState, Collection
from studytracker.services.performance_service import PerformanceService
from studytracker.utils import new_id

logger = logging.getLogger(__name__)

POMODORO_NOTE = "Pomodoro session"
TICK_JOB_ID = "pomodoro_tick"


def total_study_time(sessions: List[PomodoroSession], day: datetime.date,
                     subject_id: Optional[str] = None) -> float:
    """Hours of completed work sessions started on `day`"""
    minutes = sum(
        s.duration for s in sessions
        if s.start_time.date() == day and s.is_completed and s.type == SessionType.WORK
        and (subject_id is None or s.subject_id == subject_id)
    )
    return minutes / 60


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class PomodoroService:
    """
    The focus timer engine. Manages state but knows nothing about the UI.

    Listeners can be attached through on_tick (seconds left) and
    on_session_finished (the logged session, completed or aborted).
    """

    def __init__(self, state: AppState, performance_service: Optional[PerformanceService] = None,
                 tick_interval: float = 1.0, scheduler: Optional[AsyncIOScheduler] = None):
        self.state = state
        self.performance_service = performance_service or PerformanceService(state)

        self.timer_state = TimerState.IDLE
        self.time_left: int = 0  # seconds
        self.current_session: Optional[PomodoroSession] = None
        self.current_type = SessionType.WORK
        self.session_count: int = 0  # completed work sessions

        # Created on first start, bound to the running event loop
        self.scheduler = scheduler
        self.tick_interval = tick_interval

        self.on_tick: Optional[Callable[[int], None]] = None
        self.on_session_finished: Optional[Callable[[PomodoroSession], None]] = None

    def _get_scheduler(self) -> AsyncIOScheduler:
        if self.scheduler is None:
            self.scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        if not self.scheduler.running:
            self.scheduler.start()
        return self.scheduler

    def _start_ticking(self) -> None:
        """Schedule tick() every tick_interval seconds, replacing any previous job"""
        self._get_scheduler().add_job(
            self.tick,
            IntervalTrigger(seconds=self.tick_interval),
            id=TICK_JOB_ID,
            name="Pomodoro countdown",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def _stop_ticking(self) -> None:
        if self.scheduler is not None and self.scheduler.get_job(TICK_JOB_ID):
            self.scheduler.remove_job(TICK_JOB_ID)

    @property
    def is_ticking(self) -> bool:
        """True while the countdown job is scheduled and not paused"""
        if self.scheduler is None:
            return False
        job = self.scheduler.get_job(TICK_JOB_ID)
        return job is not None and job.next_run_time is not None

    def close(self) -> None:
        """Drop the countdown job and stop the scheduler"""
        self._stop_ticking()
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    @property
    def sessions(self) -> List[PomodoroSession]:
        return self.state.pomodoro_sessions

    @property
    def settings(self) -> PomodoroSettings:
        return self.state.pomodoro_settings

    @property
    def is_running(self) -> bool:
        return self.timer_state == TimerState.RUNNING

    def start_session(self, session_type: Optional[SessionType] = None,
                      subject_id: Optional[str] = None,
                      topic_id: Optional[str] = None) -> Optional[PomodoroSession]:
        """
        Start a new interval. Only valid while IDLE.

        Args:
            session_type: work, break or longBreak (defaults to the preselected type)
            subject_id: Subject being studied (work sessions)
            topic_id: Topic being studied (work sessions)

        Returns:
            The session in progress, or None if a session is already active
        """
        if self.timer_state != TimerState.IDLE:
            logger.warning(f"Cannot start a session while timer is {self.timer_state.value}")
            return None

        session_type = SessionType(session_type) if session_type else self.current_type
        duration = self.settings.duration_for(session_type)

        self.current_session = PomodoroSession(
            id=new_id("session"),
            subject_id=subject_id,
            topic_id=topic_id,
            start_time=datetime.datetime.now(),
            duration=duration,
            is_completed=False,
            type=session_type,
        )
        self.current_type = session_type
        self.time_left = int(round(duration * 60))
        self.timer_state = TimerState.RUNNING
        self._start_ticking()

        logger.info(f"Started {session_type.value} session ({duration:g} min)")
        return self.current_session

    def pause_session(self) -> None:
        if self.timer_state != TimerState.RUNNING:
            return
        self.scheduler.pause_job(TICK_JOB_ID)
        self.timer_state = TimerState.PAUSED

    def resume_session(self) -> None:
        if self.timer_state != TimerState.PAUSED or self.time_left <= 0:
            return
        self.timer_state = TimerState.RUNNING
        self.scheduler.resume_job(TICK_JOB_ID)

    async def tick(self) -> None:
        """Advance the countdown by one second"""
        if self.timer_state != TimerState.RUNNING:
            return

        self.time_left = max(0, self.time_left - 1)
        if self.on_tick:
            self.on_tick(self.time_left)

        if self.time_left == 0:
            await self.handle_session_complete()

    async def handle_session_complete(self) -> Optional[PomodoroSession]:
        """
        Finish the current interval after its countdown ran out.

        Logs the session as completed, turns a work session with a topic into
        a performance record and picks the next interval type.
        """
        session = self.current_session
        if session is None:
            return None

        completed = session.model_copy(update={
            "end_time": datetime.datetime.now(),
            "is_completed": True,
        })
        self.reset_session()

        if session.type == SessionType.WORK:
            self.session_count += 1
            if self.session_count % self.settings.sessions_until_long_break == 0:
                next_type = SessionType.LONG_BREAK
            else:
                next_type = SessionType.BREAK
            auto_start = self.settings.auto_start_breaks
        else:
            next_type = SessionType.WORK
            auto_start = self.settings.auto_start_work
        self.current_type = next_type

        await self.state.save(Collection.POMODORO_SESSIONS, lambda prev: prev + [completed])
        logger.info(f"Completed {session.type.value} session, next: {next_type.value}")

        if session.type == SessionType.WORK and session.subject_id and session.topic_id:
            try:
                await self.performance_service.add_performance(
                    session.topic_id, session.duration / 60, 0, 0, POMODORO_NOTE
                )
            except NotFoundError as e:
                logger.warning(f"Pomodoro time not logged: {e}")

        if self.on_session_finished:
            self.on_session_finished(completed)

        if auto_start:
            self.start_session(next_type)

        return completed

    async def stop_session(self) -> Optional[PomodoroSession]:
        """
        Abort the current interval.

        The session is logged with is_completed=False and never produces a
        performance record.
        """
        if self.timer_state == TimerState.IDLE or self.current_session is None:
            return None

        aborted = self.current_session.model_copy(update={
            "end_time": datetime.datetime.now(),
            "is_completed": False,
        })
        self.reset_session()

        await self.state.save(Collection.POMODORO_SESSIONS, lambda prev: prev + [aborted])
        logger.info(f"Stopped {aborted.type.value} session early")

        if self.on_session_finished:
            self.on_session_finished(aborted)
        return aborted

    def reset_session(self) -> None:
        """Drop the current interval without logging it"""
        self._stop_ticking()
        self.timer_state = TimerState.IDLE
        self.time_left = 0
        self.current_session = None

    async def update_settings(self, **changes) -> PomodoroSettings:
        """
        Change timer settings (durations in minutes).

        Raises:
            ValidationError: if a value is out of range
        """
        try:
            new_settings = PomodoroSettings.model_validate({**self.settings.model_dump(), **changes})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid pomodoro settings: {e}") from e

        await self.state.save(Collection.POMODORO_SETTINGS, lambda _: new_settings)
        return new_settings

    def get_today_sessions(self, today: Optional[datetime.date] = None) -> List[PomodoroSession]:
        today = today or datetime.date.today()
        return [s for s in self.sessions if s.start_time.date() == today]

    def get_total_study_time(self, subject_id: Optional[str] = None,
                             today: Optional[datetime.date] = None) -> float:
        """Hours of completed work sessions today, optionally for one subject"""
        return total_study_time(self.sessions, today or datetime.date.today(), subject_id)

    @staticmethod
    def format_time(seconds: int) -> str:
        """Format seconds as MM:SS"""
        minutes, seconds = divmod(max(0, int(seconds)), 60)
        return f"{minutes:02d}:{seconds:02d}"
