"""
Domain Models using Pydantic for validation.

Architecture Decision: Why Pydantic?
Every collection is stored as JSON in the record store. Pydantic validates the
data when it is loaded back and gives us serialization for free.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, ConfigDict, model_validator

from studytracker.utils import percentage


class Priority(str, Enum):
    """Study priority of a subject"""
    ALTA = "alta"
    MEDIA = "media"
    BAIXA = "baixa"


class SessionType(str, Enum):
    """Kind of pomodoro interval"""
    WORK = "work"
    BREAK = "break"
    LONG_BREAK = "longBreak"


class Distribution(str, Enum):
    """How a weekly goal spreads its hours over the week"""
    UNIFORM = "uniform"
    CUSTOM = "custom"


class Weekday(str, Enum):
    """Days of the week in ISO order (Monday first)"""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def offset(self) -> int:
        """Days after Monday (0-6)"""
        return list(Weekday).index(self)

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]


NEUTRAL_COLOR = "#6b7280"


class Topic(BaseModel):
    """
    A gradeable sub-unit of a subject.

    The three accumulators are only changed by the performance ledger.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str = Field(..., min_length=1)
    subject_id: str
    hours_studied: float = Field(default=0.0, ge=0)
    questions_resolved: int = Field(default=0, ge=0)
    questions_correct: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class Subject(BaseModel):
    """
    A top-level study category owning its topics.

    total_hours/total_questions/total_correct are derived: they always equal
    the sum of the matching topic accumulators.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str = Field(..., min_length=1)
    priority: Priority = Priority.MEDIA
    topics: List[Topic] = Field(default_factory=list)

    total_hours: float = 0.0
    total_questions: int = 0
    total_correct: int = 0

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def get_topic(self, topic_id: str) -> Optional[Topic]:
        return next((t for t in self.topics if t.id == topic_id), None)


class Performance(BaseModel):
    """
    One logged study event against a topic.

    subject_id is copied from the topic when the record is created.
    """
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    topic_id: str
    subject_id: str
    hours_studied: float = Field(default=0.0, ge=0)
    questions_resolved: int = Field(default=0, ge=0)
    questions_correct: int = Field(default=0, ge=0)
    date: datetime = Field(default_factory=datetime.now)
    notes: Optional[str] = None


class PomodoroSession(BaseModel):
    """
    One timed work or break interval.

    is_completed is True only when the countdown ran out on its own.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    subject_id: Optional[str] = None
    topic_id: Optional[str] = None
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    duration: float = Field(..., gt=0, description="Length in minutes")
    is_completed: bool = False
    type: SessionType = SessionType.WORK


class PomodoroSettings(BaseModel):
    """Timer durations (minutes) and auto-start behaviour"""
    model_config = ConfigDict(from_attributes=True)

    work_duration: float = Field(default=25, gt=0)
    short_break_duration: float = Field(default=5, gt=0)
    long_break_duration: float = Field(default=15, gt=0)
    sessions_until_long_break: int = Field(default=4, ge=1)
    auto_start_breaks: bool = False
    auto_start_work: bool = False

    def duration_for(self, session_type: SessionType) -> float:
        if session_type == SessionType.WORK:
            return self.work_duration
        if session_type == SessionType.LONG_BREAK:
            return self.long_break_duration
        return self.short_break_duration


def empty_week() -> Dict[Weekday, float]:
    return {day: 0.0 for day in Weekday}


class WeeklyGoal(BaseModel):
    """
    A 7-day study-hour quota over a set of subjects.

    week_end is always week_start + 6 days. At most one goal is active.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str = Field(..., min_length=1)
    subjects: List[str] = Field(default_factory=list)
    total_hours: float = Field(..., ge=0)
    week_start: date
    week_end: date
    distribution: Distribution = Distribution.UNIFORM
    daily_hours: Dict[Weekday, float] = Field(default_factory=empty_week)
    excluded_days: List[Weekday] = Field(default_factory=list)
    is_active: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _check_week(self) -> "WeeklyGoal":
        if self.week_end != self.week_start + timedelta(days=6):
            raise ValueError("week_end must be six days after week_start")
        return self

    def date_for(self, weekday: Weekday) -> date:
        return self.week_start + timedelta(days=weekday.offset)


class PerformanceFilter(BaseModel):
    """A named, color-tagged accuracy range used to classify topics"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    min_percentage: int = Field(..., ge=0, le=100)
    max_percentage: int = Field(..., ge=0, le=100)
    color: str
    is_active: bool = True

    @model_validator(mode="after")
    def _check_bounds(self) -> "PerformanceFilter":
        if self.min_percentage > self.max_percentage:
            raise ValueError("min_percentage must not exceed max_percentage")
        return self

    def matches(self, accuracy: int) -> bool:
        return self.is_active and self.min_percentage <= accuracy <= self.max_percentage


def default_filters() -> List[PerformanceFilter]:
    return [
        PerformanceFilter(id="excellent", name="Excellent", min_percentage=80,
                          max_percentage=100, color="#22c55e"),
        PerformanceFilter(id="good", name="Good", min_percentage=60,
                          max_percentage=79, color="#f59e0b"),
        PerformanceFilter(id="needs_improvement", name="Needs Improvement",
                          min_percentage=0, max_percentage=59, color="#ef4444"),
    ]


class PerformanceSettings(BaseModel):
    """Ordered classification filters plus the 'only matching' switch"""
    model_config = ConfigDict(from_attributes=True)

    filters: List[PerformanceFilter] = Field(default_factory=default_filters)
    show_only_filtered: bool = False


class UserPreferences(BaseModel):
    """
    User configuration and preferences.

    This allows users to customize behavior without touching code.
    """
    model_config = ConfigDict(from_attributes=True)

    # Pomodoro defaults (used until the user saves their own timer settings)
    work_duration: float = Field(default=25, gt=0, description="Work interval in minutes")
    short_break_duration: float = Field(default=5, gt=0, description="Short break in minutes")
    long_break_duration: float = Field(default=15, gt=0, description="Long break in minutes")
    sessions_until_long_break: int = Field(default=4, ge=1)
    auto_start_breaks: bool = False
    auto_start_work: bool = False

    # Subjects
    default_priority: Priority = Field(default=Priority.MEDIA, description="Priority for bulk-created subjects")

    # Report settings
    default_report_template: str = "study_summary.txt"

    # Logging
    log_level: str = Field(default="INFO", description="Root log level (DEBUG, INFO, WARNING...)")

    def pomodoro_settings(self) -> PomodoroSettings:
        return PomodoroSettings(
            work_duration=self.work_duration,
            short_break_duration=self.short_break_duration,
            long_break_duration=self.long_break_duration,
            sessions_until_long_break=self.sessions_until_long_break,
            auto_start_breaks=self.auto_start_breaks,
            auto_start_work=self.auto_start_work,
        )


# ---------------------------------------------------------------------------
# Derived views (never persisted)
# ---------------------------------------------------------------------------

class ParsedSubject(BaseModel):
    """One entry produced by the subjects-text parser"""
    name: str
    topics: List[str] = Field(default_factory=list)
    priority: Priority = Priority.MEDIA


class SubjectPerformanceStats(BaseModel):
    subject_id: str
    subject_name: str = ""
    total_hours: float = 0.0
    total_questions: int = 0
    total_correct: int = 0
    average_accuracy: int = 0
    topics_count: int = 0
    best_topic: str = "N/A"
    worst_topic: str = "N/A"
    weekly_progress: List[float] = Field(default_factory=list)
    monthly_progress: List[float] = Field(default_factory=list)


class ComparisonData(BaseModel):
    total_study_time: float
    total_questions: int
    overall_accuracy: int
    best_subject: SubjectPerformanceStats
    worst_subject: SubjectPerformanceStats
    most_studied_subject: SubjectPerformanceStats


class WeeklyComparison(BaseModel):
    subject_id: str
    weekly_total: float
    daily_average: float
    progress: List[float]


class RankedTopic(Topic):
    """A topic annotated with its subject name and accuracy"""
    subject_name: str
    accuracy: int


class GoalProgress(BaseModel):
    completed: float = 0.0
    target: float = 0.0
    percentage: int = 0


class DailyGoal(BaseModel):
    """Today's share of the active weekly goal for one subject"""
    subject_id: str
    target_hours: float
    completed_hours: float
    date: date

    @property
    def percentage(self) -> int:
        if self.target_hours <= 0:
            return 0
        return min(100, percentage(self.completed_hours, self.target_hours))

    @property
    def remaining(self) -> float:
        return max(0.0, self.target_hours - self.completed_hours)
