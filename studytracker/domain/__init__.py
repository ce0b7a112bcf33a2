"""Domain layer - Pure business entities and logic"""

from .models import (
    Priority, SessionType, Distribution, Weekday,
    Topic, Subject, Performance, PomodoroSession, PomodoroSettings,
    WeeklyGoal, PerformanceFilter, PerformanceSettings, UserPreferences,
)
from .exceptions import StudyTrackerError, ValidationError, NotFoundError, InvariantViolation

__all__ = [
    "Priority", "SessionType", "Distribution", "Weekday",
    "Topic", "Subject", "Performance", "PomodoroSession", "PomodoroSettings",
    "WeeklyGoal", "PerformanceFilter", "PerformanceSettings", "UserPreferences",
    "StudyTrackerError", "ValidationError", "NotFoundError", "InvariantViolation",
]
