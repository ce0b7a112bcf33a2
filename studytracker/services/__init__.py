"""Services layer - Business logic"""

from .subject_service import SubjectService
from .performance_service import PerformanceService
from .pomodoro_service import PomodoroService, TimerState
from .goal_service import GoalService
from .filter_service import PerformanceFilterService
from .stats_service import StatisticsService
from .report_service import ReportService

__all__ = ["SubjectService", "PerformanceService", "PomodoroService", "TimerState",
           "GoalService", "PerformanceFilterService", "StatisticsService",
           "ReportService"]
