"""
Report Generation Service using Jinja2 templates.

Architecture Decision: Template Pattern
Allows users to customize the study summary without changing code.
"""

import datetime
import logging
from pathlib import Path
from typing import List, Optional
from jinja2 import Environment, FileSystemLoader

from studytracker.domain.models import Weekday
from studytracker.infra.store import AppState
from studytracker.services.goal_service import GoalService
from studytracker.services.stats_service import StatisticsService
from studytracker.utils import get_resource_path

logger = logging.getLogger(__name__)


class ReportService:
    """
    Renders study summaries from the current state using Jinja2 templates.
    """

    def __init__(self, state: AppState, template_dir: Optional[Path] = None):
        """
        Initialize the report service.

        Args:
            state: Application state to report on
            template_dir: Directory containing Jinja2 templates
        """
        if template_dir is None:
            template_dir = get_resource_path("resources/templates")

        self.state = state
        self.stats = StatisticsService(state)
        self.goals = GoalService(state)
        self.template_dir = template_dir

        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True
        )

        self.env.filters['format_hours'] = self._format_hours
        self.env.filters['format_date'] = self._format_date

    @staticmethod
    def _format_hours(hours: float) -> str:
        """Format fractional hours as HH:MM"""
        minutes = int(round(hours * 60))
        h, m = divmod(minutes, 60)
        return f"{h:02d}:{m:02d}"

    @staticmethod
    def _format_date(value, fmt: str = "%Y-%m-%d") -> str:
        return value.strftime(fmt)

    def build_context(self, today: Optional[datetime.date] = None) -> dict:
        """Collect everything a summary template may use"""
        today = today or datetime.date.today()
        goal = self.goals.get_active_goal()

        days = []
        if goal:
            for weekday in Weekday:
                progress = self.goals.get_day_progress(goal, weekday)
                days.append({
                    'weekday': weekday.value,
                    'date': goal.date_for(weekday),
                    'excluded': weekday in goal.excluded_days,
                    'progress': progress,
                })

        return {
            'generated_at': datetime.datetime.now(),
            'today': today,
            'subjects': self.stats.get_subject_stats(today),
            'comparison': self.stats.get_comparison_data(today),
            'ranking': self.stats.get_topic_ranking(),
            'goal': goal,
            'goal_progress': self.goals.get_week_progress(goal) if goal else None,
            'goal_days': days,
        }

    def generate_report(self, template_name: Optional[str] = None,
                        output_file: Optional[Path] = None,
                        today: Optional[datetime.date] = None) -> str:
        """
        Render a study summary.

        Args:
            template_name: Template file name (defaults to the user's preference)
            output_file: Optional file path to save the report
            today: Reference day for the trailing series

        Returns:
            The generated report as a string
        """
        template_name = template_name or self.state.preferences.default_report_template
        template = self.env.get_template(template_name)
        report_content = template.render(**self.build_context(today))

        if output_file:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(output_file, 'w', encoding='utf-8') as f:
                f.write(report_content)
            logger.info(f"Report written to {output_file}")

        return report_content

    def render_template_string(self, template_string: str, **context) -> str:
        """Render a template from a string instead of a file"""
        template = self.env.from_string(template_string)
        return template.render(**context)

    def list_templates(self) -> List[str]:
        """List all available template files"""
        return sorted(f.name for pattern in ("*.txt", "*.md", "*.html")
                      for f in self.template_dir.glob(pattern))
