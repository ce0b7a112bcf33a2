"""
Performance Filter Service - Classifies accuracy into colored tiers.

Filters are user-editable and may overlap or leave gaps; the first active
filter (in stored order) that contains an accuracy wins.
"""

import logging
from typing import Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from studytracker.domain.exceptions import NotFoundError, ValidationError
from studytracker.domain.models import (
    NEUTRAL_COLOR, PerformanceFilter, PerformanceSettings, Subject, Topic,
)
from studytracker.infra.store import AppState, Collection
from studytracker.utils import percentage

logger = logging.getLogger(__name__)


def topic_accuracy(topic: Topic) -> int:
    return percentage(topic.questions_correct, topic.questions_resolved)


def pooled_accuracy(topics: Iterable[Topic]) -> int:
    """Correct over resolved summed across topics (not a mean of percentages)"""
    topics = list(topics)
    resolved = sum(t.questions_resolved for t in topics)
    correct = sum(t.questions_correct for t in topics)
    return percentage(correct, resolved)


class PerformanceFilterService:
    """Performance classifier backed by the shared application state"""

    def __init__(self, state: AppState):
        self.state = state

    @property
    def settings(self) -> PerformanceSettings:
        return self.state.performance_settings

    def _match(self, accuracy: int) -> Optional[PerformanceFilter]:
        return next((f for f in self.settings.filters if f.matches(accuracy)), None)

    def get_topic_performance_color(self, accuracy: int) -> str:
        """Color of the first active filter containing accuracy, gray otherwise"""
        match = self._match(accuracy)
        return match.color if match else NEUTRAL_COLOR

    def get_performance_tier(self, accuracy: int) -> Optional[PerformanceFilter]:
        return self._match(accuracy)

    def get_subject_average_accuracy(self, topics: Iterable[Topic]) -> int:
        return pooled_accuracy(topics)

    def get_filtered_topics(self, topics: List[Topic]) -> List[Topic]:
        if not self.settings.show_only_filtered:
            return topics
        return [t for t in topics if self._match(topic_accuracy(t)) is not None]

    def get_filtered_subjects(self, subjects: List[Subject]) -> List[Subject]:
        if not self.settings.show_only_filtered:
            return subjects
        return [s for s in subjects if self._match(pooled_accuracy(s.topics)) is not None]

    async def update_filter(self, filter_id: str, **changes) -> PerformanceFilter:
        """
        Edit a filter (name, bounds, color, active flag).

        Raises:
            NotFoundError: unknown filter
            ValidationError: bounds outside 0-100 or min > max
        """
        current = next((f for f in self.settings.filters if f.id == filter_id), None)
        if current is None:
            raise NotFoundError("filter", filter_id)

        try:
            updated = PerformanceFilter.model_validate({**current.model_dump(), **changes})
        except PydanticValidationError as e:
            raise ValidationError("Invalid values. Min must not exceed max and both must be within 0-100.") from e

        await self._save_filters([updated if f.id == filter_id else f for f in self.settings.filters])
        return updated

    async def toggle_filter_active(self, filter_id: str) -> PerformanceFilter:
        current = next((f for f in self.settings.filters if f.id == filter_id), None)
        if current is None:
            raise NotFoundError("filter", filter_id)
        return await self.update_filter(filter_id, is_active=not current.is_active)

    async def update_show_only_filtered(self, show: bool) -> None:
        await self.state.save(Collection.PERFORMANCE_SETTINGS,
                              lambda prev: prev.model_copy(update={"show_only_filtered": show}))

    async def reset_to_defaults(self) -> None:
        await self.state.save(Collection.PERFORMANCE_SETTINGS, lambda _: PerformanceSettings())
        logger.info("Performance filters reset to defaults")

    async def _save_filters(self, filters: List[PerformanceFilter]) -> None:
        await self.state.save(Collection.PERFORMANCE_SETTINGS,
                              lambda prev: prev.model_copy(update={"filters": filters}))
