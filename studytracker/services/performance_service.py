"""
Performance Service - The study ledger.

Every logged study event is appended here, and the owning topic's
accumulators move with it. The record and the accumulator change are written
in one transaction so no reader ever sees one without the other.
"""

import datetime
import logging
from typing import List, Optional, Union

from studytracker.domain.exceptions import InvariantViolation, ValidationError
from studytracker.domain.models import Performance, Subject, Topic
from studytracker.infra.store import AppState, Collection
from studytracker.services.subject_service import SubjectService, recompute_totals
from studytracker.utils import new_id, parse_float, parse_int, round_hours

logger = logging.getLogger(__name__)


def _validate_amounts(hours_studied: float, questions_resolved: int, questions_correct: int) -> None:
    if hours_studied < 0 or questions_resolved < 0 or questions_correct < 0:
        raise ValidationError("Hours and question counts cannot be negative.")
    if hours_studied <= 0 and questions_resolved <= 0:
        raise ValidationError("Enter at least the hours studied or the questions resolved.")
    if questions_correct > questions_resolved:
        raise InvariantViolation(
            f"Correct answers ({questions_correct}) cannot exceed resolved questions ({questions_resolved})."
        )


def _apply_to_topic(subjects: List[Subject], subject_id: str, topic_id: str,
                    hours: float, resolved: int, correct: int) -> List[Subject]:
    """
    Add (or with negative deltas, subtract) amounts to one topic.

    Accumulators never go below zero. The owning subject's totals are
    recomputed from its topics afterwards.
    """
    now = datetime.datetime.now()

    def bump(topic: Topic) -> Topic:
        new_resolved = max(0, topic.questions_resolved + resolved)
        new_correct = max(0, topic.questions_correct + correct)
        return topic.model_copy(update={
            "hours_studied": max(0.0, round_hours(topic.hours_studied + hours)),
            "questions_resolved": new_resolved,
            "questions_correct": min(new_correct, new_resolved),
            "updated_at": now,
        })

    updated = []
    for subject in subjects:
        if subject.id == subject_id:
            topics = [bump(t) if t.id == topic_id else t for t in subject.topics]
            subject = recompute_totals(subject.model_copy(update={"topics": topics}))
        updated.append(subject)
    return updated


class PerformanceService:
    """Append-only log of study events with aggregate maintenance"""

    def __init__(self, state: AppState, subject_service: Optional[SubjectService] = None):
        self.state = state
        self.subject_service = subject_service or SubjectService(state)

    @property
    def performances(self) -> List[Performance]:
        return self.state.performances

    async def add_performance(self, topic_id: str, hours_studied: Union[float, str],
                              questions_resolved: Union[int, str], questions_correct: Union[int, str],
                              notes: Optional[str] = None) -> Performance:
        """
        Log a study event against a topic.

        Args:
            topic_id: Topic that was studied
            hours_studied: Time spent (hours); form text such as "1,5" is accepted
            questions_resolved: Questions answered
            questions_correct: Questions answered correctly
            notes: Optional free text

        Returns:
            The stored performance record

        Raises:
            ValidationError: negative amounts, or neither hours nor questions given
            InvariantViolation: more correct answers than resolved questions
            NotFoundError: no subject owns the topic
        """
        # Unparseable form input counts as 0
        hours_studied = parse_float(hours_studied)
        questions_resolved = parse_int(questions_resolved)
        questions_correct = parse_int(questions_correct)

        _validate_amounts(hours_studied, questions_resolved, questions_correct)
        subject, topic = self.subject_service.find_topic(topic_id)

        performance = Performance(
            id=new_id("perf"),
            topic_id=topic.id,
            subject_id=subject.id,
            hours_studied=hours_studied,
            questions_resolved=questions_resolved,
            questions_correct=questions_correct,
            date=datetime.datetime.now(),
            notes=notes,
        )

        await self.state.save_many({
            Collection.PERFORMANCES: lambda prev: prev + [performance],
            Collection.SUBJECTS: lambda prev: _apply_to_topic(
                prev, subject.id, topic.id,
                hours_studied, questions_resolved, questions_correct,
            ),
        })
        logger.debug(
            f"Performance logged for {subject.name}/{topic.name}: "
            f"{hours_studied:.2f}h, {questions_correct}/{questions_resolved}"
        )
        return performance

    async def delete_performance(self, performance_id: str) -> None:
        """Remove a record and take its amounts back out of the topic (no-op if unknown)"""
        performance = next((p for p in self.performances if p.id == performance_id), None)
        if performance is None:
            logger.debug(f"Performance {performance_id} not found, nothing to delete")
            return

        await self.state.save_many({
            Collection.PERFORMANCES: lambda prev: [p for p in prev if p.id != performance_id],
            Collection.SUBJECTS: lambda prev: _apply_to_topic(
                prev, performance.subject_id, performance.topic_id,
                -performance.hours_studied,
                -performance.questions_resolved,
                -performance.questions_correct,
            ),
        })

    def get_performances_by_topic(self, topic_id: str) -> List[Performance]:
        return [p for p in self.performances if p.topic_id == topic_id]

    def get_performances_by_subject(self, subject_id: str) -> List[Performance]:
        return [p for p in self.performances if p.subject_id == subject_id]

    def get_performances_by_date(self, day: Union[datetime.date, datetime.datetime]) -> List[Performance]:
        """Records logged on the same calendar day (local time)"""
        if isinstance(day, datetime.datetime):
            day = day.date()
        return [p for p in self.performances if p.date.date() == day]

    def get_today_performances(self) -> List[Performance]:
        return self.get_performances_by_date(datetime.date.today())
