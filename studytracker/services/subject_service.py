"""
Subject Service - Owns the subject/topic hierarchy.

Subjects are created in bulk from a compact text format:

    "Matemática: Álgebra, Geometria; Português: Gramática"

Aggregate totals on a subject are derived from its topics and recomputed by
update_subject_stats() after every ledger change.
"""

import datetime
import logging
from typing import List, Optional, Tuple

from studytracker.domain.exceptions import NotFoundError, ValidationError
from studytracker.domain.models import ParsedSubject, Priority, Subject, Topic
from studytracker.infra.store import AppState, Collection
from studytracker.utils import new_id, round_hours

logger = logging.getLogger(__name__)


def parse_subjects_text(text: str) -> List[ParsedSubject]:
    """
    Parse 'Subject: topic, topic; Subject: topic' into subject entries.

    Clauses without a name or without a topic list are skipped. An empty list
    means nothing usable was found.
    """
    result: List[ParsedSubject] = []
    clean_text = (text or "").strip().replace("\n", "")

    for part in clean_text.split(";"):
        part = part.strip()
        if not part or ":" not in part:
            continue

        name, topics_text = (s.strip() for s in part.split(":", 1))
        if not name or not topics_text:
            continue

        topics = [t.strip() for t in topics_text.split(",") if t.strip()]
        result.append(ParsedSubject(name=name, topics=topics))

    return result


def recompute_totals(subject: Subject) -> Subject:
    """Return a copy of subject whose totals are re-summed from its topics"""
    return subject.model_copy(update={
        "total_hours": round_hours(sum(t.hours_studied for t in subject.topics)),
        "total_questions": sum(t.questions_resolved for t in subject.topics),
        "total_correct": sum(t.questions_correct for t in subject.topics),
        "updated_at": datetime.datetime.now(),
    })


class SubjectService:
    """Subject registry backed by the shared application state"""

    def __init__(self, state: AppState):
        self.state = state

    @property
    def subjects(self) -> List[Subject]:
        return self.state.subjects

    def parse_subjects_text(self, text: str) -> List[ParsedSubject]:
        return parse_subjects_text(text)

    async def add_subjects_from_text(self, text: str,
                                     default_priority: Priority = Priority.MEDIA) -> List[Subject]:
        """
        Create one subject (with its topics) per parsed entry.

        Args:
            text: Subjects in 'Name: topic, topic; Name: topic' format
            default_priority: Priority given to every created subject

        Returns:
            The newly created subjects

        Raises:
            ValidationError: if the text contains no usable subject
        """
        parsed = parse_subjects_text(text)
        if not parsed:
            raise ValidationError("No subjects found. Use 'Subject: topic, topic; Subject: topic'.")

        now = datetime.datetime.now()
        new_subjects = []
        for entry in parsed:
            subject_id = new_id("subject")
            topics = [
                Topic(id=new_id("topic"), name=name, subject_id=subject_id,
                      created_at=now, updated_at=now)
                for name in entry.topics
            ]
            new_subjects.append(Subject(
                id=subject_id,
                name=entry.name,
                priority=default_priority,
                topics=topics,
                created_at=now,
                updated_at=now,
            ))

        await self.state.save(Collection.SUBJECTS, lambda prev: prev + new_subjects)
        logger.info(f"Added {len(new_subjects)} subjects: {', '.join(s.name for s in new_subjects)}")
        return new_subjects

    async def update_subject_priority(self, subject_id: str, priority: Priority) -> None:
        now = datetime.datetime.now()
        await self.state.save(Collection.SUBJECTS, lambda prev: [
            s.model_copy(update={"priority": priority, "updated_at": now}) if s.id == subject_id else s
            for s in prev
        ])

    async def delete_subject(self, subject_id: str) -> None:
        """
        Remove a subject and its topics.

        Performances and weekly goals that reference the subject are left
        untouched; readers skip ids they cannot resolve.
        """
        await self.state.save(Collection.SUBJECTS,
                              lambda prev: [s for s in prev if s.id != subject_id])
        logger.info(f"Deleted subject {subject_id}")

    def get_subjects_by_priority(self, priority: Optional[Priority] = None) -> List[Subject]:
        if priority is None:
            return list(self.subjects)
        return [s for s in self.subjects if s.priority == priority]

    def get_subject(self, subject_id: str) -> Optional[Subject]:
        return next((s for s in self.subjects if s.id == subject_id), None)

    def find_topic(self, topic_id: str) -> Tuple[Subject, Topic]:
        """
        Locate a topic and its owning subject.

        Raises:
            NotFoundError: if no subject owns a topic with this id
        """
        for subject in self.subjects:
            topic = subject.get_topic(topic_id)
            if topic is not None:
                return subject, topic
        raise NotFoundError("topic", topic_id)

    async def update_subject_stats(self, subject_id: str) -> None:
        """Re-sum a subject's totals from its topics (idempotent)"""
        await self.state.save(Collection.SUBJECTS, lambda prev: [
            recompute_totals(s) if s.id == subject_id else s for s in prev
        ])
