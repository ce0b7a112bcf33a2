"""
Statistics Service - Read-only views over subjects and the study ledger.

Nothing is cached: every call recomputes from the current state, which is
the single source of truth.
"""

import datetime
from typing import Dict, List, Optional

from studytracker.domain.models import (
    ComparisonData, Performance, RankedTopic, Subject, SubjectPerformanceStats, WeeklyComparison,
)
from studytracker.infra.store import AppState
from studytracker.services.filter_service import topic_accuracy
from studytracker.utils import percentage, round_half_up

NO_TOPIC = "N/A"


def daily_hours_series(performances: List[Performance], days: int,
                       today: datetime.date) -> List[float]:
    """Hours per day over the last `days` days, oldest first, today last"""
    by_day: Dict[datetime.date, float] = {}
    for p in performances:
        day = p.date.date()
        by_day[day] = by_day.get(day, 0.0) + p.hours_studied

    return [
        by_day.get(today - datetime.timedelta(days=offset), 0.0)
        for offset in range(days - 1, -1, -1)
    ]


def _best_and_worst_topic(subject: Subject):
    best, worst = NO_TOPIC, NO_TOPIC
    best_accuracy, worst_accuracy = -1, 101

    for topic in subject.topics:
        if topic.questions_resolved <= 0:
            continue
        accuracy = topic_accuracy(topic)
        # Strict comparisons keep the first topic on ties
        if accuracy > best_accuracy:
            best_accuracy, best = accuracy, topic.name
        if accuracy < worst_accuracy:
            worst_accuracy, worst = accuracy, topic.name

    return best, worst


class StatisticsService:
    """Derived statistics for the analysis screens"""

    def __init__(self, state: AppState):
        self.state = state

    def get_subject_stats(self, today: Optional[datetime.date] = None) -> List[SubjectPerformanceStats]:
        """
        Per-subject summary.

        Totals come from the subject aggregates; accuracy is pooled over all
        answers of the subject.
        """
        today = today or datetime.date.today()
        stats = []

        for subject in self.state.subjects:
            performances = [p for p in self.state.performances if p.subject_id == subject.id]
            best, worst = _best_and_worst_topic(subject)

            stats.append(SubjectPerformanceStats(
                subject_id=subject.id,
                subject_name=subject.name,
                total_hours=subject.total_hours,
                total_questions=subject.total_questions,
                total_correct=subject.total_correct,
                average_accuracy=percentage(subject.total_correct, subject.total_questions),
                topics_count=len(subject.topics),
                best_topic=best,
                worst_topic=worst,
                weekly_progress=daily_hours_series(performances, 7, today),
                monthly_progress=daily_hours_series(performances, 30, today),
            ))

        return stats

    def get_comparison_data(self, today: Optional[datetime.date] = None) -> ComparisonData:
        """
        Cross-subject comparison.

        overall_accuracy is the plain mean of the per-subject accuracies, not
        a pooled figure.
        """
        stats = self.get_subject_stats(today)
        empty = SubjectPerformanceStats(subject_id="")

        best = worst = most_studied = stats[0] if stats else empty
        for stat in stats:
            if stat.average_accuracy > best.average_accuracy:
                best = stat
            if stat.average_accuracy < worst.average_accuracy:
                worst = stat
            if stat.total_hours > most_studied.total_hours:
                most_studied = stat

        overall = round_half_up(sum(s.average_accuracy for s in stats) / len(stats)) if stats else 0

        return ComparisonData(
            total_study_time=sum(s.total_hours for s in stats),
            total_questions=sum(s.total_questions for s in stats),
            overall_accuracy=overall,
            best_subject=best,
            worst_subject=worst,
            most_studied_subject=most_studied,
        )

    def get_weekly_comparison(self, today: Optional[datetime.date] = None) -> List[WeeklyComparison]:
        result = []
        for stat in self.get_subject_stats(today):
            weekly_total = sum(stat.weekly_progress)
            result.append(WeeklyComparison(
                subject_id=stat.subject_id,
                weekly_total=weekly_total,
                daily_average=weekly_total / 7,
                progress=stat.weekly_progress,
            ))
        return result

    def get_topic_ranking(self) -> List[RankedTopic]:
        """All topics with answered questions, best accuracy first"""
        ranked = [
            RankedTopic(**topic.model_dump(), subject_name=subject.name, accuracy=topic_accuracy(topic))
            for subject in self.state.subjects
            for topic in subject.topics
            if topic.questions_resolved > 0
        ]
        # sorted() is stable, so ties keep their encounter order
        return sorted(ranked, key=lambda t: -t.accuracy)
