"""
Tests for derived statistics.
"""

import datetime

import pytest

from studytracker.domain.models import Performance
from studytracker.infra.store import Collection
from studytracker.services.stats_service import NO_TOPIC, daily_hours_series

TODAY = datetime.date(2026, 10, 21)


def perf(perf_id, subject_id, hours, days_ago):
    return Performance(
        id=perf_id, topic_id="topic_x", subject_id=subject_id, hours_studied=hours,
        date=datetime.datetime.combine(TODAY - datetime.timedelta(days=days_ago), datetime.time(9)),
    )


def test_daily_hours_series_is_oldest_first():
    performances = [perf("a", "s", 1.0, 0), perf("b", "s", 0.5, 0), perf("c", "s", 2.0, 1),
                    perf("d", "s", 3.0, 7)]

    series = daily_hours_series(performances, 7, TODAY)
    assert series == [0, 0, 0, 0, 0, 2.0, 1.5]

    monthly = daily_hours_series(performances, 30, TODAY)
    assert len(monthly) == 30
    assert monthly[-8] == 3.0


@pytest.mark.asyncio
async def test_subject_stats(performance_service, stats_service, subjects):
    math = subjects[0]
    algebra, geometry = math.topics

    await performance_service.add_performance(algebra.id, 1.0, 10, 9)
    await performance_service.add_performance(geometry.id, 2.0, 10, 4)

    stats = {s.subject_id: s for s in stats_service.get_subject_stats()}
    math_stats = stats[math.id]

    assert math_stats.subject_name == "Matemática"
    assert math_stats.total_hours == 3.0
    assert math_stats.total_questions == 20
    assert math_stats.total_correct == 13
    assert math_stats.average_accuracy == 65
    assert math_stats.topics_count == 2
    assert math_stats.best_topic == "Álgebra"
    assert math_stats.worst_topic == "Geometria"
    assert len(math_stats.weekly_progress) == 7
    assert len(math_stats.monthly_progress) == 30
    assert math_stats.weekly_progress[-1] == 3.0

    untouched = stats[subjects[1].id]
    assert untouched.average_accuracy == 0
    assert untouched.best_topic == NO_TOPIC
    assert untouched.worst_topic == NO_TOPIC


@pytest.mark.asyncio
async def test_best_topic_tie_keeps_first(performance_service, stats_service, subjects):
    math = subjects[0]
    for topic in math.topics:
        await performance_service.add_performance(topic.id, 1.0, 4, 2)

    [stats] = [s for s in stats_service.get_subject_stats() if s.subject_id == math.id]
    assert stats.best_topic == "Álgebra"
    assert stats.worst_topic == "Álgebra"


@pytest.mark.asyncio
async def test_weekly_series_uses_subject_ledger(state, stats_service, subjects):
    math_id = subjects[0].id
    entries = [perf("p1", math_id, 1.0, 0), perf("p2", math_id, 2.0, 1), perf("p3", subjects[1].id, 5.0, 0)]
    await state.save(Collection.PERFORMANCES, lambda prev: prev + entries)

    [math_stats] = [s for s in stats_service.get_subject_stats(TODAY) if s.subject_id == math_id]
    assert math_stats.weekly_progress[-1] == 1.0
    assert math_stats.weekly_progress[-2] == 2.0

    [weekly] = [w for w in stats_service.get_weekly_comparison(TODAY) if w.subject_id == math_id]
    assert weekly.weekly_total == 3.0
    assert weekly.daily_average == pytest.approx(3.0 / 7)
    assert weekly.progress == math_stats.weekly_progress


@pytest.mark.asyncio
async def test_comparison_data(performance_service, stats_service, subjects):
    math, portuguese = subjects
    await performance_service.add_performance(math.topics[0].id, 1.0, 1, 1)
    await performance_service.add_performance(portuguese.topics[0].id, 3.0, 9, 0)

    comparison = stats_service.get_comparison_data()

    assert comparison.total_study_time == 4.0
    assert comparison.total_questions == 10
    # Mean of 100 and 0, not the pooled 10
    assert comparison.overall_accuracy == 50
    assert comparison.best_subject.subject_id == math.id
    assert comparison.worst_subject.subject_id == portuguese.id
    assert comparison.most_studied_subject.subject_id == portuguese.id


@pytest.mark.asyncio
async def test_comparison_data_without_subjects(stats_service):
    comparison = stats_service.get_comparison_data()

    assert comparison.total_study_time == 0
    assert comparison.total_questions == 0
    assert comparison.overall_accuracy == 0
    assert comparison.best_subject.subject_id == ""
    assert comparison.most_studied_subject.total_hours == 0


@pytest.mark.asyncio
async def test_topic_ranking(performance_service, stats_service, subjects):
    math, portuguese = subjects
    algebra, geometry = math.topics
    grammar = portuguese.topics[0]

    await performance_service.add_performance(algebra.id, 1.0, 10, 5)
    await performance_service.add_performance(grammar.id, 1.0, 10, 5)
    await performance_service.add_performance(geometry.id, 1.0, 0, 0)

    await performance_service.add_performance(grammar.id, 0, 10, 10)

    ranking = stats_service.get_topic_ranking()
    assert [t.name for t in ranking] == ["Gramática", "Álgebra"]
    assert ranking[0].accuracy == 75
    assert ranking[0].subject_name == "Português"


@pytest.mark.asyncio
async def test_topic_ranking_ties_keep_encounter_order(performance_service, stats_service, subjects):
    math, portuguese = subjects
    await performance_service.add_performance(portuguese.topics[0].id, 1.0, 2, 1)
    await performance_service.add_performance(math.topics[1].id, 1.0, 2, 1)
    await performance_service.add_performance(math.topics[0].id, 1.0, 2, 1)

    ranking = stats_service.get_topic_ranking()
    assert [t.name for t in ranking] == ["Álgebra", "Geometria", "Gramática"]
