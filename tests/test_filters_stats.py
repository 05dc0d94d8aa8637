# tests/test_filters_stats.py

from __future__ import annotations

from datetime import timedelta

from smart_tasks.tasks.task_filters import StatusFilter, filter_tasks
from smart_tasks.tasks.task_models import Category
from smart_tasks.tasks.task_stats import (
    compute_stats,
    daily_trend,
    overdue_tasks,
    productivity_score,
    upcoming_deadlines,
)

from .conftest import NOW, make_task


def _sample():
    return [
        make_task(1, "Quarterly Report", description="finance", category=Category.WORK),
        make_task(2, "Buy milk", category=Category.PERSONAL, completed=True, completed_at=NOW),
        make_task(3, "Fix prod outage", description="REPORT to team", category=Category.URGENT),
        make_task(4, "Gym", category=Category.PERSONAL),
    ]


def test_search_is_case_insensitive_over_title_and_description() -> None:
    assert [t.id for t in filter_tasks(_sample(), search="report")] == [1, 3]
    assert [t.id for t in filter_tasks(_sample(), search="  ")] == [1, 2, 3, 4]


def test_filters_combine_and_preserve_order() -> None:
    tasks = _sample()

    assert [t.id for t in filter_tasks(tasks, status="pending", category="personal")] == [4]
    assert [t.id for t in filter_tasks(tasks, status=StatusFilter.COMPLETED)] == [2]
    assert [t.id for t in filter_tasks(tasks, status="bogus", category=Category.URGENT)] == [3]


def test_overdue_and_upcoming_deadlines() -> None:
    tasks = [
        make_task(1, "late", deadline=NOW - timedelta(hours=1)),
        make_task(2, "done late", deadline=NOW - timedelta(hours=1), completed=True, completed_at=NOW),
        make_task(3, "later", deadline=NOW + timedelta(days=3)),
        make_task(4, "sooner", deadline=NOW + timedelta(hours=2)),
        make_task(5, "no deadline"),
    ]

    assert [t.id for t in overdue_tasks(tasks, NOW)] == [1]
    assert [t.id for t in upcoming_deadlines(tasks, NOW)] == [4, 3]
    assert [t.id for t in upcoming_deadlines(tasks, NOW, limit=1)] == [4]


def test_compute_stats_counts() -> None:
    tasks = _sample() + [make_task(5, "Due soon", deadline=NOW + timedelta(days=2))]

    stats = compute_stats(tasks, NOW)

    assert (stats.total, stats.completed, stats.pending) == (5, 1, 4)
    assert stats.completion_rate == 20.0
    assert stats.upcoming_week == 1
    assert stats.completed_last_week == 1
    assert stats.by_category[Category.PERSONAL].total == 2
    assert stats.by_category[Category.PERSONAL].completion_rate == 50.0
    assert stats.by_category[Category.URGENT].completed == 0
    assert len(stats.trend) == 7
    assert 0 <= stats.productivity_score <= 100


def test_empty_list_has_zero_stats() -> None:
    stats = compute_stats([], NOW)

    assert stats.total == 0
    assert stats.completion_rate == 0.0
    assert stats.productivity_score == 0


def test_productivity_score_rewards_completion_and_variety() -> None:
    all_done = [
        make_task(i, f"t{i}", category=cat, completed=True, completed_at=NOW)
        for i, cat in enumerate(Category, start=1)
    ]

    # 100% * 0.4 + 30 on time + 3 categories * 5 + 3 recent * 2
    assert productivity_score(all_done, NOW) == 91


def test_daily_trend_groups_by_creation_day() -> None:
    tasks = [
        make_task(1, created_at=NOW),
        make_task(2, created_at=NOW, completed=True),
        make_task(3, created_at=NOW - timedelta(days=2)),
    ]

    trend = daily_trend(tasks, NOW)

    assert trend[-1].day == NOW.date()
    assert (trend[-1].created, trend[-1].completed, trend[-1].efficiency) == (2, 1, 50)
    assert trend[-3].created == 1
    assert trend[0].efficiency == 0
