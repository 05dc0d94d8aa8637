# src/smart_tasks/tasks/task_stats.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable

from .task_models import Category, Task, utc_now

WEEK = timedelta(days=7)


@dataclass(slots=True, frozen=True)
class CategoryStats:
    total: int
    completed: int

    @property
    def completion_rate(self) -> float:
        return (self.completed / self.total) * 100 if self.total else 0.0


@dataclass(slots=True, frozen=True)
class DayTrend:
    day: date
    created: int
    completed: int

    @property
    def efficiency(self) -> int:
        return round((self.completed / self.created) * 100) if self.created else 0


@dataclass(slots=True, frozen=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    overdue: int
    upcoming_week: int
    completed_last_week: int
    productivity_score: int
    by_category: dict[Category, CategoryStats] = field(default_factory=dict)
    trend: list[DayTrend] = field(default_factory=list)

    @property
    def completion_rate(self) -> float:
        return (self.completed / self.total) * 100 if self.total else 0.0


def overdue_tasks(tasks: Iterable[Task], now: datetime | None = None) -> list[Task]:
    now = now or utc_now()
    return [t for t in tasks if not t.completed and t.deadline is not None and t.deadline < now]


def upcoming_deadlines(tasks: Iterable[Task], now: datetime | None = None, limit: int = 5) -> list[Task]:
    """Incomplete tasks with a future deadline, soonest first."""
    now = now or utc_now()
    upcoming = [t for t in tasks if not t.completed and t.deadline is not None and t.deadline > now]
    upcoming.sort(key=lambda t: t.deadline)  # type: ignore[arg-type,return-value]
    return upcoming[: max(0, int(limit))]


def productivity_score(tasks: list[Task], now: datetime | None = None) -> int:
    """
    0..100 blend of:
    - completion rate (40%)
    - on-time completions among completed tasks (30%)
    - category variety (5 per category, max 20)
    - tasks created in the last week (2 each, max 10)
    """
    now = now or utc_now()
    total = len(tasks)
    done = [t for t in tasks if t.completed]
    rate = (len(done) / total) * 100 if total else 0.0

    score = rate * 0.4

    on_time = 0
    for t in done:
        if t.deadline is None:
            on_time += 1
            continue
        finished = t.completed_at or t.created_at
        if finished <= t.deadline:
            on_time += 1
    score += (on_time / max(len(done), 1)) * 30

    score += min(len({t.category for t in tasks}) * 5, 20)

    recent = [t for t in tasks if t.created_at >= now - WEEK]
    score += min(len(recent) * 2, 10)

    return min(round(score), 100)


def daily_trend(tasks: list[Task], now: datetime | None = None, days: int = 7) -> list[DayTrend]:
    """Created / completed counts per calendar day (UTC) of task creation, oldest day first."""
    now = now or utc_now()
    out: list[DayTrend] = []
    for offset in range(days - 1, -1, -1):
        day = (now - timedelta(days=offset)).date()
        day_tasks = [t for t in tasks if t.created_at.date() == day]
        out.append(
            DayTrend(
                day=day,
                created=len(day_tasks),
                completed=sum(1 for t in day_tasks if t.completed),
            )
        )
    return out


def compute_stats(tasks: Iterable[Task], now: datetime | None = None) -> TaskStats:
    now = now or utc_now()
    items = list(tasks)

    by_category: dict[Category, CategoryStats] = {}
    for cat in Category:
        in_cat = [t for t in items if t.category == cat]
        by_category[cat] = CategoryStats(total=len(in_cat), completed=sum(1 for t in in_cat if t.completed))

    completed = sum(1 for t in items if t.completed)
    upcoming_week = sum(
        1
        for t in items
        if not t.completed and t.deadline is not None and now < t.deadline <= now + WEEK
    )
    completed_last_week = sum(
        1 for t in items if t.completed and t.completed_at is not None and t.completed_at >= now - WEEK
    )

    return TaskStats(
        total=len(items),
        completed=completed,
        pending=len(items) - completed,
        overdue=len(overdue_tasks(items, now)),
        upcoming_week=upcoming_week,
        completed_last_week=completed_last_week,
        productivity_score=productivity_score(items, now),
        by_category=by_category,
        trend=daily_trend(items, now),
    )
