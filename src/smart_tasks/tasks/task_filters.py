# src/smart_tasks/tasks/task_filters.py

from __future__ import annotations

from enum import StrEnum
from typing import Iterable

from .task_models import Category, Task


class StatusFilter(StrEnum):
    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"

    @classmethod
    def from_raw(cls, raw: str | None) -> StatusFilter:
        if not raw:
            return cls.ALL
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.ALL


def matches_search(task: Task, search: str) -> bool:
    """Case-insensitive substring match on title or description. Empty search matches everything."""
    needle = (search or "").strip().lower()
    if not needle:
        return True
    return needle in task.title.lower() or needle in task.description.lower()


def matches_status(task: Task, status: StatusFilter) -> bool:
    if status == StatusFilter.COMPLETED:
        return task.completed
    if status == StatusFilter.PENDING:
        return not task.completed
    return True


def matches_category(task: Task, category: Category | str | None) -> bool:
    if category is None or category == "all":
        return True
    return task.category == Category.from_raw(category)


def filter_tasks(
    tasks: Iterable[Task],
    *,
    status: StatusFilter | str = StatusFilter.ALL,
    category: Category | str | None = "all",
    search: str = "",
) -> list[Task]:
    """All three filters combine with AND; input order is preserved."""
    status_f = status if isinstance(status, StatusFilter) else StatusFilter.from_raw(status)
    return [
        t
        for t in tasks
        if matches_search(t, search) and matches_category(t, category) and matches_status(t, status_f)
    ]
