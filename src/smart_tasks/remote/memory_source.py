# src/smart_tasks/remote/memory_source.py

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Iterable

from ..core.errors import RemoteTaskError
from ..tasks.task_models import Category, Task, TaskId, utc_now

logger = logging.getLogger(__name__)

OPERATIONS = frozenset({"list", "create", "update", "delete"})


def demo_tasks(now: datetime | None = None) -> list[Task]:
    """Seed data for demos and offline runs."""
    now = now or utc_now()
    day = timedelta(days=1)
    return [
        Task(
            id=1,
            title="Review Q4 project proposals",
            description="Evaluate all submitted project proposals for Q4 and provide feedback to the team leads",
            category=Category.WORK,
            deadline=now + 3 * day,
            created_at=now,
        ),
        Task(
            id=2,
            title="Schedule doctor appointment",
            description="Book annual checkup with Dr. Smith for next month",
            category=Category.PERSONAL,
            deadline=now + 7 * day,
            created_at=now,
        ),
        Task(
            id=3,
            title="Fix critical production bug",
            description="User authentication is failing for Safari browsers - needs immediate attention",
            category=Category.URGENT,
            deadline=now + day,
            created_at=now,
        ),
        Task(
            id=4,
            title="Buy groceries for dinner party",
            description="Get ingredients for Saturday's dinner party: salmon, vegetables, wine, dessert",
            category=Category.PERSONAL,
            completed=True,
            created_at=now,
            completed_at=now,
        ),
        Task(
            id=5,
            title="Prepare client presentation",
            description="Create slides and demo for the ABC Corp product showcase meeting",
            category=Category.WORK,
            deadline=now + 5 * day,
            created_at=now,
        ),
        Task(
            id=6,
            title="Update project documentation",
            description="Add API documentation and update README files for the new features released",
            category=Category.WORK,
            completed=True,
            created_at=now,
            completed_at=now,
        ),
        Task(
            id=7,
            title="Plan weekend hiking trip",
            description="Research trails, check weather, pack equipment for the mountain hiking trip",
            category=Category.PERSONAL,
            deadline=now + 2 * day,
            created_at=now,
        ),
    ]


class InMemoryTaskSource:
    """
    Mock remote used when no REST endpoint is configured (and in tests).

    Behavior:
    - every call sleeps `latency_seconds` first (simulated network)
    - operations listed in `fail_operations` raise RemoteTaskError
    - update replaces the stored task; update/delete of unknown ids raise
    - stored tasks are copies, callers never share objects with the "server"
    """

    def __init__(
        self,
        tasks: Iterable[Task] | None = None,
        *,
        latency_seconds: float = 0.0,
        fail_operations: Iterable[str] = (),
    ) -> None:
        self._tasks: list[Task] = [copy.deepcopy(t) for t in (tasks or [])]
        self.latency_seconds = max(0.0, float(latency_seconds))
        self.fail_operations: set[str] = set()
        self.set_failing(*fail_operations)
        self.calls: list[tuple[str, Any]] = []

    def set_failing(self, *operations: str) -> None:
        unknown = set(operations) - OPERATIONS
        if unknown:
            raise ValueError(f"Unsupported operations: {sorted(unknown)}")
        self.fail_operations = set(operations)

    @property
    def snapshot(self) -> list[Task]:
        return [copy.deepcopy(t) for t in self._tasks]

    async def _enter(self, op: str, arg: Any = None) -> None:
        self.calls.append((op, arg))
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        if op in self.fail_operations:
            raise RemoteTaskError(f"Simulated {op} failure")

    def _index(self, task_id: TaskId) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return -1

    async def list(self) -> list[Task]:
        await self._enter("list")
        return self.snapshot

    async def create(self, task: Task) -> Task:
        await self._enter("create", task.id)
        stored = copy.deepcopy(task)
        idx = self._index(task.id)
        if idx == -1:
            self._tasks.append(stored)
        else:
            self._tasks[idx] = stored
        logger.debug("InMemoryTaskSource created id=%s", task.id)
        return copy.deepcopy(stored)

    async def update(self, task_id: TaskId, task: Task) -> Task:
        await self._enter("update", task_id)
        idx = self._index(task_id)
        if idx == -1:
            raise RemoteTaskError(f"Task not found: {task_id}", status_code=404)
        self._tasks[idx] = replace(copy.deepcopy(task), id=task_id)
        return copy.deepcopy(self._tasks[idx])

    async def delete(self, task_id: TaskId) -> dict[str, Any]:
        await self._enter("delete", task_id)
        idx = self._index(task_id)
        if idx == -1:
            raise RemoteTaskError(f"Task not found: {task_id}", status_code=404)
        del self._tasks[idx]
        return {"success": True}
