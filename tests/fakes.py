# tests/fakes.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from smart_tasks.core.errors import RemoteTaskError
from smart_tasks.remote.memory_source import InMemoryTaskSource
from smart_tasks.tasks.task_models import Task, TaskId


class GatedTaskSource(InMemoryTaskSource):
    """
    In-memory remote whose calls block until the test opens the gate.

    Lets tests observe the engine while remote calls are still in flight
    (and model a server that never answers by leaving the gate shut).
    """

    def __init__(self, tasks: list[Task] | None = None, **kwargs: Any) -> None:
        super().__init__(tasks, **kwargs)
        self.gate = asyncio.Event()

    def open(self) -> None:
        self.gate.set()

    async def _enter(self, op: str, arg: Any = None) -> None:
        self.calls.append((op, arg))
        await self.gate.wait()
        if op in self.fail_operations:
            raise RemoteTaskError(f"Simulated {op} failure")


@dataclass(slots=True)
class Reminder:
    task_id: TaskId
    title: str
    message: str


@dataclass(slots=True)
class FakeNotifier:
    """Notifier that records reminders instead of printing them."""

    sent: list[Reminder] = field(default_factory=list)

    def notify(self, task: Task, message: str) -> None:
        self.sent.append(Reminder(task_id=task.id, title=task.title, message=message))


class EngineRecorder:
    """Engine listener capturing (loading, error, task count) after every change."""

    def __init__(self) -> None:
        self.events: list[tuple[bool, str | None, int]] = []

    def __call__(self, engine) -> None:
        self.events.append((engine.loading, engine.error, len(engine.tasks)))

    @property
    def loading_values(self) -> list[bool]:
        return [loading for loading, _, _ in self.events]
