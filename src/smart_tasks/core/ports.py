# src/smart_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The sync engine depends on Protocols instead of concrete implementations.
This keeps storage/remote/notification backends swappable and makes testing easier.
"""

from typing import Any, Awaitable, Callable, Protocol

from ..tasks.task_models import Task, TaskId

TaskList = list[Task]

StorageListener = Callable[[str, Any], None]
# (key, decoded JSON value) for changes made by another process.


class KeyValueStore(Protocol):
    """
    Durable local key-value persistence.

    read/write are synchronous from the caller's point of view and never raise
    for missing keys, corrupted content or I/O errors.
    """

    def read(self, key: str, default: Any = None) -> Any: ...
    def write(self, key: str, value: Any) -> None: ...
    def remove(self, key: str) -> None: ...
    def subscribe(self, key: str, listener: StorageListener) -> Callable[[], None]: ...


class RemoteTaskSource(Protocol):
    """
    Remote source of truth for tasks.

    Every call is independently fallible; failures raise (RemoteTaskError or any
    transport error) and must never hang forever.
    """

    def list(self) -> Awaitable[TaskList]: ...
    def create(self, task: Task) -> Awaitable[Task]: ...
    def update(self, task_id: TaskId, task: Task) -> Awaitable[Task]: ...
    def delete(self, task_id: TaskId) -> Awaitable[dict[str, Any]]: ...


class Notifier(Protocol):
    """Where deadline reminders go (console, desktop notification, ...)."""

    def notify(self, task: Task, message: str) -> None: ...
