# src/smart_tasks/core/errors.py

from __future__ import annotations


class SmartTasksError(Exception):
    """Base class for errors raised by smart_tasks."""


class RemoteTaskError(SmartTasksError):
    """A remote task source call failed (network, timeout, non-success status)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TaskValidationError(SmartTasksError, ValueError):
    """A new task or a patch was rejected before touching any state."""


class DuplicateTaskError(SmartTasksError, ValueError):
    """add_task() was called with an id that is already present."""

    def __init__(self, task_id: object) -> None:
        super().__init__(f"Task id already exists: {task_id!r}")
        self.task_id = task_id
