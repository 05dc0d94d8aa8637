# src/smart_tasks/tasks/task_api.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from ..core.errors import TaskValidationError
from ..core.state import AppState
from .sync_engine import TaskSyncEngine
from .task_models import Category, Task, TaskId, TaskPatch, UNSET, utc_now

logger = logging.getLogger(__name__)


def new_task_id(existing_ids: Iterable[TaskId] = (), *, now: datetime | None = None) -> int:
    """Millisecond timestamp, bumped until it does not collide with `existing_ids`."""
    now = now or utc_now()
    taken = set(existing_ids)
    candidate = int(now.timestamp() * 1000)
    while candidate in taken:
        candidate += 1
    return candidate


def build_new_task(
    title: str,
    description: str = "",
    category: Category | str = Category.WORK,
    deadline: datetime | None = None,
    *,
    existing_ids: Iterable[TaskId] = (),
    now: datetime | None = None,
) -> Task:
    """Validate user input and build a fresh, incomplete task (nothing is stored here)."""
    now = now or utc_now()

    clean_title = (title or "").strip()
    if not clean_title:
        raise TaskValidationError("Title is required")
    if deadline is not None and deadline <= now:
        raise TaskValidationError("Deadline must be in the future")
    try:
        clean_category = Category.parse(category)
    except ValueError as e:
        raise TaskValidationError(str(e)) from e

    return Task(
        id=new_task_id(existing_ids, now=now),
        title=clean_title,
        description=(description or "").strip(),
        category=clean_category,
        completed=False,
        deadline=deadline,
        created_at=now,
        completed_at=None,
    )


def completion_patch(task: Task, patch: TaskPatch, now: datetime | None = None) -> TaskPatch:
    """
    Keep completed_at consistent with a completion change.

    false -> true stamps completed_at (unless the patch sets it explicitly);
    completed=False clears it.
    """
    if patch.completed is UNSET:
        return patch
    if patch.completed and not task.completed and patch.completed_at is UNSET:
        return patch.with_changes(completed_at=now or utc_now())
    if not patch.completed:
        return patch.with_changes(completed_at=None)
    return patch


def create_task(
    state: AppState,
    title: str,
    description: str = "",
    category: Category | str | None = None,
    deadline: datetime | None = None,
) -> tuple[Task, asyncio.Task[None]]:
    """
    Build a task, hand it to the sync engine and arm its reminders.

    With category=None the assistant picks one from the text.
    """
    if category is None:
        category = state.assistant.categorize_task(title, description)

    task = build_new_task(
        title,
        description,
        category,
        deadline,
        existing_ids=[t.id for t in state.engine.tasks],
    )
    pending = state.engine.add_task(task)
    state.reminders.schedule(task)
    logger.info("Created task id=%s category=%s", task.id, task.category.value)
    return task, pending


def update_task(
    state: AppState,
    task_id: TaskId,
    patch: TaskPatch | dict[str, Any],
) -> asyncio.Task[None] | None:
    """Apply a patch through the engine; returns None for unknown ids or empty patches."""
    if isinstance(patch, dict):
        try:
            patch = TaskPatch.from_dict(patch)
        except ValueError as e:
            raise TaskValidationError(str(e)) from e

    current = state.engine.get(task_id)
    if current is None or patch.is_empty():
        return None

    if patch.title is not UNSET and not str(patch.title).strip():
        raise TaskValidationError("Title is required")

    patch = completion_patch(current, patch)
    pending = state.engine.update_task(task_id, patch)

    updated = state.engine.get(task_id)
    if updated is not None:
        state.reminders.reschedule(updated)
    return pending


def set_completed(state: AppState, task_id: TaskId, completed: bool = True) -> asyncio.Task[None] | None:
    return update_task(state, task_id, TaskPatch(completed=completed))


def delete_task(state: AppState, task_id: TaskId) -> asyncio.Task[None] | None:
    state.reminders.cancel(task_id)
    return state.engine.delete_task(task_id)


def rearm_reminders(state: AppState) -> int:
    """Drop every armed reminder and schedule again from the engine's current list."""
    state.reminders.cancel_all()
    return sum(state.reminders.schedule(task) for task in state.engine.tasks)


class ReminderRearmer:
    """
    Engine listener that re-arms reminders whenever the engine replaces its
    whole list (startup merge, /sync, a reload from another process, logout).

    Single-task edits are handled by the helpers above.
    """

    def __init__(self, state: AppState) -> None:
        self._state = state
        self._generation = state.engine.generation

    def __call__(self, engine: TaskSyncEngine) -> None:
        if engine.generation == self._generation:
            return
        self._generation = engine.generation
        armed = rearm_reminders(self._state)
        logger.debug("Re-armed %d reminder(s) after list replacement", armed)


def logout(state: AppState) -> None:
    """End the session and drop the previous user's cached tasks and reminders."""
    state.auth.logout()
    state.reminders.cancel_all()
    state.engine.reset_local()
