# tests/test_task_api.py

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from smart_tasks.cli.bootstrap import create_initial_state
from smart_tasks.core.errors import TaskValidationError
from smart_tasks.remote.memory_source import InMemoryTaskSource
from smart_tasks.storage.local_store import LocalStore
from smart_tasks.tasks import task_api
from smart_tasks.tasks.task_models import Category, TaskPatch, tasks_to_json, utc_now

from .conftest import NOW, make_task


def test_build_new_task_fills_defaults() -> None:
    task = task_api.build_new_task("  Plan sprint  ", " notes ", "urgent", NOW + timedelta(days=1), now=NOW)

    assert task.id == int(NOW.timestamp() * 1000)
    assert task.title == "Plan sprint"
    assert task.description == "notes"
    assert task.category is Category.URGENT
    assert task.completed is False
    assert task.created_at == NOW
    assert task.completed_at is None


def test_build_new_task_validates_title_and_deadline() -> None:
    with pytest.raises(TaskValidationError, match="Title is required"):
        task_api.build_new_task("   ", now=NOW)
    with pytest.raises(TaskValidationError, match="Deadline must be in the future"):
        task_api.build_new_task("Late", deadline=NOW - timedelta(minutes=1), now=NOW)
    with pytest.raises(TaskValidationError, match="unknown category"):
        task_api.build_new_task("Typo", category="wrok", now=NOW)


def test_new_task_id_skips_taken_ids() -> None:
    base = int(NOW.timestamp() * 1000)

    assert task_api.new_task_id([base, base + 1], now=NOW) == base + 2


def test_completion_patch_stamps_and_clears_completed_at() -> None:
    pending = make_task(1, completed=False)
    done = make_task(2, completed=True, completed_at=NOW)

    stamped = task_api.completion_patch(pending, TaskPatch(completed=True), now=NOW)
    cleared = task_api.completion_patch(done, TaskPatch(completed=False), now=NOW)
    untouched = task_api.completion_patch(pending, TaskPatch(title="x"), now=NOW)

    assert stamped.completed_at == NOW
    assert cleared.changed_fields() == ["completed", "completed_at"]
    assert cleared.completed_at is None
    assert untouched.changed_fields() == ["title"]


@pytest.mark.asyncio
async def test_create_task_auto_categorizes_and_schedules_reminders(state, remote) -> None:
    deadline = utc_now() + timedelta(days=2)

    task, pending = task_api.create_task(state, "Fix urgent bug", deadline=deadline)
    await pending

    assert task.category is Category.URGENT
    assert state.engine.get(task.id) is not None
    assert [t.id for t in remote.snapshot] == [task.id]
    assert state.reminders.pending_count(task.id) == 4
    state.reminders.cancel_all()


@pytest.mark.asyncio
async def test_create_task_rejects_invalid_input_without_side_effects(state, remote) -> None:
    with pytest.raises(TaskValidationError):
        task_api.create_task(state, "", category=Category.WORK)

    assert state.engine.tasks == []
    assert remote.calls == []


@pytest.mark.asyncio
async def test_set_completed_stamps_time_and_cancels_reminders(state) -> None:
    task, pending = task_api.create_task(
        state, "Send invoice", category=Category.WORK, deadline=utc_now() + timedelta(hours=3)
    )
    await pending
    assert state.reminders.pending_count(task.id) == 3

    await task_api.set_completed(state, task.id)

    done = state.engine.get(task.id)
    assert done.completed is True
    assert done.completed_at is not None
    assert state.reminders.pending_count(task.id) == 0

    await task_api.set_completed(state, task.id, False)

    reopened = state.engine.get(task.id)
    assert reopened.completed_at is None
    assert state.reminders.pending_count(task.id) == 3
    state.reminders.cancel_all()


@pytest.mark.asyncio
async def test_update_task_validates_patch(state) -> None:
    task, pending = task_api.create_task(state, "Rename me", category=Category.PERSONAL)
    await pending

    with pytest.raises(TaskValidationError):
        task_api.update_task(state, task.id, {"title": "  "})
    with pytest.raises(TaskValidationError):
        task_api.update_task(state, task.id, {"id": 5})

    assert task_api.update_task(state, task.id, {}) is None
    assert task_api.update_task(state, 404, {"title": "x"}) is None
    assert state.engine.get(task.id).title == "Rename me"


@pytest.mark.asyncio
async def test_delete_task_cancels_reminders(state, remote) -> None:
    task, pending = task_api.create_task(
        state, "Doctor appointment", deadline=utc_now() + timedelta(days=3)
    )
    await pending

    await task_api.delete_task(state, task.id)

    assert state.engine.tasks == []
    assert remote.snapshot == []
    assert state.reminders.pending_count() == 0


@pytest.mark.asyncio
async def test_startup_merge_arms_reminders_for_remote_only_tasks(settings, notifier) -> None:
    due = utc_now() + timedelta(days=3)
    remote = InMemoryTaskSource([make_task(9, "Server deadline", deadline=due)])
    state = create_initial_state(settings=settings, remote=remote, notifier=notifier)

    await state.engine.start()

    assert [t.id for t in state.engine.tasks] == [9]
    assert state.reminders.pending_count(9) == 4
    state.reminders.cancel_all()


@pytest.mark.asyncio
async def test_sync_and_external_reload_rearm_reminders(settings, notifier) -> None:
    LocalStore(settings.storage_dir, namespace=settings.storage_namespace).write(
        "tasks", tasks_to_json([make_task(1, "Local only", deadline=utc_now() + timedelta(days=2))])
    )
    remote = InMemoryTaskSource([make_task(5, "From server", deadline=utc_now() + timedelta(hours=3))])
    state = create_initial_state(settings=settings, remote=remote, notifier=notifier)
    task_api.rearm_reminders(state)
    assert state.reminders.pending_count(1) == 4

    await state.engine.sync_with_server()

    assert state.reminders.pending_count(1) == 0
    assert state.reminders.pending_count(5) == 3

    state.engine.watch_local_store()
    payload = json.dumps(tasks_to_json([make_task(6, "Other window", deadline=utc_now() + timedelta(days=2))]))
    assert state.store.dispatch_external_change("tasks", payload) is True

    assert state.reminders.pending_count(5) == 0
    assert state.reminders.pending_count(6) == 4
    state.reminders.cancel_all()
