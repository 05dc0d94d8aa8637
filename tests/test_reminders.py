# tests/test_reminders.py

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from smart_tasks.tasks.reminders import ReminderScheduler
from smart_tasks.tasks.task_models import utc_now

from .conftest import make_task
from .fakes import FakeNotifier


@pytest.mark.asyncio
async def test_only_future_offsets_are_armed() -> None:
    reminders = ReminderScheduler(FakeNotifier())
    now = utc_now()

    far = make_task(1, deadline=now + timedelta(hours=25))
    soon = make_task(2, deadline=now + timedelta(minutes=30))
    past = make_task(3, deadline=now - timedelta(minutes=1))

    assert reminders.schedule(far, now=now) == 4
    assert reminders.schedule(soon, now=now) == 2
    assert reminders.schedule(past, now=now) == 0
    assert reminders.pending_count() == 6

    reminders.cancel_all()
    assert reminders.pending_count() == 0


@pytest.mark.asyncio
async def test_completed_or_undated_tasks_get_no_reminders() -> None:
    reminders = ReminderScheduler(FakeNotifier())

    assert reminders.schedule(make_task(1, deadline=None)) == 0
    assert reminders.schedule(make_task(2, completed=True, deadline=utc_now() + timedelta(days=2))) == 0


@pytest.mark.asyncio
async def test_disabled_scheduler_arms_nothing() -> None:
    reminders = ReminderScheduler(FakeNotifier(), enabled=False)

    assert reminders.schedule(make_task(1, deadline=utc_now() + timedelta(days=2))) == 0


@pytest.mark.asyncio
async def test_due_now_reminder_fires_through_notifier() -> None:
    notifier = FakeNotifier()
    reminders = ReminderScheduler(notifier)
    task = make_task(5, "Stand-up", deadline=utc_now() + timedelta(milliseconds=50))

    assert reminders.schedule(task) == 1
    await asyncio.sleep(0.2)

    assert [(r.task_id, r.message) for r in notifier.sent] == [(5, "Due now!")]
    assert reminders.pending_count(5) == 0


@pytest.mark.asyncio
async def test_reschedule_replaces_previous_handles() -> None:
    reminders = ReminderScheduler(FakeNotifier())
    now = utc_now()
    task = make_task(1, deadline=now + timedelta(hours=2))

    reminders.schedule(task, now=now)
    reminders.schedule(task, now=now)
    assert reminders.pending_count(1) == 6

    assert reminders.reschedule(task, now=now) == 3
    assert reminders.pending_count(1) == 3
    assert reminders.cancel(1) == 3
    assert reminders.cancel(1) == 0
