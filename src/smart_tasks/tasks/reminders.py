# src/smart_tasks/tasks/reminders.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from ..core.ports import Notifier
from .task_models import Task, TaskId, utc_now

logger = logging.getLogger(__name__)

# (lead time before the deadline, message)
REMINDER_OFFSETS: tuple[tuple[timedelta, str], ...] = (
    (timedelta(hours=24), "Due tomorrow"),
    (timedelta(hours=1), "Due in 1 hour"),
    (timedelta(minutes=15), "Due in 15 minutes"),
    (timedelta(0), "Due now!"),
)


class ReminderScheduler:
    """
    In-process deadline reminders on top of loop.call_later().

    Only reminders whose fire time is still in the future are armed. Nothing
    survives a restart; callers re-schedule from the task list on startup.
    """

    def __init__(
        self,
        notifier: Notifier,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        enabled: bool = True,
    ) -> None:
        self._notifier = notifier
        self._loop = loop
        self.enabled = enabled
        self._handles: dict[TaskId, set[asyncio.TimerHandle]] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, task: Task, *, now: datetime | None = None) -> int:
        """Arm reminders for `task`; returns how many were scheduled."""
        if not self.enabled or task.deadline is None or task.completed:
            return 0

        now = now or utc_now()
        loop = self._get_loop()
        until_deadline = (task.deadline - now).total_seconds()

        scheduled = 0
        for lead, message in REMINDER_OFFSETS:
            delay = until_deadline - lead.total_seconds()
            if delay <= 0:
                continue
            handle = loop.call_later(delay, self._fire, task, message)
            self._handles.setdefault(task.id, set()).add(handle)
            scheduled += 1

        if scheduled:
            logger.debug("Scheduled %d reminder(s) for task id=%s", scheduled, task.id)
        return scheduled

    def cancel(self, task_id: TaskId) -> int:
        handles = self._handles.pop(task_id, set())
        for handle in handles:
            handle.cancel()
        return len(handles)

    def reschedule(self, task: Task, *, now: datetime | None = None) -> int:
        self.cancel(task.id)
        return self.schedule(task, now=now)

    def cancel_all(self) -> None:
        for task_id in list(self._handles):
            self.cancel(task_id)

    def pending_count(self, task_id: TaskId | None = None) -> int:
        if task_id is None:
            return sum(len(h) for h in self._handles.values())
        return len(self._handles.get(task_id, ()))

    def _fire(self, task: Task, message: str) -> None:
        handles = self._handles.get(task.id)
        if handles is not None:
            for handle in [h for h in handles if h.cancelled() or h.when() <= self._get_loop().time()]:
                handles.discard(handle)
            if not handles:
                self._handles.pop(task.id, None)

        try:
            self._notifier.notify(task, message)
        except Exception:
            logger.exception("Reminder notification failed for task id=%s", task.id)
