# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from smart_tasks.cli.bootstrap import create_initial_state
from smart_tasks.core.state import AppState
from smart_tasks.remote.memory_source import InMemoryTaskSource
from smart_tasks.storage.local_store import LocalStore
from smart_tasks.tasks.task_models import Category, Task

from .fakes import FakeNotifier

NOW = datetime(2030, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_task(task_id=1, title="Task", **kwargs) -> Task:
    kwargs.setdefault("created_at", NOW - timedelta(days=1))
    kwargs.setdefault("category", Category.WORK)
    return Task(id=task_id, title=title, **kwargs)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    data_dir = tmp_path / "data"
    return SimpleNamespace(
        app_name="smart-tasks-test",
        log_level="DEBUG",
        # Paths (tmp per test run)
        data_dir=data_dir,
        storage_dir=data_dir / "storage",
        storage_namespace="smart_tasks",
        tasks_storage_key="tasks",
        session_storage_key="taskmanager_user",
        # Remote
        remote_base_url="",
        remote_timeout_seconds=1.0,
        remote_latency_seconds=0.0,
        seed_demo_tasks=False,
        # Sync policy
        quick_update_max_fields=2,
        # Features
        reminders_enabled=True,
        console_enabled=False,
    )


@pytest.fixture()
def store(tmp_path: Path) -> LocalStore:
    return LocalStore(tmp_path / "storage", namespace="test")


@pytest.fixture()
def remote() -> InMemoryTaskSource:
    return InMemoryTaskSource()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def state(settings: SimpleNamespace, remote: InMemoryTaskSource, notifier: FakeNotifier) -> AppState:
    """AppState wired through the real bootstrap, with an in-memory remote and a recording notifier."""
    return create_initial_state(settings=settings, remote=remote, notifier=notifier)
