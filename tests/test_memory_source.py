# tests/test_memory_source.py

from __future__ import annotations

import pytest

from smart_tasks.cli.bootstrap import build_remote, create_initial_state
from smart_tasks.core.errors import RemoteTaskError
from smart_tasks.remote.http_source import HttpTaskSource
from smart_tasks.remote.memory_source import InMemoryTaskSource, demo_tasks

from .conftest import NOW, make_task


def test_demo_tasks_have_unique_ids_and_future_deadlines() -> None:
    tasks = demo_tasks(NOW)

    assert len(tasks) == 7
    assert len({t.id for t in tasks}) == 7
    assert all(t.deadline is None or t.deadline > NOW for t in tasks if not t.completed)


@pytest.mark.asyncio
async def test_stored_tasks_are_isolated_copies() -> None:
    original = make_task(1, "Original")
    source = InMemoryTaskSource([original])

    listed = await source.list()
    listed[0].title = "Mutated by caller"
    original.title = "Mutated at source"

    assert source.snapshot[0].title == "Original"


@pytest.mark.asyncio
async def test_unknown_ids_and_failing_operations_raise() -> None:
    source = InMemoryTaskSource([make_task(1)])

    with pytest.raises(RemoteTaskError) as info:
        await source.update(2, make_task(2))
    assert info.value.status_code == 404

    source.set_failing("delete")
    with pytest.raises(RemoteTaskError):
        await source.delete(1)
    assert [op for op, _ in source.calls] == ["update", "delete"]

    with pytest.raises(ValueError):
        source.set_failing("explode")


def test_build_remote_picks_backend_from_settings(settings) -> None:
    settings.seed_demo_tasks = True
    mock = build_remote(settings)
    assert isinstance(mock, InMemoryTaskSource)
    assert len(mock.snapshot) == 7

    settings.remote_base_url = "http://localhost:3001/api"
    assert isinstance(build_remote(settings), HttpTaskSource)


def test_create_initial_state_creates_local_dirs(settings) -> None:
    state = create_initial_state(settings=settings, remote=InMemoryTaskSource())

    assert settings.storage_dir.is_dir()
    assert state.store.directory == settings.storage_dir / "smart_tasks"
    assert state.engine.tasks == []
