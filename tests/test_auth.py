# tests/test_auth.py

from __future__ import annotations

import pytest

from smart_tasks.auth.session import MSG_INVALID_CREDENTIALS, MSG_USER_EXISTS, MockAuthProvider
from smart_tasks.cli.commands import registry


@pytest.mark.asyncio
async def test_login_persists_session_without_password(store) -> None:
    auth = MockAuthProvider(store)

    result = await auth.login("demo@taskmanager.com", "demo123")

    assert result.success is True
    assert auth.is_authenticated
    stored = store.read("taskmanager_user")
    assert stored["email"] == "demo@taskmanager.com"
    assert "password" not in stored


@pytest.mark.asyncio
async def test_login_rejects_bad_credentials(store) -> None:
    auth = MockAuthProvider(store)

    result = await auth.login("demo@taskmanager.com", "wrong")

    assert (result.success, result.error) == (False, MSG_INVALID_CREDENTIALS)
    assert auth.current_user is None
    assert store.read("taskmanager_user") is None


@pytest.mark.asyncio
async def test_session_is_restored_by_a_new_provider(store) -> None:
    await MockAuthProvider(store).login("admin@taskmanager.com", "admin123")

    restored = MockAuthProvider(store)

    assert restored.current_user is not None
    assert restored.current_user.name == "Admin User"


def test_corrupt_session_is_dropped(store) -> None:
    store.write("taskmanager_user", {"name": "no id or email"})

    auth = MockAuthProvider(store)

    assert auth.current_user is None
    assert store.read("taskmanager_user") is None


@pytest.mark.asyncio
async def test_register_new_and_existing_accounts(store) -> None:
    auth = MockAuthProvider(store)

    taken = await auth.register("user@taskmanager.com", "x", "Dup")
    created = await auth.register("new@example.com", "pw", "New Person")

    assert (taken.success, taken.error) == (False, MSG_USER_EXISTS)
    assert created.success is True
    assert auth.current_user.name == "New Person"

    auth.logout()
    assert (await auth.login("new@example.com", "pw")).success is True


def test_provider_logout_forgets_only_the_session(store) -> None:
    store.write("taskmanager_user", {"id": 2, "email": "user@taskmanager.com", "name": "Regular User"})
    store.write("tasks", [{"id": 1, "title": "cached"}])
    auth = MockAuthProvider(store)

    auth.logout()

    assert not auth.is_authenticated
    assert store.read("taskmanager_user") is None
    assert store.read("tasks") == [{"id": 1, "title": "cached"}]


@pytest.mark.asyncio
async def test_logout_clears_cached_tasks_in_engine_store_and_reminders(state) -> None:
    await registry.handle(state, "/login user@taskmanager.com user123")
    await registry.handle(state, "/add First task @2099-01-01")
    await state.engine.drain()
    assert state.reminders.pending_count() > 0

    assert await registry.handle(state, "/logout") == "Logged out. Local task cache cleared."

    assert state.engine.tasks == []
    assert state.store.read("tasks") is None
    assert state.store.read("taskmanager_user") is None
    assert state.reminders.pending_count() == 0
    assert await registry.handle(state, "/list") == "No tasks found."

    await registry.handle(state, "/add Second task")
    await state.engine.drain()

    assert [t.title for t in state.engine.tasks] == ["Second task"]
    assert [item["title"] for item in state.store.read("tasks")] == ["Second task"]
