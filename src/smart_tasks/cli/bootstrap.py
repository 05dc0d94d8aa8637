# src/smart_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/remote/engine/assistant/auth/reminders),
- keeps reminders in step with list replacements done by the engine.
"""

from __future__ import annotations

import logging

from ..assistant.heuristics import TaskAssistant
from ..auth.session import MockAuthProvider
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier
from ..core.ports import Notifier, RemoteTaskSource
from ..core.state import AppState
from ..remote.http_source import HttpTaskSource
from ..remote.memory_source import InMemoryTaskSource, demo_tasks
from ..storage.local_store import LocalStore
from ..tasks.reminders import ReminderScheduler
from ..tasks.task_api import ReminderRearmer
from ..tasks.sync_engine import TaskSyncEngine

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.storage_dir.mkdir(parents=True, exist_ok=True)


def build_remote(settings) -> RemoteTaskSource:
    """HTTP backend when a base URL is configured, otherwise the in-memory mock server."""
    if settings.remote_base_url:
        logger.info("Using HTTP task source at %s", settings.remote_base_url)
        return HttpTaskSource(settings.remote_base_url, timeout_seconds=settings.remote_timeout_seconds)

    logger.info("No remote base URL configured, using in-memory task source.")
    seed = demo_tasks() if settings.seed_demo_tasks else []
    return InMemoryTaskSource(seed, latency_seconds=settings.remote_latency_seconds)


def create_initial_state(
    *,
    settings=None,
    remote: RemoteTaskSource | None = None,
    notifier: Notifier | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = LocalStore(settings.storage_dir, namespace=settings.storage_namespace)
    if remote is None:
        remote = build_remote(settings)

    engine = TaskSyncEngine(
        store,
        remote,
        storage_key=settings.tasks_storage_key,
        quick_update_max_fields=settings.quick_update_max_fields,
    )

    state = AppState(
        settings=settings,
        store=store,
        remote=remote,
        engine=engine,
        assistant=TaskAssistant(),
        auth=MockAuthProvider(store, session_key=settings.session_storage_key),
        reminders=ReminderScheduler(notifier or ConsoleNotifier(), enabled=settings.reminders_enabled),
    )
    engine.subscribe(ReminderRearmer(state))
    return state
