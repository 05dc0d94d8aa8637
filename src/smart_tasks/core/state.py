# src/smart_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..assistant.heuristics import TaskAssistant
from ..auth.session import MockAuthProvider
from ..storage.local_store import LocalStore
from ..tasks.reminders import ReminderScheduler
from ..tasks.sync_engine import TaskSyncEngine
from .ports import RemoteTaskSource


@dataclass
class AppState:
    """
    Shared application state (composition root output).

    Holds settings and service objects (store, remote, sync engine, assistant,
    session provider, reminders).
    """

    settings: Any
    store: LocalStore
    remote: RemoteTaskSource
    engine: TaskSyncEngine
    assistant: TaskAssistant
    auth: MockAuthProvider
    reminders: ReminderScheduler
