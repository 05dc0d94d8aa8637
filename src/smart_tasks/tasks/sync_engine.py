# src/smart_tasks/tasks/sync_engine.py

from __future__ import annotations

"""
Task synchronization engine.

Owns the authoritative in-memory task list and keeps two mirrors in step:
- the durable local store (written synchronously on every change),
- the remote task source (written in the background, best-effort).

Rules:
- every mutation is applied to memory + local store BEFORE its network call
  is issued, so callers see the new list as soon as the method returns;
- remote failures never roll anything back, they only set the error slot;
- the startup merge is local-first (local wins on id conflict, remote-only
  tasks are appended); sync_with_server() is the only remote-wins path.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine, Iterable
from dataclasses import dataclass
from typing import Any

from ..core.errors import DuplicateTaskError
from ..core.ports import KeyValueStore, RemoteTaskSource
from .task_models import Task, TaskId, TaskPatch, tasks_from_json, tasks_to_json

logger = logging.getLogger(__name__)

DEFAULT_QUICK_UPDATE_MAX_FIELDS = 2

MSG_INITIAL_SYNC_FAILED = "Failed to sync with server. Using local data."
MSG_CREATE_FAILED = "Failed to sync with server. Task saved locally."
MSG_UPDATE_FAILED = "Failed to sync with server. Changes saved locally."
MSG_DELETE_FAILED = "Failed to sync with server. Task deleted locally."
MSG_SYNC_FAILED = "Failed to sync with server."

EngineListener = Callable[["TaskSyncEngine"], None]


def _ctx(op: str, task_id: TaskId | None = None) -> dict[str, Any]:
    # Picked up by the sync log file handler (see logging_setup).
    return {"op": op, "task_id": "-" if task_id is None else task_id}


@dataclass(slots=True, frozen=True)
class SyncStatus:
    loading: bool
    error: str | None


def merge_local_first(
    local: Iterable[Task],
    remote: Iterable[Task],
    *,
    exclude: Iterable[TaskId] = (),
) -> list[Task]:
    """
    local ++ (remote tasks whose id is not in local).

    Local entries always win on id conflict, so offline edits are never
    downgraded to the last-known remote version. Ids in `exclude` (deleted
    locally in the meantime) are not taken from the remote side.
    """
    merged = list(local)
    known: set[TaskId] = {t.id for t in merged}
    known.update(exclude)
    for task in remote:
        if task.id in known:
            continue
        known.add(task.id)
        merged.append(task)
    return merged


class TaskSyncEngine:
    """
    Optimistic task list with background reconciliation.

    Public surface: tasks, add_task, update_task, delete_task, sync_with_server,
    loading, error, clear_error.

    Mutations must be called from a running event loop: they return the
    background asyncio.Task that mirrors the change (await it to wait for the
    remote outcome), or None when the call was a no-op.
    """

    def __init__(
        self,
        store: KeyValueStore,
        remote: RemoteTaskSource,
        *,
        storage_key: str = "tasks",
        quick_update_max_fields: int = DEFAULT_QUICK_UPDATE_MAX_FIELDS,
        initial: Iterable[Task] | None = None,
    ) -> None:
        self._store = store
        self._remote = remote
        self._key = storage_key
        self.quick_update_max_fields = max(0, int(quick_update_max_fields))

        self._tasks: list[Task] = list(initial) if initial is not None else self._read_local()
        self._loading = False
        self._error: str | None = None

        self._listeners: list[EngineListener] = []
        self._background: set[asyncio.Task[Any]] = set()
        self._initial_sync: asyncio.Task[None] | None = None
        self._deleted_while_loading: set[TaskId] = set()
        self._generation = 0
        self._unsubscribe_store: Callable[[], None] | None = None

        logger.info("TaskSyncEngine ready key=%s local_tasks=%d", self._key, len(self._tasks))

    # ---- state ----

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def status(self) -> SyncStatus:
        return SyncStatus(loading=self._loading, error=self._error)

    @property
    def generation(self) -> int:
        """Bumped whenever the whole list is replaced (startup merge, server sync, external reload, reset)."""
        return self._generation

    @property
    def pending_operations(self) -> int:
        return len(self._background)

    def get(self, task_id: TaskId) -> Task | None:
        idx = self._index(task_id)
        return self._tasks[idx] if idx != -1 else None

    def clear_error(self) -> None:
        self._set_error(None)

    def is_quick_update(self, patch: TaskPatch) -> bool:
        return len(patch.changed_fields()) <= self.quick_update_max_fields

    def subscribe(self, listener: EngineListener) -> Callable[[], None]:
        """Called after any change of tasks, loading or error."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ---- low-level helpers ----

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("TaskSyncEngine listener failed")

    def _index(self, task_id: TaskId) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return -1

    def _read_local(self) -> list[Task]:
        return tasks_from_json(self._store.read(self._key, []))

    def _commit(self, tasks: list[Task]) -> None:
        """Replace the in-memory list and mirror it to the local store."""
        self._tasks = tasks
        self._store.write(self._key, tasks_to_json(tasks))
        self._notify()

    def _set_loading(self, value: bool) -> None:
        if self._loading != value:
            self._loading = value
            self._notify()

    def _set_error(self, message: str | None) -> None:
        if self._error != message:
            self._error = message
            self._notify()

    @staticmethod
    def _require_loop() -> None:
        # Raises RuntimeError outside a running loop, before any state is touched.
        asyncio.get_running_loop()

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # ---- startup ----

    def start(self) -> asyncio.Task[None]:
        """
        Kick off the one-time startup merge with the remote source.

        The local list is already visible; calling start() again returns the
        same background task.
        """
        if self._initial_sync is not None:
            return self._initial_sync

        self._require_loop()
        self._set_error(None)
        self._set_loading(True)
        self._initial_sync = self._spawn(self._run_initial_sync(), "tasks-initial-sync")
        return self._initial_sync

    async def _run_initial_sync(self) -> None:
        try:
            remote_tasks = await self._remote.list()
        except Exception as e:
            logger.warning(
                "Initial remote list failed, using local data: %s", e, exc_info=True, extra=_ctx("list")
            )
            self._set_error(MSG_INITIAL_SYNC_FAILED)
        else:
            merged = merge_local_first(self._tasks, remote_tasks, exclude=self._deleted_while_loading)
            added = len(merged) - len(self._tasks)
            self._generation += 1
            self._commit(merged)
            logger.info("Initial sync merged: local=%d remote_only=%d", len(merged) - added, added)
        finally:
            self._deleted_while_loading.clear()
            self._set_loading(False)

    # ---- mutations ----

    def add_task(self, task: Task) -> asyncio.Task[None]:
        """Append `task` (id already assigned), persist, then create it remotely in the background."""
        self._require_loop()
        if self._index(task.id) != -1:
            raise DuplicateTaskError(task.id)

        self._set_error(None)
        self._set_loading(True)
        self._commit([*self._tasks, task])
        logger.debug("Task added locally id=%s", task.id)
        return self._spawn(self._push_create(task), f"tasks-create-{task.id}")

    async def _push_create(self, task: Task) -> None:
        try:
            await self._remote.create(task)
        except Exception as e:
            logger.warning("Remote create failed: %s", e, exc_info=True, extra=_ctx("create", task.id))
            self._set_error(MSG_CREATE_FAILED)
        finally:
            self._set_loading(False)

    def update_task(self, task_id: TaskId, patch: TaskPatch | dict[str, Any]) -> asyncio.Task[None] | None:
        """
        Shallow-merge `patch` into the task, persist, then send the full merged task remotely.

        Quick updates (few changed fields, e.g. a completion toggle) never raise `loading`.
        Unknown ids are a silent no-op and return None.
        """
        self._require_loop()
        if isinstance(patch, dict):
            patch = TaskPatch.from_dict(patch)

        idx = self._index(task_id)
        if idx == -1:
            logger.debug("update_task: unknown id=%s (no-op)", task_id)
            return None

        updated = patch.apply(self._tasks[idx])
        quick = self.is_quick_update(patch)

        self._set_error(None)
        if not quick:
            self._set_loading(True)

        tasks = list(self._tasks)
        tasks[idx] = updated
        self._commit(tasks)
        logger.debug("Task updated locally id=%s fields=%s quick=%s", task_id, patch.changed_fields(), quick)
        return self._spawn(self._push_update(task_id, updated, quick), f"tasks-update-{task_id}")

    async def _push_update(self, task_id: TaskId, task: Task, quick: bool) -> None:
        try:
            await self._remote.update(task_id, task)
        except Exception as e:
            logger.warning("Remote update failed: %s", e, exc_info=True, extra=_ctx("update", task_id))
            self._set_error(MSG_UPDATE_FAILED)
        finally:
            if not quick:
                self._set_loading(False)

    def delete_task(self, task_id: TaskId) -> asyncio.Task[None] | None:
        """Remove locally and persist, then delete remotely. Never restored on remote failure."""
        self._require_loop()
        idx = self._index(task_id)
        if idx == -1:
            logger.debug("delete_task: unknown id=%s (no-op)", task_id)
            return None

        if self._initial_sync is not None and not self._initial_sync.done():
            self._deleted_while_loading.add(task_id)

        self._set_error(None)
        self._set_loading(True)
        self._commit([t for t in self._tasks if t.id != task_id])
        logger.debug("Task deleted locally id=%s", task_id)
        return self._spawn(self._push_delete(task_id), f"tasks-delete-{task_id}")

    async def _push_delete(self, task_id: TaskId) -> None:
        try:
            await self._remote.delete(task_id)
        except Exception as e:
            logger.warning("Remote delete failed: %s", e, exc_info=True, extra=_ctx("delete", task_id))
            self._set_error(MSG_DELETE_FAILED)
        finally:
            self._set_loading(False)

    async def sync_with_server(self) -> bool:
        """
        Replace local state with the remote list (remote wins, no merge).

        Returns True on success. On failure the state is unchanged and `error` is set.
        """
        self._set_error(None)
        self._set_loading(True)
        try:
            remote_tasks = await self._remote.list()
        except Exception as e:
            logger.warning("Remote sync failed: %s", e, exc_info=True, extra=_ctx("sync"))
            self._set_error(MSG_SYNC_FAILED)
            return False
        else:
            self._generation += 1
            self._commit(list(remote_tasks))
            logger.info("Synced from server: %d tasks", len(remote_tasks))
            return True
        finally:
            self._set_loading(False)

    def reset_local(self) -> None:
        """
        Forget every task locally (memory and store) without any remote call.

        Used when the signed-in user changes: the cached list belongs to the
        previous session.
        """
        self._deleted_while_loading.clear()
        self._tasks = []
        self._store.remove(self._key)
        self._generation += 1
        logger.info("Local task cache cleared")
        self._notify()

    # ---- local store change notification ----

    def watch_local_store(self) -> Callable[[], None]:
        """Follow writes to the tasks key made by another process."""
        if self._unsubscribe_store is None:
            self._unsubscribe_store = self._store.subscribe(self._key, self._on_store_change)
        return self._unsubscribe_store

    def _on_store_change(self, key: str, value: Any) -> None:
        if key != self._key:
            return
        if not isinstance(value, list):
            logger.warning("Ignoring external change of %s: not a task list", key)
            return
        self._tasks = tasks_from_json(value)
        self._generation += 1
        logger.info("Tasks reloaded from external change: %d tasks", len(self._tasks))
        self._notify()

    # ---- lifecycle ----

    async def drain(self) -> None:
        """Wait until every background sync call (including ones spawned meanwhile) has settled."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding background calls (local state is already persisted)."""
        if self._unsubscribe_store is not None:
            self._unsubscribe_store()
            self._unsubscribe_store = None

        pending = list(self._background)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self._loading:
            self._set_loading(False)
