# src/smart_tasks/storage/local_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ..core.ports import StorageListener

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalStore:
    """
    File-backed JSON key-value store.

    Layout: one JSON document per key, <root_dir>/<namespace>/<key>.json.

    Failure policy:
    - missing key          -> default
    - corrupted JSON       -> logged, default (the file is left for inspection)
    - write/serialize error -> logged, never raised

    Change notification:
    - other processes writing the same key are detected by poll_changes()
      (mtime based) or pushed via dispatch_external_change()
    - our own writes never notify our own listeners
    """

    def __init__(self, root_dir: str | Path, namespace: str = "smart_tasks") -> None:
        self._dir = Path(root_dir) / namespace
        self._dir.mkdir(parents=True, exist_ok=True)
        self._listeners: dict[str, list[StorageListener]] = {}
        self._seen_mtime: dict[str, int | None] = {}
        logger.info("LocalStore ready dir=%s", self._dir)

    @property
    def directory(self) -> Path:
        return self._dir

    # ---- low-level helpers ----

    def _path(self, key: str) -> Path:
        if not key or not _KEY_RE.match(key):
            raise ValueError(f"invalid storage key: {key!r}")
        return self._dir / f"{key}.json"

    def _mtime(self, key: str) -> int | None:
        try:
            return self._path(key).stat().st_mtime_ns
        except FileNotFoundError:
            return None

    # ---- public API ----

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self._dir.glob("*.json"))

    def read(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        try:
            raw = path.read_text("utf-8")
        except FileNotFoundError:
            return default
        except OSError:
            logger.exception("Error reading local store key %r", key)
            return default

        try:
            return json.loads(raw)
        except ValueError:
            logger.error("Error reading local store key %r: stored content is not valid JSON", key)
            return default

    def write(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            payload = json.dumps(value, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            logger.exception("Error setting local store key %r: value is not JSON-serializable", key)
            return

        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(payload, "utf-8")
            os.replace(tmp, path)
        except OSError:
            logger.exception("Error setting local store key %r", key)
            with contextlib.suppress(OSError):
                tmp.unlink()
            return

        self._seen_mtime[key] = self._mtime(key)
        logger.debug("LocalStore wrote key=%s bytes=%d", key, len(payload))

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception("Error removing local store key %r", key)
            return
        self._seen_mtime[key] = None

    def subscribe(self, key: str, listener: StorageListener) -> Callable[[], None]:
        """Listen for changes to `key` made outside this store instance. Returns an unsubscribe callable."""
        self._path(key)
        self._listeners.setdefault(key, []).append(listener)
        self._seen_mtime.setdefault(key, self._mtime(key))

        def _unsubscribe() -> None:
            listeners = self._listeners.get(key, [])
            with contextlib.suppress(ValueError):
                listeners.remove(listener)

        return _unsubscribe

    def dispatch_external_change(self, key: str, raw: str | None) -> bool:
        """
        Deliver a change made by another context.

        Ignored (returns False): keys nobody listens to, deletions (raw=None),
        invalid JSON (logged).
        """
        listeners = list(self._listeners.get(key, []))
        if not listeners:
            return False
        if raw is None:
            logger.debug("Ignoring external removal of key=%s", key)
            return False
        try:
            value = json.loads(raw)
        except ValueError:
            logger.error("Error parsing external change for local store key %r", key)
            return False

        for listener in listeners:
            try:
                listener(key, value)
            except Exception:
                logger.exception("Local store listener failed key=%s", key)
        return True

    def poll_changes(self) -> list[str]:
        """Check subscribed keys for writes by other processes; returns the keys that were dispatched."""
        changed: list[str] = []
        for key in list(self._listeners):
            current = self._mtime(key)
            if current == self._seen_mtime.get(key):
                continue
            self._seen_mtime[key] = current

            raw: str | None
            if current is None:
                raw = None
            else:
                try:
                    raw = self._path(key).read_text("utf-8")
                except OSError:
                    logger.exception("Error reading changed local store key %r", key)
                    continue

            if self.dispatch_external_change(key, raw):
                changed.append(key)
        return changed


async def watch_local_store(store: LocalStore, *, interval_seconds: float = 1.0) -> None:
    """
    Poll the store for external changes until cancelled.

    To stop the watcher, cancel the coroutine/task.
    """
    sleep_s = max(0.1, float(interval_seconds))
    while True:
        try:
            changed = store.poll_changes()
            if changed:
                logger.info("External local store change: %s", ", ".join(changed))
        except Exception:
            logger.exception("poll_changes failed")
        await asyncio.sleep(sleep_s)
