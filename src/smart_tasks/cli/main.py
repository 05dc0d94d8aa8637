# src/smart_tasks/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs on one asyncio loop:
- the startup merge with the remote source,
- the local store watcher (changes made by another process),
- the console REPL (optional).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import _print_ts, run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..storage.local_store import watch_local_store
from ..tasks.sync_engine import TaskSyncEngine
from ..tasks.task_api import rearm_reminders

logger = logging.getLogger(__name__)


class _ErrorReporter:
    """Print each new sync error once (the engine keeps only the latest)."""

    def __init__(self) -> None:
        self._last: str | None = None

    def __call__(self, engine: TaskSyncEngine) -> None:
        error = engine.error
        if error and error != self._last:
            _print_ts(f"[SYNC] {error}")
        self._last = error


async def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.reminders.cancel_all()
    except Exception:
        logger.debug("Reminder cancel failed.", exc_info=True)

    try:
        await asyncio.wait_for(state.engine.drain(), timeout=5.0)
    except asyncio.TimeoutError:
        logger.info("Background sync still pending at exit; local data is already saved.")
    except Exception:
        logger.exception("Failed to drain background sync calls.")

    try:
        await state.engine.aclose()
    except Exception:
        logger.exception("Failed to close sync engine.")

    aclose = getattr(state.remote, "aclose", None)
    if aclose is not None:
        try:
            await aclose()
        except Exception:
            logger.debug("Remote close failed.", exc_info=True)


async def run(state: AppState) -> None:
    settings = state.settings
    engine = state.engine

    engine.subscribe(_ErrorReporter())
    engine.watch_local_store()
    engine.start()

    # The startup merge re-arms again once the remote list is in.
    rearm_reminders(state)

    watcher = asyncio.create_task(watch_local_store(state.store), name="local-store-watcher")
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)

    try:
        if settings.console_enabled:
            console = asyncio.create_task(run_console_loop(state), name="console")
            stopper = asyncio.create_task(stop.wait(), name="stop-signal")
            await asyncio.wait({console, stopper}, return_when=asyncio.FIRST_COMPLETED)
            for t in (console, stopper):
                t.cancel()
        else:
            logger.info("Console disabled. Running background sync only. Press Ctrl+C to stop.")
            await stop.wait()
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    setup_logging(log_dir=settings.data_dir, level=getattr(settings, "log_level", "INFO"))

    logger.info("Starting %s...", settings.app_name)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    try:
        asyncio.run(run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
