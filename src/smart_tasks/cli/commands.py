# src/smart_tasks/cli/commands.py

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, cast

from ..core.errors import TaskValidationError
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.task_filters import StatusFilter, filter_tasks
from ..tasks.task_models import Category, Task
from ..tasks.task_stats import compute_stats, upcoming_deadlines

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_EDIT_SPLIT_RE = re.compile(r"\s+(?=\w+=)")


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutines.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        result: Any
        if nparams >= 3:
            result = cast(CommandHandler3, handler)(state, args, emit)
        else:
            result = cast(CommandHandler2, handler)(state, args)

        if inspect.isawaitable(result):
            result = await result
        return cast(str, result)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing helpers ----


def _resolve_task(state: AppState, raw: str) -> Task | None:
    """Ids are usually millisecond ints, but remote ids may be strings."""
    raw = raw.strip()
    if raw.lstrip("-").isdigit():
        task = state.engine.get(int(raw))
        if task is not None:
            return task
    return state.engine.get(raw)


def parse_deadline(raw: str) -> datetime | None:
    """
    YYYY-MM-DD or YYYY-MM-DDTHH:MM in local time; "none" clears.

    Raises TaskValidationError on anything else.
    """
    raw = raw.strip()
    if raw.lower() in ("", "none", "-"):
        return None
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError as e:
        raise TaskValidationError(f"Bad deadline: {raw!r} (use YYYY-MM-DD or YYYY-MM-DDTHH:MM)") from e
    if dt.tzinfo is None:
        if len(raw) == 10:
            dt = dt.replace(hour=23, minute=59)
        dt = dt.astimezone()
    return dt


def _fmt_deadline(dt: datetime | None) -> str:
    if dt is None:
        return ""
    return dt.astimezone().strftime("%Y-%m-%d %H:%M")


def _fmt_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    due = f" (due {_fmt_deadline(task.deadline)})" if task.deadline else ""
    return f"  [{mark}] {task.id} [{task.category.value}] {task.title}{due}"


def parse_add_args(text: str) -> tuple[str, str, Category | None, datetime | None]:
    """
    "<title> [| description] [#category] [@deadline]" -> (title, description, category, deadline).

    Tags may appear anywhere; the last one of each kind wins.
    """
    category: Category | None = None
    deadline: datetime | None = None
    words: list[str] = []
    for word in text.split():
        if word.startswith("#") and len(word) > 1:
            value = word[1:].lower()
            if value in {c.value for c in Category}:
                category = Category(value)
                continue
        if word.startswith("@") and len(word) > 1:
            deadline = parse_deadline(word[1:])
            continue
        words.append(word)

    title, _, description = " ".join(words).partition("|")
    return title.strip(), description.strip(), category, deadline


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    engine = state.engine
    base_url = getattr(state.settings, "remote_base_url", "")
    remote = base_url or "in-memory mock"
    user = state.auth.current_user
    return (
        "Status:\n"
        f"  Tasks: {len(engine.tasks)}\n"
        f"  Loading: {'yes' if engine.loading else 'no'}\n"
        f"  Pending sync calls: {engine.pending_operations}\n"
        f"  Error: {engine.error or '-'}\n"
        f"  Remote: {remote}\n"
        f"  User: {user.email if user else '-'}"
    )


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list                              -> everything
    /list pending work report          -> status, category, then search text
    """
    rest = list(args)
    status = StatusFilter.ALL
    category: str = "all"

    if rest and rest[0].lower() in {s.value for s in StatusFilter}:
        status = StatusFilter(rest.pop(0).lower())
    if rest and rest[0].lower() in {"all", *(c.value for c in Category)}:
        category = rest.pop(0).lower()
    search = " ".join(rest)

    tasks = filter_tasks(state.engine.tasks, status=status, category=category, search=search)
    if not tasks:
        return "No tasks found."
    lines = [f"Tasks ({len(tasks)}):"]
    lines.extend(_fmt_task(t) for t in tasks)
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /add <title> [| description] [#work|#personal|#urgent] [@YYYY-MM-DD]"
    try:
        title, description, category, deadline = parse_add_args(" ".join(args))
        task, _pending = task_api.create_task(state, title, description, category, deadline)
    except TaskValidationError as e:
        return f"Cannot add task: {e}"
    return f"Added task {task.id}: {task.title} [{task.category.value}]"


def _set_completed(state: AppState, args: list[str], completed: bool) -> str:
    if not args:
        return f"Usage: /{'done' if completed else 'undo'} <id>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task with id {args[0]}."
    if task.completed == completed:
        return f"Task {task.id} is already {'completed' if completed else 'pending'}."
    task_api.set_completed(state, task.id, completed)
    return f"Task {task.id} marked {'completed' if completed else 'pending'}."


def cmd_done(state: AppState, args: list[str]) -> str:
    return _set_completed(state, args, True)


def cmd_undo(state: AppState, args: list[str]) -> str:
    return _set_completed(state, args, False)


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> title=New title description=... category=work deadline=2030-01-01"""
    if len(args) < 2:
        return "Usage: /edit <id> field=value ... (fields: title, description, category, deadline)"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task with id {args[0]}."

    changes: dict[str, Any] = {}
    try:
        for chunk in _EDIT_SPLIT_RE.split(" ".join(args[1:])):
            name, sep, value = chunk.partition("=")
            name = name.strip().lower()
            if not sep or name not in ("title", "description", "category", "deadline"):
                return f"Cannot edit {name or chunk!r}. Fields: title, description, category, deadline."
            changes[name] = parse_deadline(value) if name == "deadline" else value.strip()

        task_api.update_task(state, task.id, changes)
    except TaskValidationError as e:
        return f"Cannot edit task: {e}"
    return f"Task {task.id} updated ({', '.join(changes)})."


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <id>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task with id {args[0]}."
    task_api.delete_task(state, task.id)
    return f"Task {task.id} deleted."


async def cmd_sync(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit("[SYNC] Fetching tasks from server...")
    ok = await state.engine.sync_with_server()
    if not ok:
        return f"Sync failed: {state.engine.error}"
    return f"Synced: {len(state.engine.tasks)} tasks from server."


def cmd_stats(state: AppState, args: list[str]) -> str:
    stats = compute_stats(state.engine.tasks)
    lines = [
        "Stats:",
        f"  Total: {stats.total}  Completed: {stats.completed}  Pending: {stats.pending}",
        f"  Completion rate: {stats.completion_rate:.0f}%",
        f"  Overdue: {stats.overdue}  Due this week: {stats.upcoming_week}",
        f"  Completed in the last 7 days: {stats.completed_last_week}",
        f"  Productivity score: {stats.productivity_score}/100",
    ]
    for cat, cs in stats.by_category.items():
        lines.append(f"  {cat.value}: {cs.completed}/{cs.total} ({cs.completion_rate:.0f}%)")

    upcoming = upcoming_deadlines(state.engine.tasks)
    if upcoming:
        lines.append("  Upcoming deadlines:")
        lines.extend(f"    {_fmt_deadline(t.deadline)}  {t.title}" for t in upcoming)
    return "\n".join(lines)


def cmd_suggest(state: AppState, args: list[str]) -> str:
    suggestions = state.assistant.generate_suggestions(state.engine.tasks)
    if not suggestions:
        return "No suggestions right now."
    lines = ["Suggestions:"]
    for s in suggestions:
        lines.append(f"  - {s.title} [{s.category.value}]: {s.description} ({s.reason})")
    return "\n".join(lines)


def cmd_insights(state: AppState, args: list[str]) -> str:
    insights = state.assistant.generate_insights(state.engine.tasks)
    if not insights:
        return "No insights yet."
    lines = ["Insights:"]
    for i in insights:
        action = f" -> {i.action}" if i.action else ""
        lines.append(f"  [{i.type}] {i.title}: {i.description}{action}")
    return "\n".join(lines)


def cmd_breakdown(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /breakdown <id>"
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task with id {args[0]}."
    prediction = state.assistant.predict_completion(task, state.engine.tasks)
    lines = [f"Breakdown of {task.title!r} (completion likelihood {prediction.probability}%):"]
    for sub in state.assistant.break_down_task(task):
        lines.append(f"  {sub.order + 1}. {sub.title}")
    return "\n".join(lines)


def cmd_error(state: AppState, args: list[str]) -> str:
    return state.engine.error or "No errors."


def cmd_clear(state: AppState, args: list[str]) -> str:
    state.engine.clear_error()
    return "Error cleared."


async def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /login <email> <password>"
    result = await state.auth.login(args[0], args[1])
    if not result.success:
        return f"Login failed: {result.error}"
    user = state.auth.current_user
    return f"Welcome, {user.name if user else args[0]}!"


async def cmd_register(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) < 3:
        return "Usage: /register <email> <password> <name>"
    result = await state.auth.register(args[0], args[1], " ".join(args[2:]))
    if not result.success:
        return f"Registration failed: {result.error}"
    return f"Registered and logged in as {args[0]}."


def cmd_logout(state: AppState, args: list[str]) -> str:
    if not state.auth.is_authenticated:
        return "Not logged in."
    task_api.logout(state)
    return "Logged out. Local task cache cleared."


def cmd_whoami(state: AppState, args: list[str]) -> str:
    user = state.auth.current_user
    if user is None:
        return "Not logged in."
    return f"{user.avatar} {user.name} <{user.email}>"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show sync status (loading/error/remote/user).")
registry.register(
    "list",
    cmd_list,
    help_text="List tasks: /list [all|pending|completed] [work|personal|urgent] [search...].",
    aliases=["ls"],
)
registry.register(
    "add",
    cmd_add,
    help_text="Add a task: /add <title> [| description] [#category] [@YYYY-MM-DD].",
)
registry.register("done", cmd_done, help_text="Mark a task completed: /done <id>.")
registry.register("undo", cmd_undo, help_text="Mark a task pending again: /undo <id>.")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> field=value ...")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["delete"])
registry.register("sync", cmd_sync, help_text="Replace local tasks with the server's list.")
registry.register("stats", cmd_stats, help_text="Show task statistics.")
registry.register("suggest", cmd_suggest, help_text="Show task suggestions.")
registry.register("insights", cmd_insights, help_text="Show productivity insights.")
registry.register("breakdown", cmd_breakdown, help_text="Split a task into steps: /breakdown <id>.")
registry.register("error", cmd_error, help_text="Show the last sync error.")
registry.register("clear", cmd_clear, help_text="Clear the last sync error.")
registry.register("login", cmd_login, help_text="Log in: /login <email> <password>.")
registry.register("register", cmd_register, help_text="Create an account: /register <email> <password> <name>.")
registry.register("logout", cmd_logout, help_text="Log out and clear the local task cache.")
registry.register("whoami", cmd_whoami, help_text="Show the logged-in user.")
