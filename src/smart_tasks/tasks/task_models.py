# src/smart_tasks/tasks/task_models.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Final, Iterable

logger = logging.getLogger(__name__)

TaskId = int | str


class Category(StrEnum):
    WORK = "work"
    PERSONAL = "personal"
    URGENT = "urgent"

    @classmethod
    def parse(cls, raw: Any) -> Category:
        """Strict variant for user input: unknown values raise ValueError."""
        if isinstance(raw, Category):
            return raw
        value = str(raw or "").strip().lower()
        try:
            return cls(value)
        except ValueError:
            choices = ", ".join(c.value for c in cls)
            raise ValueError(f"unknown category {value!r} (choose {choices})") from None

    @classmethod
    def from_raw(cls, raw: Any) -> Category:
        """Lenient variant for stored/remote JSON: unknown values become PERSONAL."""
        if isinstance(raw, Category):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except Exception:
            return cls.PERSONAL


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(raw: Any) -> datetime | None:
    """ISO-8601 string (with or without 'Z') or epoch millis -> aware UTC datetime."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return datetime.fromtimestamp(float(raw) / 1000.0, tz=timezone.utc)
    else:
        try:
            dt = datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _decode_completed(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw is not None:
        logger.warning("Non-boolean completed flag %r decoded as False", raw)
    return False


_KNOWN_KEYS: Final = frozenset(
    {"id", "title", "description", "category", "completed", "deadline", "createdAt", "completedAt"}
)


@dataclass(slots=True)
class Task:
    id: TaskId
    title: str
    description: str = ""
    category: Category = Category.PERSONAL
    completed: bool = False
    deadline: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None

    # Unknown JSON keys (e.g. added by a remote) survive a load/save cycle.
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out.update(
            {
                "id": self.id,
                "title": self.title,
                "description": self.description,
                "category": self.category.value,
                "completed": self.completed,
                "deadline": format_timestamp(self.deadline),
                "createdAt": format_timestamp(self.created_at),
                "completedAt": format_timestamp(self.completed_at),
            }
        )
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """
        Lenient decoder for stored/remote JSON.

        Raises ValueError only when the entry has no usable id or title.
        """
        raw_id = data.get("id")
        if raw_id is None or isinstance(raw_id, bool) or raw_id == "":
            raise ValueError("task has no id")
        if isinstance(raw_id, float) and raw_id.is_integer():
            raw_id = int(raw_id)
        if not isinstance(raw_id, (int, float, str)):
            raise ValueError(f"unsupported task id type: {type(raw_id).__name__}")

        title = str(data.get("title") or "").strip()
        if not title:
            raise ValueError(f"task {raw_id!r} has no title")

        return cls(
            id=raw_id,
            title=title,
            description=str(data.get("description") or ""),
            category=Category.from_raw(data.get("category")),
            completed=_decode_completed(data.get("completed")),
            deadline=parse_timestamp(data.get("deadline")),
            created_at=parse_timestamp(data.get("createdAt")) or utc_now(),
            completed_at=parse_timestamp(data.get("completedAt")),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )


def tasks_to_json(tasks: Iterable[Task]) -> list[dict[str, Any]]:
    return [t.to_dict() for t in tasks]


def tasks_from_json(raw: Any) -> list[Task]:
    """Decode a JSON array of tasks, skipping (and logging) unusable entries."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning("Expected a JSON array of tasks, got %s; ignoring.", type(raw).__name__)
        return []

    out: list[Task] = []
    seen: set[TaskId] = set()
    for item in raw:
        if not isinstance(item, dict):
            logger.warning("Skipping non-object task entry: %r", item)
            continue
        try:
            task = Task.from_dict(item)
        except ValueError as e:
            logger.warning("Skipping invalid task entry: %s", e)
            continue
        if task.id in seen:
            logger.warning("Skipping duplicate task id=%s", task.id)
            continue
        seen.add(task.id)
        out.append(task)
    return out


class _Unset:
    """Marker for "field not part of this patch"."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()

# Python attribute -> JSON key, for the mutable fields only.
PATCH_FIELDS: Final[dict[str, str]] = {
    "title": "title",
    "description": "description",
    "category": "category",
    "completed": "completed",
    "deadline": "deadline",
    "completed_at": "completedAt",
}


@dataclass(slots=True, frozen=True)
class TaskPatch:
    """
    Sparse replacement of a task's mutable fields.

    `id` and `created_at` are deliberately not patchable.
    """

    title: str | _Unset = UNSET
    description: str | _Unset = UNSET
    category: Category | _Unset = UNSET
    completed: bool | _Unset = UNSET
    deadline: datetime | None | _Unset = UNSET
    completed_at: datetime | None | _Unset = UNSET

    def changed_fields(self) -> list[str]:
        return [name for name in PATCH_FIELDS if getattr(self, name) is not UNSET]

    def is_empty(self) -> bool:
        return not self.changed_fields()

    def with_changes(self, **changes: Any) -> TaskPatch:
        return replace(self, **changes)

    def apply(self, task: Task) -> Task:
        changes = {name: getattr(self, name) for name in self.changed_fields()}
        if "title" in changes:
            title = str(changes["title"]).strip()
            if not title:
                raise ValueError("title must not be empty")
            changes["title"] = title
        return replace(task, **changes)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name in self.changed_fields():
            value = getattr(self, name)
            if isinstance(value, datetime) or (value is None and name in ("deadline", "completed_at")):
                value = format_timestamp(value)
            elif isinstance(value, Category):
                value = value.value
            out[PATCH_FIELDS[name]] = value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskPatch:
        """
        Build a patch from JSON keys (or attribute names).

        Unknown keys, unknown categories and non-boolean `completed` raise ValueError.
        """
        by_key = {v: k for k, v in PATCH_FIELDS.items()}
        changes: dict[str, Any] = {}
        for key, value in data.items():
            name = by_key.get(key) or (key if key in PATCH_FIELDS else None)
            if name is None:
                raise ValueError(f"not a patchable task field: {key}")
            if name == "category":
                value = Category.parse(value)
            elif name == "completed":
                if not isinstance(value, bool):
                    raise ValueError(f"completed must be true or false, got {value!r}")
            elif name in ("deadline", "completed_at"):
                value = parse_timestamp(value)
            elif name in ("title", "description"):
                value = "" if value is None else str(value)
            changes[name] = value
        return cls(**changes)
