# src/smart_tasks/remote/http_source.py

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..core.errors import RemoteTaskError
from ..tasks.task_models import Task, TaskId, tasks_from_json

logger = logging.getLogger(__name__)


def _make_timeout(total_s: float) -> httpx.Timeout:
    """
    Connect gets a shorter budget than read so an unreachable host fails fast.
    Every phase is bounded: the engine relies on calls failing instead of hanging.
    """
    connect_s = min(5.0, total_s)
    return httpx.Timeout(connect=connect_s, read=total_s, write=total_s, pool=connect_s)


def _item_path(task_id: TaskId) -> str:
    # Ids may come from the remote; a "/" or "?" in one must not change the resource.
    return "/tasks/" + quote(str(task_id), safe="")


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


class HttpTaskSource:
    """
    REST task source:

      GET    <base_url>/tasks          -> list
      POST   <base_url>/tasks          -> create
      PUT    <base_url>/tasks/<id>     -> update
      DELETE <base_url>/tasks/<id>     -> delete

    Bodies are Task JSON objects (see Task.to_dict). Any transport error,
    timeout or non-2xx status is raised as RemoteTaskError.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("base_url is required")

        self._base_url = base_url.strip().rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=_make_timeout(float(timeout_seconds)),
            headers={"Accept": "application/json", **(headers or {})},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, *, json_body: Any = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, json=json_body)
        except httpx.TimeoutException as e:
            raise RemoteTaskError(f"{method} {path} timed out") from e
        except httpx.HTTPError as e:
            raise RemoteTaskError(f"{method} {path} failed: {e.__class__.__name__}") from e

        if not _is_success(response):
            raise RemoteTaskError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteTaskError(f"{method} {path} returned invalid JSON") from e

    def _decode_task(self, data: Any, *, fallback: Task) -> Task:
        """Servers may echo only part of the task; keep our fields where the echo is unusable."""
        if not isinstance(data, dict):
            return fallback
        merged = {**fallback.to_dict(), **data}
        try:
            return Task.from_dict(merged)
        except ValueError:
            logger.warning("Remote returned an unusable task body for id=%s", fallback.id)
            return fallback

    async def list(self) -> list[Task]:
        data = await self._request("GET", "/tasks")
        if not isinstance(data, list):
            raise RemoteTaskError("GET /tasks did not return a JSON array")
        tasks = tasks_from_json(data)
        logger.debug("Remote list returned %d tasks", len(tasks))
        return tasks

    async def create(self, task: Task) -> Task:
        data = await self._request("POST", "/tasks", json_body=task.to_dict())
        return self._decode_task(data, fallback=task)

    async def update(self, task_id: TaskId, task: Task) -> Task:
        data = await self._request("PUT", _item_path(task_id), json_body=task.to_dict())
        return self._decode_task(data, fallback=task)

    async def delete(self, task_id: TaskId) -> dict[str, Any]:
        await self._request("DELETE", _item_path(task_id))
        return {"success": True}
