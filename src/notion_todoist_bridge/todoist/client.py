import asyncio
import logging
import math
from dataclasses import dataclass, field

import httpx

from notion_todoist_bridge.utils.notion_ids import text_references_page

logger = logging.getLogger(__name__)

TODOIST_API_BASE = "https://api.todoist.com/rest/v2"
DEFAULT_RETRY_AFTER = 5.0


def parse_retry_after(value: str | None) -> float:
    """Seconds from a Retry-After header. HTTP dates and junk give the default."""
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER
    if not math.isfinite(seconds) or seconds < 0:
        return DEFAULT_RETRY_AFTER
    return seconds


class TodoistNotFoundError(Exception):
    """Raised when a Todoist task is not found (404)."""


@dataclass
class TodoistTask:
    id: str
    content: str
    description: str = ""
    project_id: str | None = None
    labels: list[str] = field(default_factory=list)
    priority: int = 1
    is_completed: bool = False
    url: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "TodoistTask":
        return cls(
            id=str(data["id"]),
            content=data.get("content", ""),
            description=data.get("description") or "",
            project_id=data.get("project_id"),
            labels=list(data.get("labels") or []),
            priority=data.get("priority", 1),
            is_completed=data.get("is_completed", False),
            url=data.get("url"),
        )


class TodoistClient:
    def __init__(self, api_token: str, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(
            base_url=TODOIST_API_BASE,
            headers={
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Make a request with rate-limit handling."""
        resp = await self._client.request(method, url, **kwargs)

        if resp.status_code == 429:
            retry_after = parse_retry_after(resp.headers.get("Retry-After"))
            logger.warning("Todoist rate limited, retrying after %.1f seconds", retry_after)
            await asyncio.sleep(retry_after)
            resp = await self._client.request(method, url, **kwargs)

        return resp

    def _check(self, resp: httpx.Response, task_id: str | None = None) -> None:
        if resp.status_code == 404:
            raise TodoistNotFoundError(f"Task not found: {task_id}")
        resp.raise_for_status()

    async def get_tasks(self, project_id: str | None = None) -> list[TodoistTask]:
        """List active tasks, optionally restricted to one project."""
        params = {"project_id": project_id} if project_id else None
        resp = await self._request("GET", "/tasks", params=params)
        resp.raise_for_status()
        return [TodoistTask.from_api(item) for item in resp.json()]

    async def find_task_by_notion_page(
        self, page_id: str, project_id: str | None = None
    ) -> TodoistTask | None:
        """Find the active task whose description links back to ``page_id``."""
        for task in await self.get_tasks(project_id):
            if text_references_page(task.description, page_id):
                return task
        return None

    async def create_task(self, task: dict) -> TodoistTask:
        resp = await self._request("POST", "/tasks", json=task)
        resp.raise_for_status()
        created = TodoistTask.from_api(resp.json())
        logger.debug("Created Todoist task %s", created.id)
        return created

    async def update_task(self, task_id: str, updates: dict) -> TodoistTask:
        resp = await self._request("POST", f"/tasks/{task_id}", json=updates)
        self._check(resp, task_id)
        return TodoistTask.from_api(resp.json())

    async def close_task(self, task_id: str) -> None:
        """Mark a task as completed."""
        resp = await self._request("POST", f"/tasks/{task_id}/close")
        self._check(resp, task_id)

    async def delete_task(self, task_id: str) -> None:
        resp = await self._request("DELETE", f"/tasks/{task_id}")
        self._check(resp, task_id)
