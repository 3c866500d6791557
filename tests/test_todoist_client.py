import json

import httpx
import pytest

from notion_todoist_bridge.todoist import client as todoist_client
from notion_todoist_bridge.todoist.client import (
    DEFAULT_RETRY_AFTER,
    TodoistClient,
    TodoistNotFoundError,
    parse_retry_after,
)

PAGE_ID = "abcd1234-abcd-1234-abcd-1234abcd1234"


def _task(task_id: str, description: str = "") -> dict:
    return {
        "id": task_id,
        "content": f"Task {task_id}",
        "description": description,
        "project_id": "p1",
        "labels": ["notion"],
        "priority": 2,
        "is_completed": False,
    }


def _client(handler) -> TodoistClient:
    return TodoistClient("token", transport=httpx.MockTransport(handler))


async def test_find_task_by_notion_page():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=[
            _task("1", "unrelated"),
            _task("2", "Body\n\n🔗 View in Notion: https://notion.so/abcd1234abcd1234abcd1234abcd1234"),
        ])

    client = _client(handler)
    task = await client.find_task_by_notion_page(PAGE_ID, "p1")
    await client.close()

    assert task is not None
    assert task.id == "2"
    assert seen["params"] == {"project_id": "p1"}


async def test_find_task_returns_none():
    client = _client(lambda request: httpx.Response(200, json=[_task("1", "nothing")]))
    assert await client.find_task_by_notion_page(PAGE_ID) is None
    await client.close()


async def test_create_task_posts_body():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        assert request.headers["Authorization"] == "Bearer token"
        return httpx.Response(200, json=_task("42"))

    client = _client(handler)
    created = await client.create_task({"content": "Hello", "priority": 3})
    await client.close()

    assert created.id == "42"
    assert bodies == [{"content": "Hello", "priority": 3}]


async def test_update_task_uses_post():
    methods = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append((request.method, request.url.path))
        return httpx.Response(200, json=_task("7"))

    client = _client(handler)
    await client.update_task("7", {"content": "new"})
    await client.close()

    assert methods == [("POST", "/rest/v2/tasks/7")]


async def test_close_task():
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(204)

    client = _client(handler)
    await client.close_task("7")
    await client.close()

    assert paths == ["/rest/v2/tasks/7/close"]


async def test_delete_missing_task_raises_not_found():
    client = _client(lambda request: httpx.Response(404))
    with pytest.raises(TodoistNotFoundError):
        await client.delete_task("7")
    await client.close()


async def test_rate_limited_request_is_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(429, headers={"Retry-After": "0"})
        return httpx.Response(200, json=[])

    client = _client(handler)
    assert await client.get_tasks() == []
    await client.close()

    assert len(calls) == 2


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("3", 3.0),
        ("1.5", 1.5),
        (None, DEFAULT_RETRY_AFTER),
        ("", DEFAULT_RETRY_AFTER),
        ("Wed, 21 Oct 2015 07:28:00 GMT", DEFAULT_RETRY_AFTER),
        ("-4", DEFAULT_RETRY_AFTER),
        ("nan", DEFAULT_RETRY_AFTER),
    ],
)
def test_parse_retry_after(header, expected):
    assert parse_retry_after(header) == expected


async def test_rate_limit_with_http_date_header(monkeypatch):
    waits = []

    async def fake_sleep(seconds):
        waits.append(seconds)

    monkeypatch.setattr(todoist_client.asyncio, "sleep", fake_sleep)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        return httpx.Response(200, json=[])

    client = _client(handler)
    assert await client.get_tasks() == []
    await client.close()

    assert waits == [DEFAULT_RETRY_AFTER]
    assert len(calls) == 2
