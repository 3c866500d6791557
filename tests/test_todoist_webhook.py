import base64
import hashlib
import hmac
import json

from conftest import FakeStatusNotion

from notion_todoist_bridge.sync.status import StatusCategory
from notion_todoist_bridge.webhook.models import decode_todoist_payload
from notion_todoist_bridge.webhook.todoist_handler import TodoistWebhookService, should_process_todoist_event

PAGE_ID = "abcd1234-abcd-1234-abcd-1234abcd1234"
DESCRIPTION = "Body\n\n🔗 View in Notion: https://www.notion.so/abcd1234abcd1234abcd1234abcd1234"


def _payload(event_name: str = "item:completed", description: str | None = DESCRIPTION) -> dict:
    return {
        "event_name": event_name,
        "user_id": "2671355",
        "event_data": {
            "id": "task-9",
            "content": "Write report",
            "description": description,
            "project_id": "p1",
        },
        "triggered_at": "2025-03-01T10:00:00.000000Z",
        "version": "9",
    }


def _post(client, payload, headers=None):
    return client.post(
        "/api/todoist-webhook",
        content=json.dumps(payload),
        headers={"Content-Type": "application/json", **(headers or {})},
    )


class TestShouldProcess:
    def test_completion_with_reference(self):
        assert should_process_todoist_event(decode_todoist_payload(_payload()))

    def test_uncompletion_with_reference(self):
        assert should_process_todoist_event(decode_todoist_payload(_payload("item:uncompleted")))

    def test_other_events(self):
        assert not should_process_todoist_event(decode_todoist_payload(_payload("item:added")))

    def test_no_notion_reference(self):
        assert not should_process_todoist_event(decode_todoist_payload(_payload(description="plain")))

    def test_null_description(self):
        assert not should_process_todoist_event(decode_todoist_payload(_payload(description=None)))


def test_completion_sets_completed_status(app_factory):
    notion = FakeStatusNotion()
    with app_factory(status_notion=notion) as (client, repo):
        resp = _post(client, _payload())

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["notionPageId"] == PAGE_ID
        assert body["data"]["status"] == "Completado"
        assert "timestamp" in body["meta"]
        assert notion.updates == [(PAGE_ID, "Completado", StatusCategory.COMPLETED)]


def test_uncompletion_sets_in_progress(app_factory):
    notion = FakeStatusNotion()
    with app_factory(status_notion=notion) as (client, repo):
        resp = _post(client, _payload("item:uncompleted"))

        assert resp.json()["data"]["message"] == "Task uncompletion synced to Notion successfully"
        assert notion.updates == [(PAGE_ID, "En progreso", StatusCategory.IN_PROGRESS)]


def test_irrelevant_event_skipped(app_factory):
    notion = FakeStatusNotion()
    with app_factory(status_notion=notion) as (client, repo):
        resp = _post(client, _payload("item:updated"))

        assert resp.status_code == 200
        assert resp.json()["data"]["message"] == "Event skipped - not relevant for Notion sync"
        assert notion.updates == []


def test_reference_without_page_id(app_factory):
    notion = FakeStatusNotion()
    with app_factory(status_notion=notion) as (client, repo):
        resp = _post(client, _payload(description="see https://www.notion.so/workspace-home"))

        assert resp.status_code == 200
        assert resp.json()["data"]["message"] == (
            "Task completion received but no Notion page ID found in description"
        )
        assert notion.updates == []


def test_invalid_payload(app_factory):
    with app_factory() as (client, repo):
        resp = _post(client, {"event_name": "item:completed"})

        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid Todoist webhook payload structure"


def test_signature_checked_when_secret_set(app_factory):
    with app_factory(todoist_secret="shh") as (client, repo):
        bad = _post(client, _payload(), {"X-Todoist-Hmac-SHA256": "bm9wZQ=="})
        assert bad.status_code == 401

        body = json.dumps(_payload()).encode()
        signature = base64.b64encode(hmac.new(b"shh", body, hashlib.sha256).digest()).decode()
        good = client.post(
            "/api/todoist-webhook",
            content=body,
            headers={"Content-Type": "application/json", "X-Todoist-Hmac-SHA256": signature},
        )
        assert good.status_code == 200


def test_notion_failure_is_sync_failed(app_factory):
    notion = FakeStatusNotion(fail=RuntimeError("page archived"))
    with app_factory(status_notion=notion) as (client, repo):
        resp = _post(client, _payload())

        assert resp.status_code == 500
        assert resp.json() == {
            "error": "Failed to sync task completion to Notion: page archived",
            "code": "SYNC_FAILED",
        }


def test_status_endpoint(app_factory):
    with app_factory() as (client, repo):
        body = client.get("/api/todoist-webhook").json()
        assert body["status"] == "healthy"
        assert body["endpoint"] == "todoist-webhook"


async def test_unsupported_event_never_reaches_status_lookup():
    notion = FakeStatusNotion()
    service = TodoistWebhookService(notion)
    body = json.dumps(_payload("item:deleted")).encode()

    result = await service.process_webhook(body)

    assert result["message"] == "Event skipped - not relevant for Notion sync"
    assert notion.updates == []
