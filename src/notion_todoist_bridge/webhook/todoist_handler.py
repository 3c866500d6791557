"""Webhook endpoint for Todoist completion events, pushed back to Notion."""

import json
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Header, Request

from notion_todoist_bridge.db.repository import Repository
from notion_todoist_bridge.errors import SyncFailedError, UnauthorizedError, ValidationError
from notion_todoist_bridge.notion.client import NotionClient
from notion_todoist_bridge.sync.status import StatusCategory
from notion_todoist_bridge.utils.notion_ids import extract_notion_page_id, has_notion_reference
from notion_todoist_bridge.webhook.models import TodoistWebhookPayload, decode_todoist_payload
from notion_todoist_bridge.webhook.signatures import verify_todoist_signature

logger = logging.getLogger(__name__)

router = APIRouter()

COMPLETED_EVENT = "item:completed"
UNCOMPLETED_EVENT = "item:uncompleted"


def should_process_todoist_event(payload: TodoistWebhookPayload) -> bool:
    """Only (un)completions of tasks that link back to a Notion page are relevant."""
    if payload.event_name not in (COMPLETED_EVENT, UNCOMPLETED_EVENT):
        return False
    description = payload.event_data.description or ""
    return bool(payload.event_data.id) and has_notion_reference(description)


class TodoistWebhookService:
    def __init__(
        self,
        notion_client: NotionClient,
        *,
        webhook_secret: str | None = None,
        completed_status: str = "Completado",
        in_progress_status: str = "En progreso",
    ) -> None:
        self._notion = notion_client
        self._secret = webhook_secret
        self._targets = {
            COMPLETED_EVENT: (completed_status, StatusCategory.COMPLETED),
            UNCOMPLETED_EVENT: (in_progress_status, StatusCategory.IN_PROGRESS),
        }

    async def process_webhook(self, body: bytes, signature: str | None = None) -> dict:
        try:
            raw = json.loads(body)
        except ValueError as exc:
            raise ValidationError("Invalid JSON payload") from exc
        payload = decode_todoist_payload(raw)

        if self._secret and not verify_todoist_signature(body, signature, self._secret):
            raise UnauthorizedError("Invalid Todoist webhook signature")

        task_id = payload.event_data.id
        if not should_process_todoist_event(payload):
            logger.info(
                "Todoist event %s for task %s skipped: not a completion with a Notion reference",
                payload.event_name, task_id,
            )
            return {
                "message": "Event skipped - not relevant for Notion sync",
                "taskId": task_id,
                "eventType": payload.event_name,
            }

        requested, category = self._targets[payload.event_name]
        verb = "completion" if payload.event_name == COMPLETED_EVENT else "uncompletion"

        description = payload.event_data.description or ""
        notion_page_id = extract_notion_page_id(description)
        if not notion_page_id:
            logger.warning(
                "No Notion page id in description of task %s: %.100s", task_id, description
            )
            return {
                "message": f"Task {verb} received but no Notion page ID found in description",
                "taskId": task_id,
                "eventType": payload.event_name,
            }

        try:
            status = await self._notion.update_page_status(notion_page_id, requested, category)
        except Exception as exc:
            logger.exception(
                "Error syncing task %s %s to Notion page %s", task_id, verb, notion_page_id
            )
            raise SyncFailedError(f"Failed to sync task {verb} to Notion: {exc}") from exc

        logger.info(
            "Task %s %s synced to page %s (status '%s')", task_id, verb, notion_page_id, status
        )
        return {
            "message": f"Task {verb} synced to Notion successfully",
            "taskId": task_id,
            "notionPageId": notion_page_id,
            "eventType": payload.event_name,
            "status": status,
        }


# These will be injected at app startup
_repo: Repository | None = None
_service: TodoistWebhookService | None = None


def configure(repo: Repository, service: TodoistWebhookService) -> None:
    global _repo, _service
    _repo = repo
    _service = service


@router.post("/api/todoist-webhook")
async def handle_webhook(
    request: Request,
    user_agent: str | None = Header(None),
    x_todoist_hmac_sha256: str | None = Header(None),
    x_todoist_delivery_id: str | None = Header(None),
):
    body = await request.body()
    started = time.monotonic()
    logger.info("Todoist webhook received (delivery %s)", x_todoist_delivery_id)
    request_id = await _repo.record_request(
        endpoint="todoist",
        body=body,
        user_agent=user_agent,
        has_signature=bool(x_todoist_hmac_sha256),
    )

    try:
        result = await _service.process_webhook(body, x_todoist_hmac_sha256)
    except Exception as exc:
        await _repo.finish_request(
            request_id,
            success=False,
            duration_ms=int((time.monotonic() - started) * 1000),
            error=str(exc),
        )
        raise

    await _repo.finish_request(
        request_id,
        success=True,
        duration_ms=int((time.monotonic() - started) * 1000),
        entity_id=result.get("notionPageId") or result.get("taskId"),
        was_processed="notionPageId" in result,
        skip_reason=None if "notionPageId" in result else result["message"],
    )
    return {
        "success": True,
        "data": result,
        "meta": {"timestamp": datetime.now(timezone.utc).isoformat()},
    }


@router.get("/api/todoist-webhook")
async def webhook_status():
    return {
        "status": "healthy",
        "endpoint": "todoist-webhook",
        "message": "Todoist-Notion webhook API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
