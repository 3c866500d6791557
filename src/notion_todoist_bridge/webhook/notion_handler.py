"""Webhook endpoint for receiving Notion events."""

import json
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Header, Request

from notion_todoist_bridge.config import Settings
from notion_todoist_bridge.db.repository import Repository
from notion_todoist_bridge.errors import UnauthorizedError, ValidationError
from notion_todoist_bridge.sync.debounce import DebounceCoordinator
from notion_todoist_bridge.sync.orchestrator import SyncOrchestrator, SyncResult
from notion_todoist_bridge.webhook.classifier import EventAction, classify, classify_event
from notion_todoist_bridge.webhook.models import (
    VerificationRequest,
    WebhookEvent,
    decode_notion_payload,
)
from notion_todoist_bridge.webhook.signatures import is_notion_request, verify_notion_signature

logger = logging.getLogger(__name__)

router = APIRouter()


class NotionWebhookService:
    """Validate, classify and debounce Notion page events."""

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        *,
        window_seconds: float,
        webhook_secret: str | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._secret = webhook_secret
        self.coordinator = DebounceCoordinator(self._run, window_seconds=window_seconds)

    async def _run(self, event: WebhookEvent) -> SyncResult:
        # Classified at fire time: the latest event of a burst decides the action
        action = classify(event.event_type).action
        return await self._orchestrator.sync(event.entity_id, event.workspace_name, action)

    def validate_request(
        self,
        body: bytes,
        user_agent: str | None,
        signature: str | None,
    ) -> None:
        if not is_notion_request(user_agent, bool(signature)):
            raise ValidationError("Invalid webhook - not from Notion")
        if self._secret and signature and not verify_notion_signature(body, signature, self._secret):
            raise UnauthorizedError("Invalid signature")

    async def process_webhook(
        self,
        body: bytes,
        user_agent: str | None = None,
        signature: str | None = None,
    ) -> dict:
        self.validate_request(body, user_agent, signature)

        try:
            raw = json.loads(body)
        except ValueError as exc:
            raise ValidationError("Invalid JSON payload") from exc
        if not isinstance(raw, dict):
            raise ValidationError("Invalid JSON payload")

        decoded = decode_notion_payload(raw)
        if isinstance(decoded, VerificationRequest):
            logger.info("Received webhook verification challenge")
            return {"verification_token": decoded.token}

        event = decoded
        classification = classify_event(event)

        if classification.action == EventAction.SKIP_PAGE_DELETED:
            logger.info("Page %s deleted, ignoring event", event.entity_id)
            return {
                "message": "Event ignored - page deleted",
                "pageId": event.entity_id,
                "eventType": event.event_type,
                "skipReason": classification.reason,
            }

        if not classification.actionable:
            logger.info(
                "Ignoring event %s for %s: %s",
                event.event_type, event.entity_id, classification.reason,
            )
            return {
                "message": f"Event ignored - {classification.reason}",
                "pageId": event.entity_id,
                "eventType": event.event_type,
                "skipReason": classification.reason,
            }

        decision = await self.coordinator.handle_event(event)

        if decision.scheduled:
            return {
                "message": "Event scheduled for processing (latest event will be processed)",
                "pageId": event.entity_id,
                "eventAction": classification.action.value,
                "debounceTimeMs": int(decision.delay_seconds * 1000),
            }

        result: SyncResult = decision.result
        return {
            "message": "Event processed successfully",
            "pageId": event.entity_id,
            "eventAction": classification.action.value,
            "outcome": result.outcome,
            "todoistTaskId": result.todoist_task_id,
        }


# These will be injected at app startup
_settings: Settings | None = None
_repo: Repository | None = None
_service: NotionWebhookService | None = None
_started_at = time.monotonic()


def configure(
    settings: Settings,
    repo: Repository,
    service: NotionWebhookService,
) -> None:
    global _settings, _repo, _service, _started_at
    _settings = settings
    _repo = repo
    _service = service
    _started_at = time.monotonic()


@router.post("/api/notion-webhook")
async def handle_webhook(
    request: Request,
    user_agent: str | None = Header(None),
    x_notion_signature: str | None = Header(None),
):
    """Handle incoming Notion webhook events."""
    body = await request.body()
    started = time.monotonic()
    request_id = await _repo.record_request(
        endpoint="notion",
        body=body,
        user_agent=user_agent,
        has_signature=bool(x_notion_signature),
    )

    try:
        result = await _service.process_webhook(body, user_agent, x_notion_signature)
    except Exception as exc:
        await _repo.finish_request(
            request_id,
            success=False,
            duration_ms=_elapsed_ms(started),
            error=str(exc),
        )
        raise

    await _repo.finish_request(
        request_id,
        success=True,
        duration_ms=_elapsed_ms(started),
        entity_id=result.get("pageId"),
        was_processed=result.get("message", "").startswith("Event processed"),
        skip_reason=result.get("skipReason"),
    )
    return result


@router.get("/api/notion-webhook")
async def webhook_status():
    """Health and debounce state, for diagnostics."""
    return {
        "status": "healthy",
        "message": "Notion-Todoist webhook API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": int((time.monotonic() - _started_at) * 1000),
        "configuration": {
            "notionUserIdConfigured": bool(_settings and _settings.notion_user_id),
            "todoistProjectIdConfigured": bool(_settings and _settings.todoist_project_id),
            "aiEnhancementEnabled": bool(_settings and _settings.enrichment_enabled),
            "webhookSecretConfigured": bool(_settings and _settings.notion_webhook_secret),
            "debounceTimeMs": int(_service.coordinator.window_seconds * 1000),
        },
        "stats": _service.coordinator.stats(),
    }


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
