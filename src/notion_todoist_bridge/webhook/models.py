"""Webhook payload models and their decoding into domain events."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from notion_todoist_bridge.errors import ValidationError


class NotionEntity(BaseModel):
    id: str | None = None
    type: str | None = None  # "page", "database", "comment", ...


class NotionLegacyPage(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None


class NotionWebhookPayload(BaseModel):
    """Top-level Notion webhook payload.

    Notion may send:
    - A verification request (with verification_token)
    - An event envelope (entity + type)
    - The older shape carrying the whole page object under ``page``
    """

    model_config = ConfigDict(extra="allow")

    verification_token: str | None = None
    id: str | None = None  # unique event ID
    timestamp: str | None = None
    workspace_id: str | None = None
    workspace_name: str | None = None
    type: str | None = None  # e.g. "page.created", "page.content_updated"
    entity: NotionEntity | None = None
    data: dict | None = None
    page: NotionLegacyPage | None = None


class EntityKind(Enum):
    PAGE = "page"
    DATABASE = "database"
    UNKNOWN = "unknown"

    @classmethod
    def from_type(cls, value: str | None) -> "EntityKind":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class VerificationRequest:
    token: str


@dataclass(frozen=True)
class WebhookEvent:
    """One inbound Notion notification about a single entity."""

    entity_id: str
    entity_kind: EntityKind
    event_type: str | None
    workspace_name: str | None = None
    raw_payload: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


def decode_notion_payload(raw: dict) -> VerificationRequest | WebhookEvent:
    """Decode a Notion webhook body once, at the boundary.

    Raises ValidationError when the body is neither a handshake nor carries
    an entity id.
    """
    try:
        payload = NotionWebhookPayload.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid Notion payload: {exc.error_count()} error(s)") from exc

    if payload.verification_token:
        return VerificationRequest(token=payload.verification_token)

    if payload.entity and payload.entity.id:
        entity_id = payload.entity.id
        kind = EntityKind.from_type(payload.entity.type)
    elif payload.page and payload.page.id:
        entity_id = payload.page.id
        kind = EntityKind.PAGE
    else:
        raise ValidationError("Invalid payload: missing page ID")

    return WebhookEvent(
        entity_id=entity_id,
        entity_kind=kind,
        event_type=payload.type,
        workspace_name=payload.workspace_name,
        raw_payload=raw,
    )


class TodoistEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    content: str | None = ""
    description: str | None = ""
    project_id: str | None = None
    completed_at: str | None = None


class TodoistWebhookPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    event_name: str  # item:completed, item:uncompleted, item:added, ...
    user_id: str
    event_data: TodoistEventData
    triggered_at: str
    version: str | None = None


def decode_todoist_payload(raw: Any) -> TodoistWebhookPayload:
    if not isinstance(raw, dict):
        raise ValidationError("Invalid Todoist webhook payload structure")
    try:
        return TodoistWebhookPayload.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError("Invalid Todoist webhook payload structure") from exc
