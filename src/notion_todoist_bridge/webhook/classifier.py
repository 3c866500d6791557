"""Map Notion event types onto sync actions."""

from dataclasses import dataclass
from enum import Enum

from notion_todoist_bridge.webhook.models import EntityKind, WebhookEvent


class EventAction(Enum):
    IGNORE = "ignore"
    CREATE = "create"
    UPDATE = "update"
    SKIP_PAGE_DELETED = "skip-page-deleted"


@dataclass(frozen=True)
class Classification:
    action: EventAction
    reason: str | None = None

    @property
    def actionable(self) -> bool:
        return self.action in (EventAction.CREATE, EventAction.UPDATE)


CREATE_EVENTS = frozenset({"page.created"})

UPDATE_EVENTS = frozenset({
    "page.updated",
    "page.content_updated",
    "page.property_updated",
    "page.properties_updated",
})

DELETE_EVENTS = frozenset({"page.deleted"})


def classify(event_type: str | None) -> Classification:
    """Classify an event type. Total: unknown, empty or missing types are ignored."""
    if event_type in DELETE_EVENTS:
        return Classification(EventAction.SKIP_PAGE_DELETED, "page deleted")
    if event_type in UPDATE_EVENTS:
        return Classification(EventAction.UPDATE)
    if event_type in CREATE_EVENTS:
        return Classification(EventAction.CREATE)
    return Classification(EventAction.IGNORE, "not relevant")


def classify_event(event: WebhookEvent) -> Classification:
    """Classify a decoded event; only pages are eligible for syncing."""
    if event.entity_kind is not EntityKind.PAGE:
        return Classification(EventAction.IGNORE, "not a page")
    return classify(event.event_type)
