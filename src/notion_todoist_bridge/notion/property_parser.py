"""Parse Notion property values into plain Python types."""

import logging
from dataclasses import dataclass, field

from notion_todoist_bridge.notion.block_parser import rich_text_mentions_user, rich_text_to_plain

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New task from Notion"

STATUS_PROPERTY_NAMES = ("status", "estado")

_PRIORITY_KEYWORDS = (
    (("high", "alta"), 4),
    (("medium", "media"), 3),
    (("low", "baja"), 2),
)


@dataclass
class PageContent:
    """The parts of a Notion page that become a Todoist task."""

    title: str
    content: str
    url: str
    priority: int = 1
    due_date: str | None = None
    assignee: str | None = None
    tags: list[str] = field(default_factory=list)


def parse_property_value(prop: dict) -> str | list[str] | None:
    """Parse a single Notion property into a Python value.

    Returns:
        - str for title/rich_text/url/select/status/date fields
        - list[str] for multi_select and people fields
        - None if empty or unsupported type
    """
    prop_type = prop.get("type")

    if prop_type == "title":
        return rich_text_to_plain(prop.get("title", [])) or None

    if prop_type == "rich_text":
        return rich_text_to_plain(prop.get("rich_text", [])) or None

    if prop_type == "url":
        return prop.get("url")

    if prop_type in ("select", "status"):
        sel = prop.get(prop_type)
        return sel["name"] if sel else None

    if prop_type == "multi_select":
        return [item["name"] for item in prop.get("multi_select", [])]

    if prop_type == "people":
        return [person.get("name") or person["id"] for person in prop.get("people", [])]

    if prop_type == "date":
        date_obj = prop.get("date")
        if date_obj:
            return date_obj.get("start")
        return None

    logger.debug("Unsupported Notion property type: %s", prop_type)
    return None


def _priority_from_select(value: str) -> int | None:
    lowered = value.lower()
    for keywords, priority in _PRIORITY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return priority
    return None


def extract_page_content(page: dict, body: str) -> PageContent:
    """Build a PageContent from a retrieved page object and its rendered body."""
    properties = page.get("properties", {})
    title = DEFAULT_TITLE
    priority = 1
    due_date = None
    assignee = None
    tags: list[str] = []

    for name, prop in properties.items():
        prop_type = prop.get("type")
        value = parse_property_value(prop)
        if not value:
            continue

        if prop_type == "title":
            title = value
        elif prop_type == "select" and ("priority" in name.lower() or "prioridad" in name.lower()):
            priority = _priority_from_select(value) or priority
        elif prop_type == "date":
            due_date = value
        elif prop_type == "people":
            assignee = value[0]
        elif prop_type == "multi_select":
            tags = value

    page_id = page.get("id", "")
    return PageContent(
        title=title,
        content=body or "Content extracted from Notion",
        url=page.get("url") or f"https://notion.so/{page_id.replace('-', '')}",
        priority=priority,
        due_date=due_date,
        assignee=assignee,
        tags=tags,
    )


def find_status_property(properties: dict) -> tuple[str, str] | None:
    """Locate the property holding the page's workflow status.

    Prefers the first property of type ``status``; otherwise a ``select``
    property named Status/Estado. Returns ``(name, type)``.
    """
    for name, prop in properties.items():
        if prop.get("type") == "status":
            return name, "status"
    for name, prop in properties.items():
        if prop.get("type") == "select" and name.strip().lower() in STATUS_PROPERTY_NAMES:
            return name, "select"
    return None


def extract_status(properties: dict) -> str | None:
    located = find_status_property(properties)
    if not located:
        return None
    return parse_property_value(properties[located[0]])


def properties_mention_user(properties: dict, user_id: str) -> bool:
    """True if a people, rich_text or title property references ``user_id``."""
    for prop in properties.values():
        prop_type = prop.get("type")
        if prop_type == "people":
            if any(person.get("id") == user_id for person in prop.get("people", [])):
                return True
        elif prop_type in ("rich_text", "title"):
            if rich_text_mentions_user(prop.get(prop_type, []), user_id):
                return True
    return False
