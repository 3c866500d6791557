"""Optional task enrichment through the OpenAI Responses API."""

import json
import logging
from dataclasses import dataclass, field
from datetime import date

import httpx

from notion_todoist_bridge.errors import EnrichmentError
from notion_todoist_bridge.notion.property_parser import PageContent

logger = logging.getLogger(__name__)

OPENAI_API_BASE = "https://api.openai.com/v1"

INSTRUCTIONS = (
    "You are a productivity assistant that tidies up tasks. "
    "Reply with valid JSON only."
)

PROMPT_TEMPLATE = """\
Improve the following Notion page so it reads well as a Todoist task.

Title: {title}
Content: {content}
URL: {url}
Current priority: {priority}
Due date: {due_date}
Assignee: {assignee}
Tags: {tags}

Provide:
1. A SHORT description (2-3 lines at most) with the goal and minimal context
2. A suggested priority from 1 to 4, where 4 is the highest
3. Suggested labels, using ONLY the project name, the database name or tags already present above
4. A suggested due date (YYYY-MM-DD) if there is none

Do not invent subtasks. Answer with this JSON structure:
{{
  "enhancedTitle": "...",
  "enhancedDescription": "...",
  "suggestedPriority": 1,
  "suggestedLabels": ["..."],
  "suggestedDueDate": "YYYY-MM-DD or null"
}}
"""


@dataclass
class Enhancement:
    description: str
    priority: int
    labels: list[str] = field(default_factory=list)
    due_date: str | None = None


def build_prompt(page: PageContent) -> str:
    return PROMPT_TEMPLATE.format(
        title=page.title,
        content=page.content,
        url=page.url,
        priority=page.priority,
        due_date=page.due_date or "not set",
        assignee=page.assignee or "not set",
        tags=", ".join(page.tags) or "none",
    )


def _output_text(response: dict) -> str:
    """Concatenate the output_text parts of a Responses API payload."""
    parts = []
    for item in response.get("output") or []:
        if not isinstance(item, dict) or item.get("type") != "message":
            continue
        for content in item.get("content") or []:
            if isinstance(content, dict) and content.get("type") == "output_text":
                parts.append(str(content.get("text") or ""))
    return "".join(parts)


def _valid_due_date(value) -> str | None:
    """Keep a suggested due date only if it is a plain YYYY-MM-DD string."""
    if not isinstance(value, str):
        return None
    try:
        date.fromisoformat(value)
    except ValueError:
        return None
    return value


def parse_enhancement(text: str, page: PageContent) -> Enhancement:
    """Turn the model's JSON answer into an Enhancement, clamping priority to 1..4."""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise EnrichmentError(f"Enrichment response is not JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise EnrichmentError("Enrichment response is not a JSON object")

    priority = parsed.get("suggestedPriority") or page.priority or 1
    try:
        priority = min(max(int(priority), 1), 4)
    except (TypeError, ValueError, OverflowError):
        priority = page.priority or 1

    labels = parsed.get("suggestedLabels")
    if not isinstance(labels, list):
        labels = list(page.tags)

    description = parsed.get("enhancedDescription")
    if not isinstance(description, str) or not description.strip():
        description = page.content

    return Enhancement(
        description=description,
        priority=priority,
        labels=[str(label) for label in labels],
        due_date=_valid_due_date(parsed.get("suggestedDueDate")),
    )


class OpenAIEnricher:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4.1-mini",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._client = httpx.AsyncClient(
            base_url=OPENAI_API_BASE,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def enhance(self, page: PageContent) -> Enhancement:
        """Ask the model for a tidier description, priority and labels.

        Raises EnrichmentError on any failure; callers continue without it.
        """
        body = {
            "model": self._model,
            "instructions": INSTRUCTIONS,
            "input": build_prompt(page),
            "text": {"format": {"type": "json_object"}},
            "max_output_tokens": 500,
        }
        try:
            resp = await self._client.post("/responses", json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise EnrichmentError(
                f"OpenAI returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise EnrichmentError(f"OpenAI request failed: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError as exc:
            raise EnrichmentError("OpenAI response is not JSON") from exc
        if not isinstance(payload, dict):
            raise EnrichmentError("Unexpected OpenAI response shape")

        text = _output_text(payload)
        if not text:
            raise EnrichmentError("Empty response from OpenAI")
        return parse_enhancement(text, page)
