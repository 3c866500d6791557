"""Core sync pipeline: Notion page → create / update / complete / delete Todoist task."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from notion_todoist_bridge.config import DEFAULT_DONE_STATUSES
from notion_todoist_bridge.enrichment.openai_client import OpenAIEnricher
from notion_todoist_bridge.errors import EnrichmentError
from notion_todoist_bridge.notion.client import NotionClient
from notion_todoist_bridge.notion.property_parser import PageContent
from notion_todoist_bridge.sync.tags import combine_tags
from notion_todoist_bridge.todoist.client import TodoistClient, TodoistTask
from notion_todoist_bridge.webhook.classifier import EventAction

logger = logging.getLogger(__name__)

DEFAULT_TASK_PRIORITY = 2


@dataclass
class SyncResult:
    success: bool
    notion_page_id: str
    outcome: str | None = None  # created | updated | completed | deleted | skipped
    todoist_task_id: str | None = None
    enhanced_with_ai: bool = False
    message: str | None = None
    error: str | None = None


def format_date_for_todoist(value: str) -> str:
    """Convert an ISO date or datetime to Todoist's YYYY-MM-DD."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def build_task_description(page: PageContent, workspace_name: str | None = None) -> str:
    """Body text plus the back-reference link the reverse direction relies on."""
    description = f"{page.content}\n\n🔗 View in Notion: {page.url}"
    if workspace_name:
        description = f"{description}\n📁 Workspace: {workspace_name}"
    return description


class SyncOrchestrator:
    def __init__(
        self,
        notion_client: NotionClient,
        todoist_client: TodoistClient,
        enricher: OpenAIEnricher | None = None,
        *,
        project_id: str | None = None,
        watch_user_id: str | None = None,
        done_statuses: list[str] | None = None,
    ) -> None:
        self._notion = notion_client
        self._todoist = todoist_client
        self._enricher = enricher
        self._project_id = project_id
        self._watch_user_id = watch_user_id
        self._done_statuses = set(done_statuses or DEFAULT_DONE_STATUSES)

    async def sync(
        self,
        notion_page_id: str,
        workspace_name: str | None = None,
        action: EventAction = EventAction.CREATE,
    ) -> SyncResult:
        """Bring the Todoist side in line with the current state of a Notion page.

        Never raises: failures are reported through ``SyncResult.error``.
        """
        try:
            if self._watch_user_id:
                mentioned = await self._notion.is_user_mentioned(
                    notion_page_id, self._watch_user_id
                )
                if not mentioned:
                    return await self._handle_not_mentioned(notion_page_id, action)

            if action == EventAction.UPDATE:
                existing = await self._todoist.find_task_by_notion_page(
                    notion_page_id, self._project_id
                )
                if existing:
                    logger.info("Existing task %s found for page %s", existing.id, notion_page_id)
                    return await self._update_existing_task(existing, notion_page_id, workspace_name)
                logger.info("No existing task for page %s, creating one", notion_page_id)

            return await self._create_task(notion_page_id, workspace_name)
        except Exception as exc:
            logger.exception("Error syncing page %s (%s)", notion_page_id, action.value)
            return SyncResult(
                success=False,
                notion_page_id=notion_page_id,
                error=str(exc) or exc.__class__.__name__,
            )

    async def _handle_not_mentioned(self, notion_page_id: str, action: EventAction) -> SyncResult:
        if action != EventAction.UPDATE:
            logger.info("Watch user not mentioned in page %s, skipping", notion_page_id)
            return SyncResult(
                success=True,
                notion_page_id=notion_page_id,
                outcome="skipped",
                message="User not mentioned",
            )
        return await self.handle_mention_removal(notion_page_id)

    async def handle_mention_removal(self, notion_page_id: str) -> SyncResult:
        """Delete the task for a page that no longer references the watch user."""
        existing = await self._todoist.find_task_by_notion_page(notion_page_id, self._project_id)
        if not existing:
            logger.info("No existing task to delete for page %s", notion_page_id)
            return SyncResult(
                success=True,
                notion_page_id=notion_page_id,
                outcome="skipped",
                message="User not mentioned and no task to delete",
            )

        await self._todoist.delete_task(existing.id)
        logger.info(
            "Deleted task %s: watch user no longer mentioned in page %s",
            existing.id, notion_page_id,
        )
        return SyncResult(
            success=True,
            notion_page_id=notion_page_id,
            outcome="deleted",
            todoist_task_id=existing.id,
            message="Task deleted after mention removal",
        )

    async def _create_task(self, notion_page_id: str, workspace_name: str | None) -> SyncResult:
        page = await self._notion.get_page_content(notion_page_id)
        page, enhanced = await self._enrich(page)

        task = {
            "content": page.title,
            "description": build_task_description(page, workspace_name),
            "priority": page.priority or DEFAULT_TASK_PRIORITY,
            "labels": combine_tags(page.tags, workspace_name),
        }
        if self._project_id:
            task["project_id"] = self._project_id
        if page.due_date:
            task["due_date"] = format_date_for_todoist(page.due_date)

        created = await self._todoist.create_task(task)
        logger.info("Created task %s for page %s", created.id, notion_page_id)
        return SyncResult(
            success=True,
            notion_page_id=notion_page_id,
            outcome="created",
            todoist_task_id=created.id,
            enhanced_with_ai=enhanced,
        )

    async def _update_existing_task(
        self,
        existing: TodoistTask,
        notion_page_id: str,
        workspace_name: str | None,
    ) -> SyncResult:
        status = await self._notion.get_page_status(notion_page_id)
        logger.debug("Page %s status: %s", notion_page_id, status)

        if status and status in self._done_statuses:
            try:
                await self._todoist.close_task(existing.id)
            except Exception:
                logger.exception(
                    "Could not complete task %s, updating its content instead", existing.id
                )
            else:
                logger.info("Page %s is '%s', completed task %s", notion_page_id, status, existing.id)
                return SyncResult(
                    success=True,
                    notion_page_id=notion_page_id,
                    outcome="completed",
                    todoist_task_id=existing.id,
                    message=f"Task marked as completed (status: {status})",
                )

        page = await self._notion.get_page_content(notion_page_id)
        page, enhanced = await self._enrich(page)

        updates = {
            "content": page.title,
            "description": build_task_description(page, workspace_name),
            "priority": page.priority or DEFAULT_TASK_PRIORITY,
            "labels": combine_tags(page.tags, workspace_name),
        }
        if page.due_date:
            updates["due_date"] = format_date_for_todoist(page.due_date)

        await self._todoist.update_task(existing.id, updates)
        logger.info("Updated task %s for page %s", existing.id, notion_page_id)
        return SyncResult(
            success=True,
            notion_page_id=notion_page_id,
            outcome="updated",
            todoist_task_id=existing.id,
            enhanced_with_ai=enhanced,
        )

    async def _enrich(self, page: PageContent) -> tuple[PageContent, bool]:
        """Apply enrichment if configured. The user's title is always kept."""
        if self._enricher is None:
            return page, False
        try:
            enhancement = await self._enricher.enhance(page)
        except EnrichmentError as exc:
            logger.warning("Enrichment failed, continuing without it: %s", exc)
            return page, False

        enriched = replace(
            page,
            content=enhancement.description,
            priority=enhancement.priority,
            tags=enhancement.labels,
            due_date=enhancement.due_date or page.due_date,
        )
        return enriched, True
