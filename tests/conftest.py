from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient

from notion_todoist_bridge.config import Settings
from notion_todoist_bridge.db.repository import Repository
from notion_todoist_bridge.main import create_app
from notion_todoist_bridge.sync.orchestrator import SyncResult
from notion_todoist_bridge.webhook import logs_handler, notion_handler, todoist_handler
from notion_todoist_bridge.webhook.notion_handler import NotionWebhookService
from notion_todoist_bridge.webhook.todoist_handler import TodoistWebhookService


class FakeOrchestrator:
    """Records sync calls instead of talking to Notion and Todoist."""

    def __init__(self, result: SyncResult | None = None):
        self.calls: list[tuple] = []
        self._result = result

    async def sync(self, notion_page_id, workspace_name=None, action=None):
        self.calls.append((notion_page_id, workspace_name, action))
        if self._result is not None:
            return self._result
        return SyncResult(
            success=True,
            notion_page_id=notion_page_id,
            outcome="created",
            todoist_task_id="task-1",
        )


class FakeStatusNotion:
    """Stands in for NotionClient on the Todoist → Notion path."""

    def __init__(self, fail: Exception | None = None):
        self.updates: list[tuple] = []
        self._fail = fail

    async def update_page_status(self, page_id, requested, category):
        if self._fail:
            raise self._fail
        self.updates.append((page_id, requested, category))
        return requested


def make_settings(**overrides) -> Settings:
    values = dict(notion_api_key="notion-key", todoist_api_token="todoist-token")
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'webhooks.db'}"


@pytest.fixture
def app_factory(database_url):
    """Build a configured app and yield a started TestClient plus the repository."""

    @contextmanager
    def _running(
        *,
        orchestrator=None,
        status_notion=None,
        window_seconds: float = 60.0,
        notion_secret: str | None = None,
        todoist_secret: str | None = None,
    ):
        settings = make_settings(notion_webhook_secret=notion_secret, todoist_webhook_secret=todoist_secret)
        repo = Repository(database_url)
        notion_service = NotionWebhookService(
            orchestrator or FakeOrchestrator(),
            window_seconds=window_seconds,
            webhook_secret=notion_secret,
        )
        todoist_service = TodoistWebhookService(
            status_notion or FakeStatusNotion(),
            webhook_secret=todoist_secret,
        )
        notion_handler.configure(settings, repo, notion_service)
        todoist_handler.configure(repo, todoist_service)
        logs_handler.configure(repo)

        app = create_app(with_lifespan=False)
        with TestClient(app) as client:
            # Requests run on the portal's loop; the database must live there too
            client.portal.call(repo.init_db)
            try:
                yield client, repo
            finally:
                client.portal.call(notion_service.coordinator.close)
                client.portal.call(repo.close)

    return _running
