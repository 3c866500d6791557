"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from notion_todoist_bridge.config import Settings
from notion_todoist_bridge.db.repository import Repository
from notion_todoist_bridge.enrichment.openai_client import OpenAIEnricher
from notion_todoist_bridge.errors import BridgeError
from notion_todoist_bridge.notion.client import NotionClient
from notion_todoist_bridge.sync.orchestrator import SyncOrchestrator
from notion_todoist_bridge.todoist.client import TodoistClient
from notion_todoist_bridge.webhook import logs_handler
from notion_todoist_bridge.webhook import notion_handler
from notion_todoist_bridge.webhook import todoist_handler
from notion_todoist_bridge.webhook.notion_handler import NotionWebhookService
from notion_todoist_bridge.webhook.todoist_handler import TodoistWebhookService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize clients
    repo = Repository(settings.database_url)
    await repo.init_db()

    notion_client = NotionClient(settings.notion_api_key)
    todoist_client = TodoistClient(settings.todoist_api_token)
    enricher = None
    if settings.enrichment_enabled:
        enricher = OpenAIEnricher(settings.openai_api_key, model=settings.openai_model)

    orchestrator = SyncOrchestrator(
        notion_client,
        todoist_client,
        enricher,
        project_id=settings.todoist_project_id,
        watch_user_id=settings.notion_user_id,
        done_statuses=settings.done_statuses,
    )
    notion_service = NotionWebhookService(
        orchestrator,
        window_seconds=settings.debounce_seconds,
        webhook_secret=settings.notion_webhook_secret,
    )
    todoist_service = TodoistWebhookService(
        notion_client,
        webhook_secret=settings.todoist_webhook_secret,
        completed_status=settings.notion_completed_status,
        in_progress_status=settings.notion_in_progress_status,
    )

    # Inject dependencies into webhook handlers
    notion_handler.configure(settings, repo, notion_service)
    todoist_handler.configure(repo, todoist_service)
    logs_handler.configure(repo)

    logger.info(
        "Notion-Todoist bridge started (debounce %dms, enrichment %s)",
        settings.debounce_ms, "on" if enricher else "off",
    )
    yield

    # Cleanup
    await notion_service.coordinator.close()
    await notion_client.close()
    await todoist_client.close()
    if enricher:
        await enricher.close()
    await repo.close()
    logger.info("Notion-Todoist bridge stopped")


async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": str(exc) or "Internal server error", "code": "INTERNAL_ERROR"},
    )


def create_app(*, with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Notion-Todoist Bridge",
        lifespan=lifespan if with_lifespan else None,
    )
    app.include_router(notion_handler.router)
    app.include_router(todoist_handler.router)
    app.include_router(logs_handler.router)
    app.add_exception_handler(BridgeError, bridge_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "notion_todoist_bridge.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
