from pydantic_settings import BaseSettings

DEFAULT_DONE_STATUSES = ["Listo", "Done", "Completed", "Completado", "Terminado", "Finished"]


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Notion
    notion_api_key: str
    notion_user_id: str | None = None  # watch user; enables delete-on-disinterest
    notion_webhook_secret: str | None = None
    notion_completed_status: str = "Completado"
    notion_in_progress_status: str = "En progreso"

    # Todoist
    todoist_api_token: str
    todoist_project_id: str | None = None
    todoist_webhook_secret: str | None = None

    # OpenAI enrichment
    openai_api_key: str | None = None
    enable_ai_enhancement: bool = False
    openai_model: str = "gpt-4.1-mini"

    # Sync behavior
    debounce_ms: int = 60_000
    done_statuses: list[str] = DEFAULT_DONE_STATUSES

    # Database (webhook request log)
    database_url: str = "sqlite+aiosqlite:///./notion_todoist_bridge.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000

    @property
    def enrichment_enabled(self) -> bool:
        return self.enable_ai_enhancement and bool(self.openai_api_key)
