"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=("../.env", ".env"),  # Check parent dir first, then current
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Schnitzarchiv API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = "logs"

    # API
    api_prefix: str = "/api"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Database
    database_url: str = "sqlite+aiosqlite:///./instance/schnitzarchiv.db"
    create_tables_on_startup: bool = True

    # Redis (for ARQ task queue)
    redis_url: str = "redis://localhost:6379"

    # LLM (Gemini)
    gemini_api_key: str | None = None
    metadata_model: str = "gemini-2.0-flash"
    query_model: str = "gemini-2.0-flash"
    content_preview_chars: int = 1000

    # Web search (Serper)
    serper_api_key: str | None = None
    serper_url: str = "https://google.serper.dev/search"
    search_country: str = "de"
    search_language: str = "de"

    # Admin auth
    admin_password: str = "admin123"
    jwt_secret_key: str | None = None
    access_token_expire_minutes: int = 60 * 24  # 24 hours
    enable_auth: bool = True

    # Pipeline settings
    min_quality_score: int = 4
    # Inline runs happen inside an HTTP request and must stay well under 60s
    inline_search_count: int = 3
    inline_fetch_timeout: float = 8.0
    worker_search_count: int = 15
    worker_fetch_timeout: float = 30.0

    # Worker
    enable_cron: bool = False
    cron_pending_limit: int = 10

    @property
    def database_path(self) -> Path | None:
        """Extract the database file path from the URL, None for non-file databases."""
        if not self.database_url.startswith("sqlite+aiosqlite:///"):
            return None
        path_str = self.database_url.replace("sqlite+aiosqlite:///", "")
        if path_str == ":memory:":
            return None
        return Path(path_str)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
