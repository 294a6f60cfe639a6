"""
Application configuration using Pydantic Settings.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data.db"
    AUTO_CREATE_DB_SCHEMA: bool = True

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # AssemblyAI
    ASSEMBLYAI_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("ASSEMBLYAI_API_KEY", "AAI_KEY"),
    )
    ASSEMBLYAI_BASE_URL: str = "https://api.assemblyai.com/v2"
    ASSEMBLYAI_LANGUAGE_CODE: str = ""
    TRANSCRIPT_POLL_INTERVAL_SECONDS: float = 2.5
    TRANSCRIPT_MAX_POLL_ATTEMPTS: int = 120

    # Media extraction (yt-dlp)
    MEDIA_EXTRACTOR_BACKEND: Literal["cli", "library"] = "cli"
    YTDLP_BINARY: str = "yt-dlp"
    MEDIA_PROXY_URL: str = ""
    TIKTOK_COOKIES: str = ""  # Netscape cookie file contents
    TIKTOK_COOKIES_FILE: str = ""
    RESOLVER_TIMEOUT_SECONDS: float = 120.0

    # Analysis
    ANALYZER_VOCABULARY_PATH: str = ""

    # Jobs / scripts
    SCRIPTS_LIST_LIMIT: int = 200
    STALLED_JOB_MAX_AGE_MINUTES: int = 0
    RESUME_QUEUED_JOBS_ON_STARTUP: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()


def assemblyai_key_configured() -> bool:
    """Return True when an AssemblyAI key is present."""
    return bool((settings.ASSEMBLYAI_API_KEY or "").strip())
