"""
Application settings using Pydantic Settings.

Environment variables are loaded from .env file.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.

    Create a .env file in the project root with these values.
    Missing required values stop the process at import time.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ========================================================================
    # Database
    # ========================================================================
    MONGODB_URI: str
    MONGODB_DATABASE: str

    # ========================================================================
    # Text enrichment (OpenAI) - optional, defaults are stored without it
    # ========================================================================
    OPENAI_API_KEY: Optional[str] = None
    ENRICHMENT_MODEL: str = "gpt-4o"
    ENRICHMENT_TEMPERATURE: float = 0.2
    ENRICHMENT_BATCH_SIZE: int = 25

    # ========================================================================
    # HTTP scraping
    # ========================================================================
    HTTP_TIMEOUT_SECONDS: float = 30.0
    USER_AGENT: str = "CivicWatchdog-DataCollector/1.0 (Government Transparency Platform)"
    RETRY_MAX_ATTEMPTS: int = 5
    RETRY_BASE_DELAY_MS: int = 2000
    RETRY_MAX_DELAY_MS: int = 60000

    # ========================================================================
    # Scheduling
    # ========================================================================
    SCHEDULER_ENABLED: bool = True
    STARTUP_DELAY_SECONDS: int = 120
    GOVERNMENT_SYNC_INTERVAL_MINUTES: int = 120
    NEWS_SYNC_INTERVAL_MINUTES: int = 30
    ANALYTICS_INTERVAL_MINUTES: int = 60
    HEALTH_INTERVAL_MINUTES: int = 5

    # Overlapping runs of the same job are skipped unless this is set
    ALLOW_OVERLAPPING_RUNS: bool = False

    # ========================================================================
    # Logging
    # ========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ========================================================================
    # Application
    # ========================================================================
    APP_NAME: str = "Civic Watchdog"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Environment (development, staging, production)
    ENVIRONMENT: str = "development"


# Singleton instance
settings = Settings()
