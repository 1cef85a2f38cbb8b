"""Application settings and configuration.

This module defines all configuration options for the Noisegarden engine.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Noisegarden", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./noisegarden.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Content lifecycle
    default_content_ttl_seconds: int = Field(
        default=60 * 60 * 24 * 30,
        alias="DEFAULT_CONTENT_TTL_SECONDS",
    )
    max_content_ttl_seconds: int = Field(
        default=60 * 60 * 24 * 30,
        alias="MAX_CONTENT_TTL_SECONDS",
    )
    content_max_length: int = Field(default=280, alias="CONTENT_MAX_LENGTH")

    # "on_read" deletes expired rows before every listing; "background" runs a periodic task.
    expiry_sweep_mode: Literal["on_read", "background"] = Field(
        default="on_read",
        alias="EXPIRY_SWEEP_MODE",
    )
    expiry_sweep_interval_seconds: float = Field(
        default=60.0,
        alias="EXPIRY_SWEEP_INTERVAL_SECONDS",
    )

    # Community moderation
    flag_quarantine_threshold: int = Field(default=3, alias="FLAG_QUARANTINE_THRESHOLD")
    default_mute_minutes: int = Field(default=60 * 24, alias="DEFAULT_MUTE_MINUTES")

    # Popup threads
    popup_default_reply_limit: int = Field(default=10, alias="POPUP_DEFAULT_REPLY_LIMIT")
    popup_default_time_limit_minutes: int = Field(
        default=60,
        alias="POPUP_DEFAULT_TIME_LIMIT_MINUTES",
    )

    # Polls
    poll_min_options: int = Field(default=2, alias="POLL_MIN_OPTIONS")
    poll_max_options: int = Field(default=5, alias="POLL_MAX_OPTIONS")

    # Write throttling; an empty redis URL keeps counters in process
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_per_minute: int = Field(default=60, alias="RATE_LIMIT_PER_MINUTE")
    rate_limit_per_hour: int = Field(default=1000, alias="RATE_LIMIT_PER_HOUR")
    redis_url: str = Field(default="", alias="REDIS_URL")

    # Push delivery collaborator
    push_gateway_url: str | None = Field(default=None, alias="PUSH_GATEWAY_URL")
    push_timeout_seconds: float = Field(default=5.0, alias="PUSH_TIMEOUT_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
