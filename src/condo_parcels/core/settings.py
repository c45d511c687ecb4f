"""Application settings and configuration.

This module defines all configuration options for the condo parcels service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Condo Parcels", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Local store (photos and pending operation queue)
    database_url: str = Field(default="sqlite:///./condo_parcels.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    max_photo_bytes: int = Field(default=8 * 1024 * 1024, alias="MAX_PHOTO_BYTES")

    # Remote document store
    remote_store_base_url: str = Field(
        default="http://localhost:8080",
        alias="REMOTE_STORE_BASE_URL",
    )
    remote_store_api_key: str | None = Field(default=None, alias="REMOTE_STORE_API_KEY")
    remote_store_client_id: str = Field(
        default="front-desk",
        alias="REMOTE_STORE_CLIENT_ID",
    )
    remote_store_token_ttl_seconds: int = Field(
        default=300,
        alias="REMOTE_STORE_TOKEN_TTL_SECONDS",
    )
    remote_store_http_timeout_seconds: float = Field(
        default=10.0,
        alias="REMOTE_STORE_HTTP_TIMEOUT_SECONDS",
    )

    # Sync queue
    sync_max_attempts: int = Field(default=5, alias="SYNC_MAX_ATTEMPTS")

    # Connectivity
    assume_online_at_startup: bool = Field(default=True, alias="ASSUME_ONLINE_AT_STARTUP")
    connectivity_probe_enabled: bool = Field(default=False, alias="CONNECTIVITY_PROBE_ENABLED")
    connectivity_probe_interval_seconds: float = Field(
        default=15.0,
        alias="CONNECTIVITY_PROBE_INTERVAL_SECONDS",
    )

    # CORS configuration for the front-desk web client
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
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
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
