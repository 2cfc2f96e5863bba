"""Application configuration."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from offboard_api.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    database_url: str | None = None
    database_ssl: str | None = "prefer"
    database_pool_max_size: int = 20
    database_idle_timeout: float = 30.0
    database_connect_timeout: float = 10.0

    # Sessions
    session_table_name: str = "user_sessions"
    session_schema_name: str = "public"
    session_prune_interval: int = 60 * 15
    session_ttl_seconds: int = 60 * 60 * 24
    session_cookie_name: str = "sessionId"

    # Application
    log_level: str = "INFO"
    log_format: str = "json"
    expose_error_details: bool = False
    api_rate_limit: str = "100 per 15 minutes"

    # Frontend (for CORS)
    frontend_url: str = "http://localhost:3000"

    @property
    def frontend_urls(self) -> list[str]:
        """Parse frontend URLs from comma-separated env var."""
        return [url.strip() for url in self.frontend_url.split(",")]

    @field_validator("database_url")
    @classmethod
    def blank_database_url_is_missing(cls, v: str | None) -> str | None:
        """Treat an empty DATABASE_URL the same as an unset one."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("session_prune_interval")
    @classmethod
    def validate_prune_interval(cls, v: int) -> int:
        """Prune interval is in seconds; 0 disables pruning."""
        if v < 0:
            raise ValueError("SESSION_PRUNE_INTERVAL must be >= 0 seconds")
        return v

    def require_database_url(self) -> str:
        """
        Return the configured connection string.

        Raises:
            ConfigurationError: If DATABASE_URL is not set
        """
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL is required for the session store")
        return self.database_url


settings = Settings()
