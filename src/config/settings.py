"""Application settings and configuration."""

import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# HS256 keys shorter than the digest size are rejected
MIN_SECRET_KEY_BYTES = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application (hardcoded constants)
    app_name: str = "Taskflow API"
    app_version: str = "0.1.0"

    # Environment-specific settings
    debug: bool = False
    environment: str  # development, staging, production

    # Database
    database_url: str
    database_pool_size: int = 10
    database_max_overflow: int = 20
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    database_echo: bool = False

    # API
    api_prefix: str = "/api"

    # Security
    secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_seconds: int = 900
    refresh_token_expire_days: int = 30

    # Rate limiting (requests per minute per client address)
    rate_limit_login_per_minute: int = 5
    rate_limit_refresh_per_minute: int = 10

    # First admin account, created at startup only while the users table is empty
    initial_admin_name: str = "Admin"
    initial_admin_email: str | None = None
    initial_admin_password: str | None = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"development", "staging", "production"}
        env = str(v).lower()
        if env not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}, got {env}")
        return env

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Reject signing secrets too short for HMAC-SHA256."""
        if len(v.encode("utf-8")) < MIN_SECRET_KEY_BYTES:
            raise ValueError(f"secret_key must be at least {MIN_SECRET_KEY_BYTES} bytes")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in {"json", "text"}:
            raise ValueError(f"log_format must be 'json' or 'text', got {v}")
        return fmt

    @model_validator(mode="after")
    def validate_initial_admin(self) -> "Settings":
        """Initial admin email and password must be configured together."""
        if (self.initial_admin_email is None) != (self.initial_admin_password is None):
            raise ValueError("initial_admin_email and initial_admin_password must be set together")
        return self

    @property
    def seeds_initial_admin(self) -> bool:
        return self.initial_admin_email is not None

    @property
    def is_sqlite(self) -> bool:
        """SQLite engines do not accept connection pool sizing arguments."""
        return self.database_url.startswith("sqlite")


settings = Settings()  # type: ignore[call-arg]
