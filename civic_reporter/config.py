"""
Application configuration using pydantic-settings.
Loads configuration from environment variables and .env file.
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Supports loading from .env file for local development.
    """

    # Database Configuration
    DATABASE_URL: str = Field(
        description="Database URL (postgresql+asyncpg:// in production, sqlite+aiosqlite:// for local dev)"
    )
    DB_ECHO: bool = Field(
        default=False,
        description="Log all SQL statements"
    )

    # Security Configuration
    STAFF_PASSWORD: str = Field(
        description="Shared secret for municipal staff and admin endpoints"
    )

    # CORS Configuration
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins"
    )

    # Rate Limiting Configuration
    SUBMISSION_RATE_LIMIT: int = Field(
        default=10,
        description="Maximum issue submissions per minute per IP"
    )

    GENERAL_RATE_LIMIT: int = Field(
        default=100,
        description="Maximum general API requests per minute per IP"
    )

    # Request Size Limits
    MAX_REQUEST_SIZE: int = Field(
        default=10 * 1024 * 1024,  # 10MB
        description="Maximum request body size in bytes"
    )

    # Environment
    ENVIRONMENT: str = Field(
        default="development",
        description="Application environment: development, staging, production"
    )

    # Logging Configuration
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    # Assignment Configuration
    ENFORCE_DEPARTMENT_CAPACITY: bool = Field(
        default=True,
        description="Skip departments at max active issues during auto-assignment"
    )

    # Issue defaults
    DEFAULT_CITY: str = Field(
        default="Ranchi",
        description="City recorded on issues submitted without one"
    )
    NEARBY_DEFAULT_RADIUS_KM: float = Field(
        default=5.0,
        description="Default search radius for nearby issues"
    )

    # External municipal system sync
    EXTERNAL_SYNC_URL: Optional[str] = Field(
        default=None,
        description="Endpoint receiving status update pushes (disabled when unset)"
    )
    EXTERNAL_SYNC_API_KEY: Optional[str] = Field(
        default=None,
        description="Bearer token for the external sync endpoint"
    )

    # Scheduler Configuration
    STATUS_SYNC_INTERVAL_MINUTES: int = Field(
        default=15,
        description="Minutes between external status sync runs"
    )
    STATISTICS_REFRESH_MINUTES: int = Field(
        default=60,
        description="Minutes between department statistics refreshes"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @property
    def database_url_sync(self) -> str:
        """Get synchronous database URL for Alembic migrations."""
        return self.DATABASE_URL.replace("postgresql+asyncpg://", "postgresql://")

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def external_sync_enabled(self) -> bool:
        """Whether status updates should be queued for the external system."""
        return bool(self.EXTERNAL_SYNC_URL)

    def __repr__(self) -> str:
        """
        Custom repr that masks sensitive values.

        Prevents accidental exposure of credentials in logs.
        """
        sensitive_fields = {
            "STAFF_PASSWORD",
            "DATABASE_URL",
            "EXTERNAL_SYNC_API_KEY",
        }

        fields = []
        for field_name in type(self).model_fields:
            value = getattr(self, field_name)
            if field_name in sensitive_fields and value:
                # Mask sensitive values
                if isinstance(value, str) and len(value) > 8:
                    masked = value[:4] + "***" + value[-4:]
                else:
                    masked = "***"
                fields.append(f"{field_name}={masked!r}")
            else:
                fields.append(f"{field_name}={value!r}")

        return f"Settings({', '.join(fields)})"


# Create singleton settings instance
settings = Settings()
