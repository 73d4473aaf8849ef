"""
Parts Shop Financial Analytics
Centralized Configuration Management

Pydantic settings with environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Postgres (Supabase) Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="DATABASE_", env_file=".env", extra="ignore", populate_by_name=True)

    url: Optional[str] = Field(default=None, description="Full SQLAlchemy URL (overrides host/port/name)")
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="postgres", description="Database name")
    user: str = Field(default="postgres", description="Database user")
    password: SecretStr = Field(default="postgres", description="Database password")
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=5, description="Max overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    use_external_pooler: bool = Field(
        default=True,
        description="An external pooler (Supabase pgbouncer) pools server-side; disables the local pool",
    )
    echo: bool = Field(default=False, description="Echo SQL queries")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            # Supabase hands out postgres:// / postgresql:// connection strings
            if self.url.startswith("postgres://"):
                return "postgresql+asyncpg://" + self.url[len("postgres://"):]
            if self.url.startswith("postgresql://"):
                return "postgresql+asyncpg://" + self.url[len("postgresql://"):]
            return self.url
        return (
            f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}"
            f"@{self.host}:{self.port}/{self.name}"
        )


class AnalyticsSettings(BaseSettings):
    """Financial analytics tuning"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_", env_file=".env", extra="ignore", populate_by_name=True)

    default_period_days: int = Field(default=30, description="Window used when no period is given")
    max_period_days: int = Field(default=3650, description="Largest accepted period")
    top_n: int = Field(default=10, description="Entries returned by product/customer rankings")
    export_max_orders: int = Field(default=5000, description="Cap on orders included in one export")
    fetch_concurrency: int = Field(default=4, description="Concurrent store queries per request")
    id_chunk_size: int = Field(default=500, description="Ids per IN (...) lookup")

    @field_validator("fetch_concurrency", "id_chunk_size", "top_n", "export_max_orders")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Reject zero or negative limits"""
        if v < 1:
            raise ValueError("must be a positive integer")
        return v


class SecuritySettings(BaseSettings):
    """Cross-origin configuration"""

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore", populate_by_name=True)

    # CORS
    cors_origins: List[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="partshop-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="production", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
