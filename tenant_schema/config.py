"""
Configuration management for tenant schema reconciliation.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings."""

    # Database
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")
    tenant_schema_name: str = Field(default="public", env="TENANT_SCHEMA_NAME")

    # Schema versioning
    schema_version: str = Field(default="1.0.0", env="SCHEMA_VERSION")

    # Validation front door
    disable_schema_checks: bool = Field(
        default=False,
        env="DISABLE_SCHEMA_CHECKS",
        description="Emergency kill switch: skip reconciliation entirely.",
    )
    schema_check_interval_seconds: int = Field(
        default=3600, env="SCHEMA_CHECK_INTERVAL_SECONDS"
    )

    # Concurrency guard
    race_retry_attempts: int = Field(default=3, env="RACE_RETRY_ATTEMPTS")
    race_retry_delay_seconds: float = Field(
        default=0.25, env="RACE_RETRY_DELAY_SECONDS"
    )

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get engine settings."""
    return settings
