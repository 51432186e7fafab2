"""Service configuration using pydantic-settings.

This module defines the WorkItemSettings class that reads configuration
from environment variables with the WORKITEMS_ prefix.
"""

from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.workitems.events.emitter import EventSinkType


class WorkItemSettings(BaseSettings):
    """Work item service configuration from environment variables.

    All environment variables are prefixed with WORKITEMS_ (e.g.,
    WORKITEMS_DATABASE_URL). When database_url is not set the service runs
    against the in-process repository, which is only suitable for local
    development.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKITEMS_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # Database Configuration
    # -------------------------------------------------------------------------
    # PostgreSQL connection string for work item persistence
    database_url: Optional[str] = None

    # Connection pool bounds
    db_min_pool_size: int = 2
    db_max_pool_size: int = 10

    # Seconds before a single database statement is aborted
    db_command_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # Events Configuration
    # -------------------------------------------------------------------------
    # Sinks receiving work item events, e.g. '["logging", "metrics"]'
    event_sinks: List[EventSinkType] = [EventSinkType.LOGGING]

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the database URL, when set, is a PostgreSQL URL."""
        if v is None or not v.strip():
            return None
        if not v.startswith(("postgresql://", "postgres://")):
            raise ValueError(
                "database_url must start with postgresql:// or postgres://"
            )
        return v

    @field_validator("db_min_pool_size", "db_max_pool_size")
    @classmethod
    def validate_pool_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("pool sizes must be at least 1")
        return v

    @field_validator("db_command_timeout_seconds")
    @classmethod
    def validate_command_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("db_command_timeout_seconds must be positive")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level must be a standard logging level, got {v}")
        return level


def get_settings() -> WorkItemSettings:
    """Create WorkItemSettings from the environment.

    Raises:
        pydantic.ValidationError: If any value is invalid.
    """
    return WorkItemSettings()
