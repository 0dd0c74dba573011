"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-service", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="Async SQLAlchemy connection URL"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    create_tables_on_startup: bool = Field(
        default=True,
        description="Create missing tables at startup (use migrations in production)"
    )

    # ========== Authentication ==========
    auth_token_secret: str = Field(
        default="change-me",
        description="Shared HS256 secret used to verify access tokens from the auth service"
    )

    # ========== SLA ==========
    sla_resolution_hours: int = Field(
        default=24,
        description="Hours from creation until a ticket breaches its SLA",
        ge=1
    )
    sla_warning_minutes: int = Field(
        default=120,
        description="Minutes before the deadline at which a ticket is flagged as warning",
        ge=0
    )

    # ========== Reporting ==========
    recent_ticket_days: int = Field(
        default=7,
        description="Window in days for the recent tickets counter",
        ge=1
    )

    # ========== Listing ==========
    default_page_size: int = Field(default=50, description="Default page size for listings", ge=1)
    max_page_size: int = Field(default=200, description="Largest page size a caller may request", ge=1)

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Role(str, Enum):
    """Principal roles."""
    USER = "user"
    AGENT = "agent"
    ADMIN = "admin"


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketCategory(str, Enum):
    """Ticket categories."""
    TECHNICAL = "technical"
    BILLING = "billing"
    GENERAL = "general"
    FEATURE_REQUEST = "feature-request"
    BUG = "bug"


class SLAStatus(str, Enum):
    """Read-time SLA classification."""
    COMPLETED = "completed"
    BREACHED = "breached"
    WARNING = "warning"
    NORMAL = "normal"


# ========== Derived groupings ==========

FINISHED_STATUSES = (TicketStatus.RESOLVED, TicketStatus.CLOSED)

TITLE_MAX_LENGTH = 100
