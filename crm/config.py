"""
crm/config.py — Central configuration loaded from environment variables.
All modules import settings from here; never read os.environ directly elsewhere.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────────────────────────
    database_url: str = Field(..., description="SQLAlchemy connection URI")
    sql_echo: bool = Field(
        default=False,
        description="If True, log every SQL statement (useful for debugging)",
    )

    # ── Lead qualification ────────────────────────────────────────────────────
    qualified_score_threshold: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Minimum lead score (0–100) for a new lead to start as Qualified",
    )
    nurturing_score_threshold: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Minimum lead score (0–100) for a new lead to start as Nurturing",
    )

    # ── Conversion ────────────────────────────────────────────────────────────
    conversion_probability: int = Field(
        default=25,
        ge=0,
        le=100,
        description="Win probability assigned to a deal created from a lead",
    )

    # ── Notifications ─────────────────────────────────────────────────────────
    default_notification_user_id: int = Field(
        default=1,
        description="Recipient of notifications for records nobody is assigned to",
    )

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level for entry points")


# Singleton — import this everywhere
settings = Settings()
