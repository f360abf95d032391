"""
Runtime configuration helpers for the Business Hub feedback backend.

Loads DATABASE_URL and the notification/email settings from the process
environment, falling back to the .env file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import EmailStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_NOTIFICATION_CAP

BASE_DIR = Path(__file__).resolve().parents[1]
ENV_PATH = BASE_DIR / ".env"

# Real environment variables win over .env values.
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    # Required; comes from the environment or .env
    database_url: str = Field(..., alias="DATABASE_URL")

    # Service metadata
    app_name: str = Field(default="Business Hub API", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")

    # Outbound email
    email_host: str | None = Field(default=None, alias="EMAIL_HOST")
    email_port: int = Field(default=587, alias="EMAIL_PORT")
    email_username: str | None = Field(default=None, alias="EMAIL_USERNAME")
    email_from_address: EmailStr | None = Field(default=None, alias="EMAIL_FROM_ADDRESS")
    email_use_tls: bool = Field(default=True, alias="EMAIL_USE_TLS")
    email_brand_name: str = Field(default="Business Hub", alias="EMAIL_BRAND_NAME")
    mailgun_api_key: str | None = Field(default=None, alias="MAILGUN_API_KEY")
    mailgun_domain: str | None = Field(default=None, alias="MAILGUN_DOMAIN")

    # Notifications / feedback
    notification_backend: Literal["sql", "memory"] = Field(default="sql", alias="NOTIFICATION_BACKEND")
    notification_retention_cap: int = Field(default=DEFAULT_NOTIFICATION_CAP, ge=1, alias="NOTIFICATION_RETENTION_CAP")
    notification_sweep_interval_minutes: int = Field(default=60, ge=1, alias="NOTIFICATION_SWEEP_INTERVAL_MINUTES")
    feedback_staff_roles: str = Field(default="admin,office", alias="FEEDBACK_STAFF_ROLES")
    disable_cleanup: bool = Field(default=False, alias="DISABLE_CLEANUP")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def staff_role_names(self) -> list[str]:
        """Roles that receive fan-out notifications for new client feedback."""

        return [role.strip().lower() for role in self.feedback_staff_roles.split(",") if role.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
