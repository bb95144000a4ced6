"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All settings overridable by environment variables (EVENTDESK_ prefix) or .env
    - get_settings() is cached (lru_cache): single instance per process
    - bootstrap admin is created only when the users file yields no users
"""

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="EVENTDESK_", case_sensitive=False,
    )

    # Storage
    data_dir: Path = Path("data")
    users_file: str = "users.txt"
    events_file: str = "events.txt"
    inventory_file: str = "inventory.txt"
    attendees_file: str = "attendees.txt"

    # First-run account
    bootstrap_admin_username: str = "admin"
    bootstrap_admin_password: str = "admin123"

    @field_validator("bootstrap_admin_password")
    @classmethod
    def check_bootstrap_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("bootstrap admin password must be at least 6 characters")
        return v

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
