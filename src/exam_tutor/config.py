"""Application settings loaded from environment variables."""
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PATH = str(Path.home() / ".exam_tutor" / "tutor.db")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EXAM_TUTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    db_path: str = Field(default=DEFAULT_DB_PATH, description="SQLite database file")
    log_level: str = Field(default="WARNING", description="Minimum level for the stderr sink")
    log_file: str | None = Field(default=None, description="Optional rotating log file")
    seed_on_start: bool = Field(default=True, description="Load bundled content on first run")

    # Accounts
    require_invite: bool = Field(default=False, description="Registration needs a single-use invite code")
    admin_emails: list[str] = Field(default_factory=list, description="Emails granted admin on registration")
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Grading
    numeric_tolerance: float = Field(default=0.01, gt=0)


@lru_cache
def get_settings() -> Settings:
    return Settings()
