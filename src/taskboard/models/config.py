"""Configuration models."""

from datetime import datetime
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _start_of_current_year() -> datetime:
    return datetime.now().replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)


class TaskboardSettings(BaseSettings):
    """Settings for the task store and its scheduling indices.

    Settings can be loaded from environment variables or .env file.
    All settings are prefixed with TASKBOARD_ (e.g., TASKBOARD_SLOT_MINUTES).
    """

    model_config = SettingsConfigDict(
        env_prefix="TASKBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Planning horizon of the time-slot conflict index
    base_time: datetime = Field(
        default_factory=_start_of_current_year,
        description="Start of the planning horizon (defaults to Jan 1 of this year)",
    )

    slot_minutes: int = Field(
        default=15,
        gt=0,
        description="Width of one time slot in minutes",
    )

    horizon_days: int = Field(
        default=365,
        gt=0,
        description="Length of the planning horizon in days",
    )

    # Persistence
    data_file: Path = Field(
        default=Path("./.taskboard/tasks.csv"),
        description="CSV file used by the file-backed store and the CLI",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @property
    def total_slots(self) -> int:
        """Number of slots covering the whole horizon."""
        return self.horizon_days * 24 * 60 // self.slot_minutes

    def ensure_data_dir(self) -> None:
        """Ensure the data file's directory exists."""
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
