from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Runtime configuration for the note cleaner.

    Values are loaded from environment variables and `.env`.

    Notes:
    - User-facing cleanup options are NOT stored here; they live in the YAML
      file at CLEAN_OPTIONS_PATH so they can be changed at runtime.
    - Keep the options file OUTSIDE the vault so it never shows up as a note.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Vault
    CLEAN_VAULT_PATH: Path = Field(default=Path("."))
    CLEAN_OPTIONS_PATH: Path = Field(default=Path("data/clean_notes.yaml"))

    # API
    CLEAN_API_HOST: str = Field(default="127.0.0.1")
    CLEAN_API_PORT: int = Field(default=8124)
    CLEAN_API_CORS_ALLOW_ALL: bool = Field(default=True)

    # Periodic trigger (fires once when the API is ready, then every N hours)
    CLEAN_SCHEDULE_ENABLED: bool = Field(default=True)
    CLEAN_INTERVAL_HOURS: float = Field(default=24.0, gt=0)

    # Logging (diagnostic; stored outside vault)
    CLEAN_LOG_DIR: Path = Field(default=Path("_logs"))
    CLEAN_LOG_LEVEL: str = Field(default="INFO")
    # Timed rotation retention count (days). Old log files are auto-deleted.
    CLEAN_LOG_BACKUP_COUNT: int = Field(default=14)


def load_settings() -> Settings:
    s = Settings()
    # Ensure parent dir exists
    s.CLEAN_OPTIONS_PATH.parent.mkdir(parents=True, exist_ok=True)
    return s


class CleanupConfig(BaseModel):
    """Per-run transform configuration. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    threshold_days: int = Field(default=7, ge=0)
    strip_buttons: bool = True
    strip_task_queries: bool = True
    prune_empty_sections: bool = True


class CleanupOptions(BaseModel):
    """User options as persisted on disk.

    An empty `folder` means "use the host's daily-notes folder".
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    folder: str = ""
    days_after: int = Field(default=7, ge=0)
    remove_buttons: bool = True
    remove_task_queries: bool = True
    remove_empty_sections: bool = True

    def to_config(self) -> CleanupConfig:
        return CleanupConfig(
            threshold_days=self.days_after,
            strip_buttons=self.remove_buttons,
            strip_task_queries=self.remove_task_queries,
            prune_empty_sections=self.remove_empty_sections,
        )


class OptionsStore:
    """YAML-backed persistence for `CleanupOptions`.

    Stored values are merged over the defaults on load, and every change is
    written back immediately.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_raw(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        raw = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Options file must contain a mapping: {self.path}")
        return raw

    def load(self) -> CleanupOptions:
        return CleanupOptions.model_validate({**CleanupOptions().model_dump(), **self._read_raw()})

    def save(self, options: CleanupOptions) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(options.model_dump(), sort_keys=False),
            encoding="utf-8",
        )
        logger.debug("Saved cleanup options to %s", self.path)

    def update(self, **changes: Any) -> CleanupOptions:
        """Apply changes, validate, and persist. Nothing is written on error."""
        current = self.load()
        updated = CleanupOptions.model_validate({**current.model_dump(), **changes})
        if updated != current or not self.path.exists():
            self.save(updated)
        return updated
