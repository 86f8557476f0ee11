"""
Runtime configuration.

Values come from ``STOCKLEDGER_*`` environment variables or a local ``.env``.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stockledger.core.constants import BACKUP_REMIND_DAYS, DEFAULT_IMPORT_TIME, DEFAULT_STORAGE_KEY


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STOCKLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Stock Ledger API"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    # Primary ledger documents live here, one JSON file per key
    data_dir: Path = Path("data/ledger")
    # Optional mirror used to recover when the primary document is missing
    backup_dir: Path | None = None
    storage_key: str = DEFAULT_STORAGE_KEY

    default_import_time: str = DEFAULT_IMPORT_TIME
    backup_remind_days: int = Field(default=BACKUP_REMIND_DAYS, ge=0)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    return Settings()
