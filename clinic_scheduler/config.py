# clinic_scheduler/config.py

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    database_url: str = "sqlite:///./clinic.db"

    # Fallbacks used when the settings row has not been saved yet
    default_slot_length: int = 30
    default_buffer_time: int = 5
    block_public_holidays: bool = False

    search_horizon_days: int = 30
    sqlite_busy_timeout: float = 15.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CLINIC_",
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    return Settings()
