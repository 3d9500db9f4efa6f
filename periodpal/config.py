import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

DATA_DIR = Path.home() / ".periodpal"


class Settings(BaseSettings):
    database_url: str = Field(f"sqlite:///{DATA_DIR / 'periodpal.db'}", alias="PERIODPAL_DATABASE_URL")
    database_echo: bool = Field(False, alias="PERIODPAL_DATABASE_ECHO")
    persistence_mode: Literal["database", "file", "memory", "hybrid"] = Field(
        "database",
        alias="PERIODPAL_PERSISTENCE_MODE",
    )
    store_path: Path = Field(DATA_DIR / "profile.json", alias="PERIODPAL_STORE_PATH")
    cache_path: Optional[Path] = Field(DATA_DIR / "local_storage.json", alias="PERIODPAL_CACHE_PATH")
    cache_key: str = Field("periodpal-user-profile", alias="PERIODPAL_CACHE_KEY")
    default_cycle_length: int = Field(28, ge=1, alias="PERIODPAL_DEFAULT_CYCLE_LENGTH")
    default_period_length: int = Field(5, ge=1, alias="PERIODPAL_DEFAULT_PERIOD_LENGTH")
    default_luteal_phase_length: int = Field(14, ge=1, alias="PERIODPAL_DEFAULT_LUTEAL_PHASE_LENGTH")
    cycle_length_policy: Literal["static", "history"] = Field("history", alias="PERIODPAL_CYCLE_LENGTH_POLICY")
    rolling_average_cycles: int = Field(6, ge=1, alias="PERIODPAL_ROLLING_AVERAGE_CYCLES")
    reminder_lead_days: int = Field(3, ge=0, alias="PERIODPAL_REMINDER_LEAD_DAYS")
    seed_mock_profile: bool = Field(False, alias="PERIODPAL_SEED_MOCK_PROFILE")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        populate_by_name = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid PeriodPal configuration: {exc}") from exc
