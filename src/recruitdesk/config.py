from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Recruitdesk"
    app_env: str = "development"
    timezone: str = "Asia/Kolkata"
    log_level: str = "INFO"

    api_base_url: str = "http://localhost:5055/api"
    api_timeout_sec: int = 30
    api_token: str = ""

    database_url: str = "sqlite:///./data/recruitdesk.db"
    data_dir: Path = Path("./data")

    default_page_size: int = 10
    page_size_options: str = "10,20,40,60,80,160"
    date_range_granularity: str = "day"

    draft_ttl_min: int = 120
    intake_draft_key: str = "callInfoFormData"
    duplicate_check_cap: int = 3

    notify_history_limit: int = 200

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("date_range_granularity")
    @classmethod
    def validate_granularity(cls, value: str) -> str:
        allowed = {"day", "month", "year"}
        if value not in allowed:
            raise ValueError(f"date_range_granularity must be one of {sorted(allowed)}")
        return value

    @property
    def page_size_list(self) -> list[int]:
        return [int(item.strip()) for item in self.page_size_options.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
