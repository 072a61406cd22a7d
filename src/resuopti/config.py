from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "resuopti"
    app_env: str = "development"
    timezone: str = "UTC"
    log_level: str = "INFO"

    secret_key: str = "resuopti-default-secret-key-change-in-production"
    token_algorithm: str = "HS256"
    token_ttl_min: int = 1440
    bcrypt_rounds: int = 10

    database_url: str = "sqlite:///./data/resuopti.db"
    data_dir: Path = Path("./data")
    upload_dir: Path = Path("./data/uploads")
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_upload_extensions: str = ".pdf,.doc,.docx,.txt"

    cache_max_entries: int = 1000
    cache_ttl_sec: float = 300
    user_cache_ttl_sec: float = 600
    metadata_cache_ttl_sec: float = 180
    stats_cache_ttl_sec: float = 30

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_rounds(cls, value: int) -> int:
        if value < 4 or value > 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        return value

    @property
    def upload_extension_list(self) -> list[str]:
        return [
            ext.strip().lower()
            for ext in self.allowed_upload_extensions.split(",")
            if ext.strip()
        ]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
