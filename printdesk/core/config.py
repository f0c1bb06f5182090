"""Environment-driven configuration for the PrintDesk service.

Every tunable lives on ``AppSettings`` so the rest of the code never reads
``os.environ`` directly. Values come from the process environment first and
then from ``.env`` / ``.env.local`` files in the working directory.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "PrintDesk"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent.parent)
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent.parent / "data")
    TZ: str = "America/Bogota"
    LOG_LEVEL: str = "INFO"

    DB_URL: str = Field(default="", validation_alias=AliasChoices("DB_URL", "DATABASE_URL"))

    # Tokens are minted by the external identity provider; we only verify them.
    JWT_SECRET: str = "change-me"
    JWT_AUDIENCE: str = "printdesk-clients"
    JWT_ISSUER: str = "printdesk"
    JWT_ACCESS_TTL_MIN: int = 60
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)

    DEFAULT_BRAND: str = "RICOH"

    EXPORT_COMPLETED_MARKER: str = "SI"
    EXPORT_PENDING_MARKER: str = "pending"
    EXPORT_ID_LENGTH: int = Field(default=8, ge=5, le=8)

    # When false only tickets and equipment changes trigger a projection reload.
    REALTIME_WATCH_ALL: bool = True

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'printdesk.db'}"

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @field_validator("DEFAULT_BRAND")
    @classmethod
    def brand_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("DEFAULT_BRAND cannot be blank")
        return value


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


settings = get_settings()
