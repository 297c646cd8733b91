"""Typed runtime configuration read from the environment (and an optional ``.env``)."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_DATABASE_URL = f"sqlite:///{(DATA_DIR / 'roster_state.db').as_posix()}"


def _check_origin(origin: str) -> str:
    if not origin.startswith(("http://", "https://")):
        raise ValueError(f"'{origin}' is not an http(s) origin")
    return origin.rstrip("/")


class Settings(BaseSettings):
    """
    Attributes:
        roster_database_url: SQLAlchemy URL of the state store (SQLite file by default)
        roster_api_base: Base URL the HTTP gateway talks to
        google_api_key: Gemini key; the daily briefing is disabled when empty
        roster_briefing_model: Gemini model name
        frontend_url: One extra CORS origin
        frontend_urls: Comma-separated extra CORS origins
    """

    roster_database_url: str = DEFAULT_DATABASE_URL
    roster_api_base: str = "http://localhost:4000"
    google_api_key: str = ""
    roster_briefing_model: str = "gemini-1.5-flash"
    frontend_url: str = ""
    frontend_urls: str = ""

    @field_validator("roster_database_url", "roster_briefing_model")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("roster_api_base")
    @classmethod
    def api_base_is_http(cls, v: str) -> str:
        return _check_origin(v.strip())

    @field_validator("frontend_url")
    @classmethod
    def frontend_url_is_origin(cls, v: str) -> str:
        v = v.strip()
        return _check_origin(v) if v else ""

    @field_validator("frontend_urls")
    @classmethod
    def frontend_urls_are_origins(cls, v: str) -> str:
        origins = [_check_origin(item.strip()) for item in v.split(",") if item.strip()]
        return ",".join(origins)

    def extra_origins(self) -> List[str]:
        origins = [self.frontend_url] if self.frontend_url else []
        origins.extend(item for item in self.frontend_urls.split(",") if item)
        return origins

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
