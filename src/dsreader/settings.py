"""Configuration helpers for dsreader."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_BASE_URL = "http://localhost:8080"


class Settings(BaseModel):
    """Runtime configuration loaded from env vars with sensible defaults."""

    base_url: str = DEFAULT_BASE_URL
    log_level: str = "INFO"
    timeout_seconds: float = Field(default=30.0, gt=0)
    page_size: int = Field(default=100, ge=0)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def rest_url(self) -> str:
        return f"{self.base_url}/rest"

    @classmethod
    def load(cls) -> "Settings":
        load_dotenv()
        return cls(
            base_url=os.environ.get("DSREADER_BASE_URL", DEFAULT_BASE_URL),
            log_level=os.environ.get("DSREADER_LOG_LEVEL", "INFO"),
            timeout_seconds=float(os.environ.get("DSREADER_TIMEOUT", "30")),
            page_size=int(os.environ.get("DSREADER_PAGE_SIZE", "100")),
        )


def get_settings() -> Settings:
    """Convenience accessor for lazy modules."""
    return Settings.load()
