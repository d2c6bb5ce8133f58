"""
Application settings.

Values come from the environment; a `.env` file in the project root is loaded
first so local development does not need exported variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

# Look for .env next to this file (project root)
_ENV_PATH = Path(__file__).parent / ".env"


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: Optional[str]
    supabase_key: Optional[str]

    # SMTP delivery for purchase confirmations
    email_host: str
    email_port: int
    email_user: Optional[str]
    email_password: Optional[str]
    email_from: Optional[str]

    app_url: str
    log_level: str
    cors_origins: Tuple[str, ...]

    @property
    def email_configured(self) -> bool:
        return bool(self.email_user and self.email_password)


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process. Call `get_settings.cache_clear()` to reload."""

    load_dotenv(dotenv_path=_ENV_PATH)

    email_user = os.getenv("EMAIL_USER")
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        email_host=os.getenv("EMAIL_HOST", "smtp.gmail.com"),
        email_port=int(os.getenv("EMAIL_PORT", "587")),
        email_user=email_user,
        email_password=os.getenv("EMAIL_PASSWORD"),
        email_from=os.getenv("EMAIL_FROM", email_user),
        app_url=os.getenv("APP_URL", "http://localhost:8000"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")),
    )


__all__ = ["Settings", "get_settings"]
