"""
Harvest Intake - Configuration

Single source of truth for runtime configuration.

ENVIRONMENT VARIABLES
=====================
Environment control:
  ENVIRONMENT                 - dev | staging | prod (default: dev)
  LOG_LEVEL                   - DEBUG | INFO | WARNING | ERROR (default: INFO)
  PORT                        - HTTP port for the uvicorn launcher (default: 8080)

Relational sink (optional):
  DATABASE_URL                - Postgres connection string
  REGISTROS_TABLE             - Target table (default: registros_flores)

Spreadsheet sink (optional):
  GOOGLE_SHEETS_CREDENTIALS   - Service account JSON (whole document in one var)
  SPREADSHEET_ID              - Google Sheets document key
  SHEET_NAME                  - Worksheet title (default: Ingreso P1)

Access control:
  AUTHORIZED_IPS              - Comma/space separated allow-list of client IPs
  ADMIN_TOKEN                 - Shared secret for /api/admin/*; unset disables them

Usage:
    from harvest_intake.config import get_settings

    settings = get_settings()
    print(settings.authorized_ips)
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

Environment = Literal["dev", "staging", "prod"]

# Field-site addresses allowed to submit registrations
DEFAULT_AUTHORIZED_IPS = (
    "190.60.35.50",
    "186.102.115.133",
    "186.102.47.124",
    "186.102.51.69",
    "190.61.45.230",
    "192.168.10.23",
    "192.168.10.1",
    "186.102.62.30",
    "186.102.25.201",
)

DEFAULT_SPREADSHEET_ID = "1QLMdDyv78yY52QRj7poCcAnj9Rh9jVL-Y5EUF81xnLE"

_ENVIRONMENT_ALIASES = {"production": "prod", "development": "dev"}

# values that must reach the app untouched (JSON with its own quoting)
_RAW_KEYS = {"GOOGLE_SHEETS_CREDENTIALS"}


class Settings(BaseSettings):
    """
    Application settings.

    Loads from environment variables with an optional env file
    (ENV_FILE, default .env). Unknown keys are ignored.
    """

    model_config = SettingsConfigDict(
        env_file=os.environ.get("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    ENVIRONMENT: Environment = "dev"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    PORT: int = Field(default=8080, ge=1, le=65535)

    # relational sink
    DATABASE_URL: str = Field(
        default="",
        description="Postgres connection string; empty disables the relational sink",
    )
    REGISTROS_TABLE: str = "registros_flores"

    # spreadsheet sink
    GOOGLE_SHEETS_CREDENTIALS: str = Field(
        default="",
        description="Service account JSON; empty disables the spreadsheet sink",
    )
    SPREADSHEET_ID: str = DEFAULT_SPREADSHEET_ID
    SHEET_NAME: str = "Ingreso P1"

    # access control
    AUTHORIZED_IPS: str = Field(
        default=",".join(DEFAULT_AUTHORIZED_IPS),
        description="Comma or space separated client IP allow-list",
    )
    ADMIN_TOKEN: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_values(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Trim whitespace and stray quotes, canonicalize ENVIRONMENT and LOG_LEVEL."""
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if isinstance(value, str) and key.upper() not in _RAW_KEYS:
                value = value.strip().strip("\"'").strip()
            cleaned[key] = value

        for key, value in cleaned.items():
            if not isinstance(value, str):
                continue
            if key.upper() == "ENVIRONMENT":
                env = value.lower()
                if env == "production":
                    logger.warning("ENVIRONMENT='production' is deprecated; use 'prod'.")
                cleaned[key] = _ENVIRONMENT_ALIASES.get(env, env)
            elif key.upper() == "LOG_LEVEL":
                cleaned[key] = value.upper()

        return cleaned

    @property
    def environment(self) -> Environment:
        return self.ENVIRONMENT

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "prod"

    @property
    def relational_enabled(self) -> bool:
        return bool(self.DATABASE_URL)

    @property
    def sheets_enabled(self) -> bool:
        return bool(self.GOOGLE_SHEETS_CREDENTIALS.strip())

    @property
    def authorized_ips(self) -> frozenset[str]:
        """AUTHORIZED_IPS as a set; commas and whitespace both separate."""
        return frozenset(self.AUTHORIZED_IPS.replace(",", " ").split())

    def google_credentials(self) -> dict[str, Any]:
        """
        Decode the service account JSON.

        Private keys pasted into a single-line env var usually carry literal
        "\\n" sequences; those are turned back into newlines.

        Raises:
            ValueError: If the variable is empty or not valid JSON
        """
        raw = self.GOOGLE_SHEETS_CREDENTIALS.strip()
        if not raw:
            raise ValueError("GOOGLE_SHEETS_CREDENTIALS is not set")
        creds = json.loads(raw)
        if not isinstance(creds, dict):
            raise ValueError("GOOGLE_SHEETS_CREDENTIALS must be a JSON object")
        key = creds.get("private_key")
        if isinstance(key, str):
            creds["private_key"] = key.replace("\\n", "\n")
        return creds


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first call."""
    return Settings()


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads them."""
    get_settings.cache_clear()


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("urllib3", "google.auth", "psycopg.pool")


def configure_logging(settings: Settings | None = None) -> None:
    """Set the root level from LOG_LEVEL, installing a handler if none exists."""
    settings = settings or get_settings()
    level = logging.getLevelName(settings.LOG_LEVEL)

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
