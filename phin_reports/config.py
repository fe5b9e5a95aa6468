"""
Runtime configuration, read once from the environment at startup.

A `.env` file next to the process is honoured (python-dotenv), so local runs
only need:

    SQUARE_ACCESS_TOKEN=...
    SQUARE_ENVIRONMENT=production
    STORE_TIMEZONE=America/Los_Angeles
"""

import os
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from phin_reports.errors import InvalidConfiguration

SQUARE_PRODUCTION_URL = "https://connect.squareup.com/v2"
SQUARE_SANDBOX_URL = "https://connect.squareupsandbox.com/v2"
DEFAULT_API_VERSION = "2025-05-21"
DEFAULT_TIMEZONE = "America/Los_Angeles"
DEFAULT_FRONTEND_ORIGIN = "http://localhost:5173"
DEFAULT_INSIGHTS_MODEL = "claude-3-5-haiku-latest"


def load_zone(name):
    """Return the ZoneInfo for an IANA name, or raise InvalidConfiguration."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
        raise InvalidConfiguration(f"Invalid timezone: {name!r}") from e


@dataclass(frozen=True)
class Config:
    square_access_token: str
    square_environment: str = "sandbox"
    square_api_version: str = DEFAULT_API_VERSION
    store_timezone: str = DEFAULT_TIMEZONE
    basic_auth_passcode: Optional[str] = None
    frontend_origin: str = DEFAULT_FRONTEND_ORIGIN
    anthropic_api_key: Optional[str] = None
    insights_model: str = DEFAULT_INSIGHTS_MODEL
    request_timeout: float = 60.0
    max_retries: int = 2
    retry_backoff: float = 0.5
    max_fetch_workers: int = 4

    def __post_init__(self):
        if not self.square_access_token:
            raise InvalidConfiguration("Missing SQUARE_ACCESS_TOKEN env var")
        load_zone(self.store_timezone)

    @property
    def is_production(self):
        return self.square_environment == "production"

    @property
    def square_base_url(self):
        return SQUARE_PRODUCTION_URL if self.is_production else SQUARE_SANDBOX_URL

    @property
    def tz(self):
        return load_zone(self.store_timezone)

    @property
    def masked_token(self):
        return self.square_access_token[:8] + "..."

    @classmethod
    def from_env(cls):
        """Build the config from environment variables (after loading .env)."""
        load_dotenv()
        return cls(
            square_access_token=os.getenv("SQUARE_ACCESS_TOKEN", ""),
            square_environment=os.getenv("SQUARE_ENVIRONMENT", "sandbox").strip().lower(),
            square_api_version=os.getenv("SQUARE_API_VERSION", DEFAULT_API_VERSION),
            store_timezone=os.getenv("STORE_TIMEZONE", DEFAULT_TIMEZONE),
            basic_auth_passcode=os.getenv("BASIC_AUTH_PASSCODE") or None,
            frontend_origin=os.getenv("FRONTEND_ORIGIN", DEFAULT_FRONTEND_ORIGIN),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            insights_model=os.getenv("INSIGHTS_MODEL", DEFAULT_INSIGHTS_MODEL),
            request_timeout=float(os.getenv("SQUARE_TIMEOUT", "60")),
            max_retries=int(os.getenv("SQUARE_MAX_RETRIES", "2")),
            max_fetch_workers=int(os.getenv("MAX_FETCH_WORKERS", "4")),
        )
