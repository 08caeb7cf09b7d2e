"""Configuration management for the shift pay engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    default_timezone: str
    tax_cache_ttl_seconds: int
    debug: bool

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv(
                "DATABASE_URL",
                "sqlite+aiosqlite:///./shiftpay.db",
            ),
            default_timezone=os.getenv("DEFAULT_TIMEZONE", "Australia/Sydney"),
            tax_cache_ttl_seconds=int(os.getenv("TAX_CACHE_TTL_SECONDS", "3600")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
