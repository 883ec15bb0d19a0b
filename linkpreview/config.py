"""Centralised settings for the link preview service.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)

_DEV_ORIGINS = "http://localhost:8080,http://localhost:8081,http://localhost:8082"


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


def _env_log_level(name: str, default: str) -> str:
    """Return a standard level name from the environment; unknown names fall back to *default*."""
    number = logging.getLevelName(os.environ.get(name, default).strip().upper())
    return logging.getLevelName(number) if isinstance(number, int) else default


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Fetcher
    # ------------------------------------------------------------------
    # 1512 KiB is the bound actually enforced (1_548_288 bytes), not 512 KiB.
    max_body_bytes: int = field(
        default_factory=lambda: int(os.environ.get("MAX_BODY_BYTES", str(1512 * 1024)))
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "5.0"))
    )
    max_redirects: int = field(
        default_factory=lambda: int(os.environ.get("MAX_REDIRECTS", "3"))
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get("PREVIEW_USER_AGENT", _CHROME_UA)
    )
    accept_language: str = field(
        default_factory=lambda: os.environ.get("ACCEPT_LANGUAGE", "en-US,en;q=0.9")
    )
    validate_redirects: bool = field(
        default_factory=lambda: _env_flag("VALIDATE_REDIRECTS", "true")
    )

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------
    rate_limit_points: int = field(
        default_factory=lambda: int(os.environ.get("RATE_LIMIT_POINTS", "10"))
    )
    rate_limit_window: float = field(
        default_factory=lambda: float(os.environ.get("RATE_LIMIT_WINDOW", "60.0"))
    )

    # ------------------------------------------------------------------
    # HTTP server
    # ------------------------------------------------------------------
    cors_origins: list[str] = field(
        default_factory=lambda: _env_list("CORS_ORIGINS", _DEV_ORIGINS)
    )
    host: str = field(default_factory=lambda: os.environ.get("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.environ.get("PORT", "3000")))
    log_level: str = field(
        default_factory=lambda: _env_log_level("LOG_LEVEL", "INFO")
    )

    @property
    def rate_limit_message(self) -> str:
        """Error text returned with a 429, e.g. ``Rate limit exceeded (10/min/IP)``."""
        if self.rate_limit_window == 60:
            per = "min"
        else:
            per = f"{self.rate_limit_window:g}s"
        return f"Rate limit exceeded ({self.rate_limit_points}/{per}/IP)"


# Module-level singleton; import this everywhere:
#   from linkpreview.config import settings
settings = Settings()
