"""Centralised settings for the WebHarvest backend.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _csv_env(name: str) -> list[str]:
    """Split a comma-separated env var into a list of non-empty entries."""
    raw = os.environ.get(name, "")
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("SCRAPER_WORKSPACE", Path.home() / ".webharvest")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "webharvest.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    # ------------------------------------------------------------------
    # Scraper
    # ------------------------------------------------------------------
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "SCRAPER_USER_AGENT",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/122.0.0.0 Safari/537.36",
        )
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    render_timeout: float = field(
        default_factory=lambda: float(os.environ.get("RENDER_TIMEOUT", "30.0"))
    )
    scroll_step: int = field(
        default_factory=lambda: int(os.environ.get("SCROLL_STEP", "100"))
    )
    scroll_max_ticks: int = field(
        default_factory=lambda: int(os.environ.get("SCROLL_MAX_TICKS", "200"))
    )
    scroll_budget: float = field(
        default_factory=lambda: float(os.environ.get("SCROLL_BUDGET", "15.0"))
    )

    # ------------------------------------------------------------------
    # Caching / sessions (seconds)
    # ------------------------------------------------------------------
    cache_capacity: int = field(
        default_factory=lambda: int(os.environ.get("CACHE_CAPACITY", "100"))
    )
    cache_ttl: float = field(
        default_factory=lambda: float(os.environ.get("CACHE_TTL", "3600"))
    )
    process_cache_ttl: float = field(
        default_factory=lambda: float(os.environ.get("PROCESS_CACHE_TTL", "86400"))
    )
    session_ttl: float = field(
        default_factory=lambda: float(os.environ.get("SESSION_TTL", str(7 * 24 * 3600)))
    )
    session_capacity: int = field(
        default_factory=lambda: int(os.environ.get("SESSION_CAPACITY", "10000"))
    )

    # ------------------------------------------------------------------
    # URL policy
    # ------------------------------------------------------------------
    allowed_domains: list[str] = field(default_factory=lambda: _csv_env("ALLOWED_DOMAINS"))
    blocked_domains: list[str] = field(default_factory=lambda: _csv_env("BLOCKED_DOMAINS"))

    # ------------------------------------------------------------------
    # Rate limits (requests per window, window in seconds)
    # ------------------------------------------------------------------
    rate_limit_window: float = field(
        default_factory=lambda: float(os.environ.get("RATE_LIMIT_WINDOW", "60"))
    )
    scrape_rate_limit: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPE_RATE_LIMIT", "10"))
    )
    process_rate_limit: int = field(
        default_factory=lambda: int(os.environ.get("PROCESS_RATE_LIMIT", "5"))
    )
    history_read_rate_limit: int = field(
        default_factory=lambda: int(os.environ.get("HISTORY_READ_RATE_LIMIT", "20"))
    )
    write_rate_limit: int = field(
        default_factory=lambda: int(os.environ.get("WRITE_RATE_LIMIT", "10"))
    )
    auth_rate_limit: int = field(
        default_factory=lambda: int(os.environ.get("AUTH_RATE_LIMIT", "10"))
    )

    # ------------------------------------------------------------------
    # LLM post-processing (Groq, OpenAI-compatible API)
    # ------------------------------------------------------------------
    groq_api_key: str = field(
        default_factory=lambda: os.environ.get("GROQ_API_KEY", "")
    )
    groq_model: str = field(
        default_factory=lambda: os.environ.get("GROQ_MODEL", "llama-3.3-70b-versatile")
    )
    groq_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "GROQ_BASE_URL", "https://api.groq.com/openai/v1"
        )
    )
    llm_timeout: float = field(
        default_factory=lambda: float(os.environ.get("LLM_TIMEOUT", "60.0"))
    )
    llm_max_retries: int = field(
        default_factory=lambda: int(os.environ.get("LLM_MAX_RETRIES", "3"))
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from backend.config import settings
settings = Settings()
