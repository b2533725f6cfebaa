"""
Central configuration for horizons.
Uses Pydantic BaseSettings for type-safe configuration from environment variables.
"""

import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to this file (horizons/config.py → project root)
_ENV_FILE = Path(__file__).parent.parent / ".env"


def _load_env_file() -> None:
    """
    Load .env into os.environ, but only for keys that are currently unset
    or set to empty strings. This keeps explicit non-empty shell values
    while letting .env fill blanks (e.g. ANTHROPIC_API_KEY='').
    """
    if not _ENV_FILE.exists():
        return
    from dotenv import dotenv_values
    for key, value in dotenv_values(_ENV_FILE).items():
        if value and not os.environ.get(key):
            os.environ[key] = value


# Run at import time so Settings() sees the correct values
_load_env_file()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Anthropic. An empty key means the assistant is unavailable, not a crash.
    anthropic_api_key: str = ""
    model_complex: str = "claude-sonnet-4-6"
    anthropic_max_tokens: int = 4096

    # Environment
    data_dir: str = "./data"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Google Calendar. The OAuth token lives in data_dir.
    calendar_timezone: str = "UTC"

    # ── Claude client ───────────────────────────────────────────────────────────
    claude_max_retries: int = 3
    claude_retry_base_delay: float = 2.0

    # ── Turn loop ───────────────────────────────────────────────────────────────
    max_tool_iterations: int = 10
    model_timeout: float = 120.0  # 0 disables the per-call timeout

    # ── Document extraction ─────────────────────────────────────────────────────
    extraction_max_attempts: int = 3
    extraction_attempt_timeout: float = 180.0

    @field_validator("max_tool_iterations", "extraction_max_attempts", "claude_max_retries")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def google_token_file(self) -> str:
        return os.path.join(self.data_dir, "google_token.json")

    @property
    def db_path(self) -> str:
        return os.path.join(self.data_dir, "horizons.db")

    @property
    def logs_dir(self) -> str:
        return os.path.join(self.data_dir, "logs")


def get_settings() -> "Settings":
    """Return the application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None


_settings: Settings | None = None


class _SettingsProxy:
    """Lazy proxy so `from horizons.config import settings` works without eager init."""
    def __getattr__(self, name):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
