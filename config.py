"""
Application configuration.

Non-sensitive defaults live here; the AI service key and deployment paths
come from environment variables (optionally loaded from a .env file).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_AI_API_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_AI_MODEL = "google/gemini-2.5-flash"
DEFAULT_RESUME_TEXT_LIMIT = 10_000
DEFAULT_MAX_APPLICATION_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class Settings:
    """Container for application configuration."""

    base_dir: Path
    database_url: str
    ai_api_key: Optional[str]
    ai_api_url: str
    ai_model: str
    ai_timeout: Optional[float]
    resume_text_limit: int
    max_application_bytes: int
    log_level: str

    @property
    def resume_dir(self) -> Path:
        return self.base_dir / "resumes"


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


def load_settings() -> Settings:
    """Build settings from the current environment."""
    base_dir = Path(os.getenv("BASE_DIR", "data"))
    database_url = os.getenv("DATABASE_URL") or f"sqlite:///{base_dir / 'app.db'}"
    return Settings(
        base_dir=base_dir,
        database_url=database_url,
        ai_api_key=os.getenv("AI_API_KEY") or None,
        ai_api_url=os.getenv("AI_API_URL", DEFAULT_AI_API_URL),
        ai_model=os.getenv("AI_MODEL", DEFAULT_AI_MODEL),
        ai_timeout=_optional_float(os.getenv("AI_TIMEOUT")),
        resume_text_limit=int(os.getenv("RESUME_TEXT_LIMIT", DEFAULT_RESUME_TEXT_LIMIT)),
        max_application_bytes=int(os.getenv("MAX_APPLICATION_BYTES", DEFAULT_MAX_APPLICATION_BYTES)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
