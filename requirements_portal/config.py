"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "Student Requirements Portal"
    debug: bool = True

    # ── Remote requirements API ──────────────────────────
    api_base_url: str = "http://localhost:8000/api"
    request_timeout_seconds: float = 15.0  # submit requests ignore this
    public_files_url: str = "http://localhost:8000/files"

    # ── Requirement template ─────────────────────────────
    letter_label: str = "Letter of Application"
    letter_note: str = (
        "Addressed to: Ms. MARY JO B. LIMPN (HRMC) — "
        "Through: Ms. JUDY-AN Q. IM-MOTNA (SA Coordinator)"
    )

    # ── Upload limits ────────────────────────────────────
    letter_max_bytes: int = 5 * 1024 * 1024
    default_max_bytes: int = 25 * 1024 * 1024
    filename_max_length: int = 100

    # ── Local draft storage ──────────────────────────────
    storage_backend: str = "memory"  # "memory" | "local"
    local_storage_path: str = "./storage/drafts.json"
    storage_quota_bytes: Optional[int] = None  # None = unbounded
    guest_key: str = "guest"

    # ── Best-effort remote delete ────────────────────────
    delete_retry_attempts: int = 3
    delete_retry_backoff_seconds: float = 0.5

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
