"""
Inopay Configuration

Central settings loaded from environment variables.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    # --- Versioning ---
    ENGINE_VERSION: str = "3.0.0"
    API_VERSION: str = "1"

    # --- LLM Provider (assisted cleaning only) ---
    LLM_PROVIDER: str = os.getenv("INOPAY_LLM_PROVIDER", "gemini")
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-pro")
    GEMINI_FALLBACK_MODEL: str = os.getenv("GEMINI_FALLBACK_MODEL", "gemini-2.5-flash")
    LLM_MAX_RETRIES: int = int(os.getenv("INOPAY_LLM_MAX_RETRIES", "2"))
    LLM_FAILURE_THRESHOLD: int = int(os.getenv("INOPAY_LLM_FAILURE_THRESHOLD", "3"))
    LLM_RECOVERY_SECONDS: int = int(os.getenv("INOPAY_LLM_RECOVERY_SECONDS", "60"))

    # --- Input Limits ---
    MAX_FILES: int = int(os.getenv("INOPAY_MAX_FILES", "500"))
    MAX_FILE_SIZE_CHARS: int = int(os.getenv("INOPAY_MAX_FILE_SIZE_CHARS", "50000"))
    MAX_BODY_MB: int = int(os.getenv("INOPAY_MAX_BODY_MB", "32"))

    # --- Cleaning Cache ---
    CACHE_TTL_SECONDS: int = int(os.getenv("INOPAY_CACHE_TTL_SECONDS", "86400"))
    CACHE_MAX_ENTRIES: int = int(os.getenv("INOPAY_CACHE_MAX_ENTRIES", "5000"))

    # --- Pipeline ---
    MIN_SCORE: int = int(os.getenv("INOPAY_MIN_SCORE", "95"))
    WORKERS: int = int(os.getenv("INOPAY_WORKERS", "0"))
    VERIFY: bool = _env_bool("INOPAY_VERIFY", "true")

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("INOPAY_LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("INOPAY_LOG_FORMAT", "json")

    # --- Server ---
    HOST: str = os.getenv("INOPAY_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("INOPAY_PORT", "8000"))

    # --- CORS ---
    CORS_ORIGINS: str = os.getenv("INOPAY_CORS_ORIGINS", "*")


settings = Settings()
