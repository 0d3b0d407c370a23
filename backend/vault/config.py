"""
Application Configuration — Environment & Settings
Centralizes all config from .env with Pydantic Settings for validation.
"""
from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings

# Resolve paths relative to backend/ directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Core ---
    APP_NAME: str = "Secure Document Vault API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # --- Database ---
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'data' / 'vault.db'}"

    # --- File Storage ---
    UPLOAD_DIR: str = str(BASE_DIR / "uploads" / "document-locker")
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    ALLOWED_MIME_TYPES: list[str] = [
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/gif",
        "image/bmp",
        "image/tiff",
        "application/pdf",
    ]

    # --- AI / OCR ---
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash-latest"
    OCR_ENABLED: bool = True
    OCR_MAX_DIMENSION: int = 2000
    EXTRACTION_TIMEOUT_SECONDS: float = 30.0

    # --- Locker Security ---
    PIN_HASH_ROUNDS: int = 12
    DEFAULT_MAX_FAILED_ATTEMPTS: int = 3
    DEFAULT_LOCKOUT_MINUTES: int = 15
    DEFAULT_SESSION_TIMEOUT_MINUTES: int = 30
    RESET_ATTEMPTS_ON_LOCKOUT_EXPIRY: bool = False
    CORS_ORIGINS: list[str] = ["*"]

    # --- Validation ---
    EXPIRY_WARNING_DAYS: int = 30

    # --- Logging ---
    LOG_DIR: str = str(BASE_DIR / "logs")

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
