"""
Application Settings

This module provides a centralized settings class that loads environment
variables from the .env file and makes them available throughout the application.
"""

import os
from pathlib import Path
from typing import List
from dotenv import load_dotenv

# Load the .env file from the project root
# The project root is one level up from the backend folder
PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(PROJECT_ROOT / ".env")


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """
    Centralized settings class that provides access to all environment variables.
    Usage:
        from backend.settings import settings
        api_key = settings.GEMINI_API_KEY
    """

    # Google Gemini (document extraction)
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    EXTRACTION_TIMEOUT_SECONDS: float = float(os.getenv("EXTRACTION_TIMEOUT_SECONDS", "120"))

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Draft autosave quiet period
    DRAFT_AUTOSAVE_DELAY_SECONDS: float = float(os.getenv("DRAFT_AUTOSAVE_DELAY_SECONDS", "2.0"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_JSON: bool = os.getenv("LOG_JSON", "false").lower() == "true"

    # Frontend origins allowed by CORS
    CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "http://localhost:3000"))

    # Debug mode
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"


    @classmethod
    def validate(cls) -> None:
        """Validate the environment. A missing DATABASE_URL is allowed (no persistence)."""
        errors = []

        if cls.EXTRACTION_TIMEOUT_SECONDS <= 0:
            errors.append("EXTRACTION_TIMEOUT_SECONDS must be positive")
        if cls.DRAFT_AUTOSAVE_DELAY_SECONDS < 0:
            errors.append("DRAFT_AUTOSAVE_DELAY_SECONDS must not be negative")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


# Create a singleton instance for easy import
settings = Settings()
