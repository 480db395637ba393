"""
Configuration management for the Stock Watch availability checker.
Handles environment variables and application settings.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = _env_bool("DEBUG", "false")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or console

    # Request settings (seconds)
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))
    SHOPIFY_API_TIMEOUT: int = int(os.getenv("SHOPIFY_API_TIMEOUT", "15"))

    # Browser collaborators
    HEADLESS_PAGE_TIMEOUT: int = int(os.getenv("HEADLESS_PAGE_TIMEOUT", "60"))
    HEADLESS_RENDER_WAIT_MS: int = int(os.getenv("HEADLESS_RENDER_WAIT_MS", "2000"))
    MANUAL_VERIFICATION_TIMEOUT: int = int(os.getenv("MANUAL_VERIFICATION_TIMEOUT", "300"))
    MANUAL_VERIFICATION_POLL_INTERVAL: int = int(
        os.getenv("MANUAL_VERIFICATION_POLL_INTERVAL", "5")
    )

    # Fallback chain defaults (overridable per request)
    ENABLE_HEADLESS_BROWSER: bool = _env_bool("ENABLE_HEADLESS_BROWSER", "true")
    ALLOW_MANUAL_VERIFICATION: bool = _env_bool("ALLOW_MANUAL_VERIFICATION", "false")
    SESSION_CACHE_DURATION_DAYS: int = int(os.getenv("SESSION_CACHE_DURATION_DAYS", "14"))

    # Bulk sweep pacing
    RATE_LIMIT_BETWEEN_CHECKS_MS: int = int(os.getenv("RATE_LIMIT_BETWEEN_CHECKS_MS", "2000"))

    @classmethod
    def manual_verification_requested_without_headless(cls) -> bool:
        """
        Check whether the configured defaults ask for manual verification
        while the headless browser (its prerequisite tier) is disabled.
        """
        return cls.ALLOW_MANUAL_VERIFICATION and not cls.ENABLE_HEADLESS_BROWSER


config = Config()
