"""App settings — loaded from environment."""
from __future__ import annotations

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # API
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8000"))
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///affiliate.db")
    DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    DB_COMMAND_TIMEOUT = float(os.getenv("DB_COMMAND_TIMEOUT", "10"))

    # API base URL (for generated affiliate links)
    API_BASE_URL = os.getenv("API_BASE_URL", "")
    AFFILIATE_REDIRECT_PATH = os.getenv("AFFILIATE_REDIRECT_PATH", "/api/affiliate/redirect")

    # Tracking cookie set on redirect
    TRACKING_COOKIE_NAME = os.getenv("TRACKING_COOKIE_NAME", "affiliate-tracking")
    TRACKING_COOKIE_MAX_AGE_DAYS = int(os.getenv("TRACKING_COOKIE_MAX_AGE_DAYS", "30"))

    # Admin API key (analytics + commission endpoints)
    ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")

    # CORS origins (comma-separated, or * for dev)
    CORS_ORIGINS = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")
    ]

    # Observability
    SENTRY_DSN = os.getenv("SENTRY_DSN", "")
    SENTRY_ENVIRONMENT = os.getenv("SENTRY_ENVIRONMENT", "development")
    SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))

    # Logging
    LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
