"""Startup validation — catch misconfigurations before the app serves traffic."""
from __future__ import annotations

import logging
import sys

from config.settings import settings

logger = logging.getLogger(__name__)


def validate_settings() -> list[str]:
    """Validate configuration. Returns list of warnings (empty = all good).

    Raises SystemExit for critical misconfigurations in production.
    """
    warnings: list[str] = []
    is_prod = settings.is_production

    # Critical: generated links and redirects would point nowhere
    if is_prod and not settings.AFFILIATE_REDIRECT_PATH.startswith("/"):
        logger.critical("AFFILIATE_REDIRECT_PATH must be an absolute path, got %r",
                        settings.AFFILIATE_REDIRECT_PATH)
        sys.exit(1)

    if is_prod and "*" in settings.CORS_ORIGINS:
        warnings.append("CORS_ORIGINS is set to * — restrict in production")

    if is_prod and settings.DATABASE_URL.startswith("sqlite"):
        warnings.append("DATABASE_URL points at SQLite in production — use PostgreSQL")

    if not settings.API_BASE_URL:
        warnings.append("API_BASE_URL not set — generated affiliate links will use the request host")

    if not settings.ADMIN_API_KEY:
        warnings.append("ADMIN_API_KEY not set — admin analytics and commission endpoints disabled")

    if settings.TRACKING_COOKIE_MAX_AGE_DAYS <= 0:
        warnings.append("TRACKING_COOKIE_MAX_AGE_DAYS <= 0 — tracking cookie expires immediately")

    for w in warnings:
        logger.warning("⚠️  %s", w)

    if not warnings:
        logger.info("✅ All startup checks passed")

    return warnings
