"""Shared FastAPI dependencies — admin auth, client context, date windows."""
from __future__ import annotations

import hmac
from datetime import datetime
from typing import Optional

from fastapi import Header, HTTPException, Query, Request

from config.settings import settings
from affiliate_engine.models.analytics import DateRange


def verify_admin(x_admin_key: str = Header(None)) -> None:
    """Verify admin API key (timing-safe)."""
    expected = settings.ADMIN_API_KEY
    if not expected:
        raise HTTPException(503, "Admin endpoints disabled")
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(403, "Invalid admin key")


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def date_window(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    period: int = Query(30, ge=1, le=365, description="Lookback in days when no dates are given"),
) -> DateRange:
    """Explicit ``startDate``/``endDate`` or the trailing ``period`` days."""
    if start_date and end_date:
        return DateRange(start_date, end_date)
    return DateRange.last_days(period)
