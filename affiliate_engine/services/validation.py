"""Shared validation helpers for partner/product/click identifiers."""
from __future__ import annotations

import re
import uuid
from typing import Any

from affiliate_engine.errors import InvalidIdentifier

TRACKING_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{10,50}$")

# Column widths of the click ledger (db/tables.py)
CLICK_FIELD_LIMITS = {
    "ip_address": 45,
    "user_agent": 500,
    "referrer": 500,
    "session_id": 100,
    "utm_source": 100,
    "utm_medium": 100,
    "utm_campaign": 100,
}


def is_valid_identifier(value: Any) -> bool:
    """Catalog and ledger row IDs are UUID strings."""
    if not isinstance(value, str) or not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def require_identifier(value: Any, field: str) -> str:
    if not is_valid_identifier(value):
        raise InvalidIdentifier(field, value)
    return value


def is_valid_tracking_id(value: Any) -> bool:
    return isinstance(value, str) and bool(TRACKING_ID_PATTERN.match(value))


def length_errors(params: dict) -> list[str]:
    """One message per click field longer than its ledger column."""
    errors = []
    for field, limit in CLICK_FIELD_LIMITS.items():
        value = params.get(field)
        if value and len(value) > limit:
            errors.append(f"{field} must be at most {limit} characters")
    return errors


def validate_tracking_params(params: dict) -> tuple[bool, list[str]]:
    """Check an inbound click payload, reporting every problem at once."""
    errors: list[str] = []

    if not is_valid_identifier(params.get("partner_id")):
        errors.append("Valid partner ID is required")
    if not is_valid_identifier(params.get("product_id")):
        errors.append("Valid product ID is required")
    if not params.get("ip_address"):
        errors.append("IP address is required")
    if not params.get("user_agent"):
        errors.append("User agent is required")
    errors.extend(length_errors(params))

    return len(errors) == 0, errors
