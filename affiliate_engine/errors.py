"""Domain errors for the affiliate engine.

Every error carries an HTTP status and a stable machine-readable code so the
API layer can render them without string matching. Business-rule rejections
are terminal; callers should only retry unclassified persistence failures.
"""
from __future__ import annotations

from typing import Any, Optional


class AffiliateError(Exception):
    """Base class for caller-recoverable affiliate errors."""

    status_code = 400
    code = "affiliate_error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidIdentifier(AffiliateError):
    code = "invalid_identifier"

    def __init__(self, field: str, value: Any = None):
        super().__init__(f"Invalid {field.replace('_', ' ')}", details={"field": field})
        self.field = field
        self.value = value


class InvalidIdentifiers(AffiliateError):
    code = "invalid_identifiers"

    def __init__(self, invalid_ids: list[str]):
        super().__init__(
            "Some commission IDs are invalid",
            details={"invalidIds": list(invalid_ids)},
        )
        self.invalid_ids = list(invalid_ids)


class InvalidTrackingParams(AffiliateError):
    code = "invalid_tracking_params"

    def __init__(self, errors: list[str]):
        super().__init__("Invalid tracking parameters", details=list(errors))
        self.errors = list(errors)


class PartnerInactiveOrMissing(AffiliateError):
    status_code = 404
    code = "partner_not_found"

    def __init__(self, partner_id: str):
        super().__init__("Partner not found or inactive", details={"partnerId": partner_id})
        self.partner_id = partner_id


class ProductInactiveOrMissing(AffiliateError):
    status_code = 404
    code = "product_not_found"

    def __init__(self, product_id: str):
        super().__init__("Product not found or inactive", details={"productId": product_id})
        self.product_id = product_id


class AlreadyConvertedOrNotFound(AffiliateError):
    """Raised for unknown tracking IDs and for clicks that already converted.

    ``reason`` is ``"not_found"`` or ``"already_converted"``.
    """

    code = "already_converted_or_not_found"

    def __init__(self, tracking_id: str, reason: str):
        message = (
            "Tracking ID already converted"
            if reason == "already_converted"
            else "Tracking ID not found"
        )
        super().__init__(message, details={"trackingId": tracking_id, "reason": reason})
        self.tracking_id = tracking_id
        self.reason = reason

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 409 if self.reason == "already_converted" else 404


class AttributionWindowExpired(AffiliateError):
    code = "attribution_window_expired"

    def __init__(self, tracking_id: str, window_days: int):
        super().__init__(
            "Click is outside attribution window",
            details={"trackingId": tracking_id, "attributionWindowDays": window_days},
        )
        self.tracking_id = tracking_id
        self.window_days = window_days


class NoEligibleCommissions(AffiliateError):
    status_code = 404
    code = "no_eligible_commissions"

    def __init__(self):
        super().__init__("No eligible commissions found")


class NotFound(AffiliateError):
    status_code = 404
    code = "not_found"


class InvalidDateRange(AffiliateError):
    code = "invalid_date_range"

    def __init__(self):
        super().__init__("Start date must be before end date")


class InvalidExportType(AffiliateError):
    code = "invalid_export_type"

    def __init__(self, kind: str):
        super().__init__(
            "Export type must be one of: partners, products, daily",
            details={"type": kind},
        )
