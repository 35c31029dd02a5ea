"""Click ledger records and the inputs/outputs of tracking operations."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


@dataclass
class Click:
    """One attributed referral event, as stored in the ledger."""
    id: str
    tracking_id: str
    partner_id: str
    product_id: str
    ip_address: str
    user_agent: str
    clicked_at: datetime
    user_id: Optional[str] = None
    referrer: Optional[str] = None
    session_id: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    converted: bool = False
    conversion_date: Optional[datetime] = None
    conversion_type: Optional[str] = None
    commission_amount: Optional[float] = None
    payment_status: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_method: Optional[str] = None
    payment_date: Optional[datetime] = None
    metadata: Optional[dict[str, Any]] = None

    @property
    def status(self) -> str:
        return "converted" if self.converted else "pending"

    @property
    def time_to_conversion(self) -> Optional[float]:
        """Seconds between click and conversion, if converted."""
        if not self.converted or self.conversion_date is None:
            return None
        return (self.conversion_date - self.clicked_at).total_seconds()

    def to_dict(self) -> dict:
        """Serialize with the field names used across the HTTP boundary."""
        return {
            "id": self.id,
            "trackingId": self.tracking_id,
            "partnerId": self.partner_id,
            "productId": self.product_id,
            "userId": self.user_id,
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "referrer": self.referrer,
            "sessionId": self.session_id,
            "utmSource": self.utm_source,
            "utmMedium": self.utm_medium,
            "utmCampaign": self.utm_campaign,
            "clickedAt": self.clicked_at.isoformat(),
            "converted": self.converted,
            "conversionDate": self.conversion_date.isoformat() if self.conversion_date else None,
            "commissionAmount": self.commission_amount,
            "paymentStatus": self.payment_status,
            "paymentReference": self.payment_reference,
            "paymentMethod": self.payment_method,
            "paymentDate": self.payment_date.isoformat() if self.payment_date else None,
            "metadata": self.metadata,
        }


@dataclass
class TrackingData:
    """Inbound click to record."""
    partner_id: str
    product_id: str
    ip_address: str
    user_agent: str
    user_id: Optional[str] = None
    referrer: Optional[str] = None
    session_id: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None


@dataclass
class UTMParams:
    source: Optional[str] = None
    medium: Optional[str] = None
    campaign: Optional[str] = None

    def items(self) -> list[tuple[str, str]]:
        pairs = [
            ("utm_source", self.source),
            ("utm_medium", self.medium),
            ("utm_campaign", self.campaign),
        ]
        return [(k, v) for k, v in pairs if v]


@dataclass
class RequestContext:
    """Client context captured by the redirect handler."""
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    session_id: Optional[str] = None
    utm: UTMParams = field(default_factory=UTMParams)


@dataclass(frozen=True)
class RedirectResult:
    tracking_id: str
    redirect_url: str

    def to_dict(self) -> dict:
        return {"trackingId": self.tracking_id, "redirectUrl": self.redirect_url}


@dataclass
class ConversionData:
    tracking_id: str
    conversion_type: str
    conversion_value: Optional[float] = None
    metadata: Optional[dict[str, Any]] = None


@dataclass
class FraudVerdict:
    is_fraudulent: bool
    reasons: list[str]
    risk_score: int

    def to_dict(self) -> dict:
        return {
            "isFraudulent": self.is_fraudulent,
            "reasons": list(self.reasons),
            "riskScore": self.risk_score,
        }
