"""Commission payout records and reports."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class CommissionSummary:
    partner_id: str
    partner_name: str
    total_commission: float
    paid_commission: float
    pending_commission: float
    conversions: int
    average_commission: float
    last_payment_date: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "partnerId": self.partner_id,
            "partnerName": self.partner_name,
            "totalCommission": self.total_commission,
            "paidCommission": self.paid_commission,
            "pendingCommission": self.pending_commission,
            "conversions": self.conversions,
            "averageCommission": self.average_commission,
            "lastPaymentDate": _iso(self.last_payment_date),
        }


@dataclass
class CommissionDetails:
    click_id: str
    tracking_id: str
    partner_id: str
    product_id: str
    commission_amount: float
    conversion_date: Optional[datetime]
    payment_status: str
    user_id: Optional[str] = None
    payment_reference: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "clickId": self.click_id,
            "trackingId": self.tracking_id,
            "partnerId": self.partner_id,
            "productId": self.product_id,
            "userId": self.user_id,
            "commissionAmount": self.commission_amount,
            "conversionDate": _iso(self.conversion_date),
            "paymentStatus": self.payment_status,
            "paymentReference": self.payment_reference,
        }


@dataclass
class PaymentResult:
    success: bool
    updated_count: int
    total_amount: float

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "updatedCount": self.updated_count,
            "totalAmount": self.total_amount,
        }


@dataclass
class ReportSummary:
    total_commissions: int = 0
    total_amount: float = 0.0
    paid_amount: float = 0.0
    pending_amount: float = 0.0
    average_commission: float = 0.0

    def to_dict(self) -> dict:
        return {
            "totalCommissions": self.total_commissions,
            "totalAmount": self.total_amount,
            "paidAmount": self.paid_amount,
            "pendingAmount": self.pending_amount,
            "averageCommission": self.average_commission,
        }


@dataclass
class CommissionReport:
    summary: ReportSummary
    partner_breakdown: list[CommissionSummary] = field(default_factory=list)
    daily_breakdown: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "summary": self.summary.to_dict(),
            "partnerBreakdown": [p.to_dict() for p in self.partner_breakdown],
            "dailyBreakdown": list(self.daily_breakdown),
        }
