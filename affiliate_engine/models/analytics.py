"""Analytics value objects — date windows and rollup result shapes."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional

from affiliate_engine.clock import to_naive_utc, utcnow
from affiliate_engine.errors import InvalidDateRange


@dataclass(frozen=True)
class DateRange:
    """Inclusive ``[start, end]`` window over ``clicked_at``."""
    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, "start", to_naive_utc(self.start))
        object.__setattr__(self, "end", to_naive_utc(self.end))
        if self.start >= self.end:
            raise InvalidDateRange()

    @classmethod
    def last_days(cls, days: int = 30, now: Optional[datetime] = None) -> "DateRange":
        end = to_naive_utc(now) if now else utcnow()
        return cls(end - timedelta(days=days), end)

    @classmethod
    def from_dates(cls, start: date, end: date) -> "DateRange":
        """Whole calendar days, ``start`` 00:00 through the last microsecond of ``end``."""
        return cls(
            datetime.combine(start, time.min),
            datetime.combine(end, time.max),
        )

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    def previous(self) -> "DateRange":
        """The immediately preceding window of equal length."""
        one_tick = timedelta(microseconds=1)
        return DateRange(self.start - self.span - one_tick, self.start - one_tick)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def days(self) -> list[date]:
        """Every calendar day touched by the window, in order."""
        current = self.start.date()
        last = self.end.date()
        out = []
        while current <= last:
            out.append(current)
            current += timedelta(days=1)
        return out


@dataclass
class PerformanceMetrics:
    total_clicks: int = 0
    total_conversions: int = 0
    conversion_rate: float = 0.0
    total_commission: float = 0.0
    average_commission: float = 0.0

    def to_dict(self) -> dict:
        return {
            "totalClicks": self.total_clicks,
            "totalConversions": self.total_conversions,
            "conversionRate": self.conversion_rate,
            "totalCommission": self.total_commission,
            "averageCommission": self.average_commission,
            "clickThroughRate": self.conversion_rate,
            "revenue": self.total_commission,
        }


@dataclass
class Trends:
    clicks_growth: float = 0.0
    conversions_growth: float = 0.0
    revenue_growth: float = 0.0

    def to_dict(self) -> dict:
        return {
            "clicksGrowth": self.clicks_growth,
            "conversionsGrowth": self.conversions_growth,
            "revenueGrowth": self.revenue_growth,
        }


@dataclass
class PartnerPerformance:
    partner_id: str
    partner_name: str
    partner_type: str
    metrics: PerformanceMetrics
    trends: Trends = field(default_factory=Trends)

    def to_dict(self) -> dict:
        return {
            "partnerId": self.partner_id,
            "partnerName": self.partner_name,
            "partnerType": self.partner_type,
            "metrics": self.metrics.to_dict(),
            "trends": self.trends.to_dict(),
        }


@dataclass
class ProductPerformance:
    product_id: str
    product_name: str
    product_type: str
    partner_id: str
    partner_name: str
    metrics: PerformanceMetrics

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "productType": self.product_type,
            "partnerId": self.partner_id,
            "partnerName": self.partner_name,
            "metrics": self.metrics.to_dict(),
        }


@dataclass
class DailyMetrics:
    date: str
    clicks: int = 0
    conversions: int = 0
    commission: float = 0.0
    conversion_rate: float = 0.0

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "clicks": self.clicks,
            "conversions": self.conversions,
            "commission": self.commission,
            "conversionRate": self.conversion_rate,
        }


@dataclass
class TopPerformers:
    partners: list[PartnerPerformance]
    products: list[ProductPerformance]

    def to_dict(self) -> dict:
        return {
            "partners": [p.to_dict() for p in self.partners],
            "products": [p.to_dict() for p in self.products],
        }
