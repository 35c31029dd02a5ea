"""Aggregation stages over the click ledger.

Each rollup is a sequence of small pure functions (match → group → summarize
→ join → sort → limit) over in-memory Click records, so the aggregation
logic is testable without a database.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Callable, Hashable, Iterable, Optional, TypeVar

from affiliate_engine.models.analytics import (
    DailyMetrics,
    DateRange,
    PartnerPerformance,
    PerformanceMetrics,
    ProductPerformance,
    Trends,
)
from affiliate_engine.models.catalog import Partner, Product
from affiliate_engine.models.click import Click
from affiliate_engine.services.commission import round_money

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


def match(clicks: Iterable[Click], window: DateRange, partner_id: Optional[str] = None) -> list[Click]:
    return [
        c for c in clicks
        if window.contains(c.clicked_at) and (partner_id is None or c.partner_id == partner_id)
    ]


def group_by(clicks: Iterable[Click], key: Callable[[Click], K]) -> dict[K, list[Click]]:
    groups: dict[K, list[Click]] = defaultdict(list)
    for click in clicks:
        groups[key(click)].append(click)
    return dict(groups)


def conversion_rate(clicks: int, conversions: int) -> float:
    return (conversions / clicks) * 100 if clicks > 0 else 0.0


def summarize(clicks: Iterable[Click]) -> PerformanceMetrics:
    """Clicks, conversions and commission (converted clicks only)."""
    total_clicks = 0
    total_conversions = 0
    total_commission = 0.0
    for click in clicks:
        total_clicks += 1
        if click.converted:
            total_conversions += 1
            total_commission += click.commission_amount or 0.0

    return PerformanceMetrics(
        total_clicks=total_clicks,
        total_conversions=total_conversions,
        conversion_rate=conversion_rate(total_clicks, total_conversions),
        total_commission=round_money(total_commission),
        average_commission=(
            round_money(total_commission / total_conversions) if total_conversions else 0.0
        ),
    )


def growth(current: float, previous: float) -> float:
    """Period-over-period growth in percent, rounded to 2 places."""
    if previous > 0:
        return round((current - previous) / previous * 100, 2)
    return 100.0 if current > 0 else 0.0


def trends(current: PerformanceMetrics, previous: PerformanceMetrics) -> Trends:
    return Trends(
        clicks_growth=growth(current.total_clicks, previous.total_clicks),
        conversions_growth=growth(current.total_conversions, previous.total_conversions),
        revenue_growth=growth(current.total_commission, previous.total_commission),
    )


def join_partners(
    groups: dict[str, PerformanceMetrics],
    partners: dict[str, Partner],
    previous: Optional[dict[str, PerformanceMetrics]] = None,
) -> list[PartnerPerformance]:
    """Attach partner names; groups whose partner is not in the catalog are dropped."""
    previous = previous or {}
    rows = []
    for partner_id, metrics in groups.items():
        partner = partners.get(partner_id)
        if partner is None:
            continue
        rows.append(PartnerPerformance(
            partner_id=partner_id,
            partner_name=partner.name,
            partner_type=partner.type,
            metrics=metrics,
            trends=trends(metrics, previous.get(partner_id, PerformanceMetrics())),
        ))
    return rows


def join_products(
    groups: dict[tuple[str, str], PerformanceMetrics],
    products: dict[str, Product],
    partners: dict[str, Partner],
) -> list[ProductPerformance]:
    rows = []
    for (product_id, partner_id), metrics in groups.items():
        product = products.get(product_id)
        partner = partners.get(partner_id)
        if product is None or partner is None:
            continue
        rows.append(ProductPerformance(
            product_id=product_id,
            product_name=product.name,
            product_type=product.type,
            partner_id=partner_id,
            partner_name=partner.name,
            metrics=metrics,
        ))
    return rows


def sort_by_commission(rows: list[T]) -> list[T]:
    return sorted(rows, key=lambda r: r.metrics.total_commission, reverse=True)


def take(rows: list[T], limit: Optional[int]) -> list[T]:
    return rows if limit is None else rows[:max(limit, 0)]


def daily_rollup(clicks: Iterable[Click], window: DateRange) -> list[DailyMetrics]:
    """One row per calendar day in the window, zero-filled."""
    by_day = group_by(clicks, lambda c: c.clicked_at.date())
    rows = []
    for day in window.days():
        metrics = summarize(by_day.get(day, []))
        rows.append(DailyMetrics(
            date=day.isoformat(),
            clicks=metrics.total_clicks,
            conversions=metrics.total_conversions,
            commission=metrics.total_commission,
            conversion_rate=metrics.conversion_rate,
        ))
    return rows


def average_time_to_conversion(clicks: Iterable[Click]) -> Optional[float]:
    """Mean click → conversion time in seconds, or None without conversions."""
    durations = [c.time_to_conversion for c in clicks if c.time_to_conversion is not None]
    if not durations:
        return None
    return sum(durations) / len(durations)
