"""CSV rendering for affiliate performance exports."""
from __future__ import annotations

import csv
import io
from typing import Iterable, Sequence

from affiliate_engine.models.analytics import DailyMetrics, PartnerPerformance, ProductPerformance

PARTNER_HEADERS = [
    "Partner ID",
    "Partner Name",
    "Partner Type",
    "Total Clicks",
    "Total Conversions",
    "Conversion Rate (%)",
    "Total Commission (INR)",
    "Average Commission (INR)",
    "Clicks Growth (%)",
    "Conversions Growth (%)",
    "Revenue Growth (%)",
]

PRODUCT_HEADERS = [
    "Product ID",
    "Product Name",
    "Product Type",
    "Partner ID",
    "Partner Name",
    "Total Clicks",
    "Total Conversions",
    "Conversion Rate (%)",
    "Total Commission (INR)",
    "Average Commission (INR)",
]

DAILY_HEADERS = [
    "Date",
    "Total Clicks",
    "Total Conversions",
    "Conversion Rate (%)",
    "Total Commission (INR)",
]


def _fmt(value: float) -> str:
    return f"{value:.2f}"


def render_csv(headers: Sequence[str], rows: Iterable[Sequence]) -> str:
    """Comma-delimited, one header row; fields with delimiters or quotes get quoted."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue()


def partners_csv(partners: Iterable[PartnerPerformance]) -> str:
    return render_csv(PARTNER_HEADERS, (
        [
            p.partner_id,
            p.partner_name,
            p.partner_type,
            p.metrics.total_clicks,
            p.metrics.total_conversions,
            _fmt(p.metrics.conversion_rate),
            _fmt(p.metrics.total_commission),
            _fmt(p.metrics.average_commission),
            _fmt(p.trends.clicks_growth),
            _fmt(p.trends.conversions_growth),
            _fmt(p.trends.revenue_growth),
        ]
        for p in partners
    ))


def products_csv(products: Iterable[ProductPerformance]) -> str:
    return render_csv(PRODUCT_HEADERS, (
        [
            p.product_id,
            p.product_name,
            p.product_type,
            p.partner_id,
            p.partner_name,
            p.metrics.total_clicks,
            p.metrics.total_conversions,
            _fmt(p.metrics.conversion_rate),
            _fmt(p.metrics.total_commission),
            _fmt(p.metrics.average_commission),
        ]
        for p in products
    ))


def daily_csv(days: Iterable[DailyMetrics]) -> str:
    return render_csv(DAILY_HEADERS, (
        [d.date, d.clicks, d.conversions, _fmt(d.conversion_rate), _fmt(d.commission)]
        for d in days
    ))
