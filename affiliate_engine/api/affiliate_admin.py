"""
Affiliate admin dashboard endpoints.

Performance analytics, CSV exports and commission payouts. Every route
requires the ``X-Admin-Key`` header.
"""
from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.api.deps import date_window, verify_admin
from affiliate_engine.db.engine import get_session
from affiliate_engine.models.analytics import DateRange
from affiliate_engine.services.affiliate_analytics import AffiliateAnalytics, ExportKind
from affiliate_engine.services.commission_tracking import CommissionTracker

router = APIRouter(
    prefix="/api/admin",
    tags=["Affiliate Admin"],
    dependencies=[Depends(verify_admin)],
)
logger = logging.getLogger(__name__)


class ReportType(str, Enum):
    SUMMARY = "summary"
    REPORT = "report"


class MarkPaidRequest(BaseModel):
    commissionIds: list[str] = Field(..., min_length=1)
    paymentReference: str = Field(..., min_length=1, max_length=100)
    paymentMethod: str = Field(..., min_length=1, max_length=50)
    notes: Optional[str] = Field(None, max_length=1000)


# ── Analytics ─────────────────────────────────────────────────────────────────

@router.get("/analytics/overview")
async def analytics_overview(
    window: DateRange = Depends(date_window),
    session: AsyncSession = Depends(get_session),
):
    """Overall metrics, top partners and products, and the daily series for the window."""
    analytics = AffiliateAnalytics(session)
    metrics = await analytics.get_overall_metrics(window)
    top = await analytics.get_top_performers(window)
    daily = await analytics.get_daily_metrics(window)
    return {
        "success": True,
        "data": {
            "metrics": metrics.to_dict(),
            "topPerformers": top.to_dict(),
            "dailyMetrics": [d.to_dict() for d in daily],
            "dateRange": {"start": window.start.isoformat(), "end": window.end.isoformat()},
        },
    }


@router.get("/analytics/partners")
async def analytics_partners(
    window: DateRange = Depends(date_window),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
):
    rows = await AffiliateAnalytics(session).get_partner_performance(window, limit)
    return {"success": True, "data": [r.to_dict() for r in rows]}


@router.get("/analytics/products")
async def analytics_products(
    window: DateRange = Depends(date_window),
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
):
    rows = await AffiliateAnalytics(session).get_product_performance(window, partner_id, limit)
    return {"success": True, "data": [r.to_dict() for r in rows]}


@router.get("/analytics/daily")
async def analytics_daily(
    window: DateRange = Depends(date_window),
    session: AsyncSession = Depends(get_session),
):
    """Zero-filled daily series for charts."""
    days = await AffiliateAnalytics(session).get_daily_metrics(window)
    return {"success": True, "data": [d.to_dict() for d in days]}


@router.get("/analytics/export")
async def analytics_export(
    export_type: str = Query(ExportKind.PARTNERS.value, alias="type"),
    window: DateRange = Depends(date_window),
    session: AsyncSession = Depends(get_session),
):
    body = await AffiliateAnalytics(session).export_performance_data(window, export_type)
    filename = (
        f"affiliate_{export_type}_{window.start.date().isoformat()}_to_{window.end.date().isoformat()}.csv"
    )
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Commissions ───────────────────────────────────────────────────────────────

@router.get("/commissions")
async def commissions_overview(
    report_type: ReportType = Query(ReportType.SUMMARY, alias="reportType"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    session: AsyncSession = Depends(get_session),
):
    """Per-partner summary, or a full report (defaults to the last 30 days)."""
    tracker = CommissionTracker(session)
    if report_type == ReportType.SUMMARY:
        rows = await tracker.get_commission_summary(start_date, end_date)
        return {"success": True, "data": [r.to_dict() for r in rows]}

    if start_date and end_date:
        window = DateRange(start_date, end_date)
    else:
        window = DateRange.last_days(30)
    report = await tracker.generate_commission_report(window.start, window.end, partner_id)
    return {"success": True, "data": report.to_dict()}


@router.get("/commissions/{partner_id}")
async def partner_commissions(
    partner_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
):
    result = await CommissionTracker(session).get_partner_commission_details(partner_id, page, limit)
    return {
        "success": True,
        "data": {
            "commissions": [c.to_dict() for c in result["commissions"]],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": result["total"],
                "totalPages": result["total_pages"],
            },
        },
    }


@router.post("/commissions/payments")
async def mark_commissions_paid(
    body: MarkPaidRequest,
    session: AsyncSession = Depends(get_session),
):
    """Mark pending commissions as paid under one payment reference."""
    result = await CommissionTracker(session).mark_commissions_as_paid(
        body.commissionIds,
        body.paymentReference,
        body.paymentMethod,
        body.notes,
    )
    return {"success": True, "data": result.to_dict()}
