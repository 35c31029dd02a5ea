"""Public affiliate endpoints — /api/affiliate/*.

Click tracking, outbound redirect, link generation, conversion recording,
fraud checks and partner-level click analytics.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from affiliate_engine.api.deps import client_ip
from affiliate_engine.db.engine import get_session
from affiliate_engine.models.click import (
    ConversionData,
    RequestContext,
    TrackingData,
    UTMParams,
)
from affiliate_engine.services.affiliate_tracking import AffiliateTrackingService

router = APIRouter(prefix="/api/affiliate", tags=["Affiliate"])
logger = logging.getLogger(__name__)


def get_tracking_service(session: AsyncSession = Depends(get_session)) -> AffiliateTrackingService:
    return AffiliateTrackingService(session, redirect_path=settings.AFFILIATE_REDIRECT_PATH)


# ── Schemas ───────────────────────────────────────────────────────────────────

class TrackClickRequest(BaseModel):
    partnerId: str = Field(..., min_length=1)
    productId: str = Field(..., min_length=1)
    userId: Optional[str] = Field(None, max_length=36)
    sessionId: Optional[str] = Field(None, max_length=100)
    utmSource: Optional[str] = Field(None, max_length=100)
    utmMedium: Optional[str] = Field(None, max_length=100)
    utmCampaign: Optional[str] = Field(None, max_length=100)


class GenerateLinkRequest(BaseModel):
    partnerId: str = Field(..., min_length=1)
    productId: str = Field(..., min_length=1)
    baseUrl: Optional[str] = None
    utmSource: Optional[str] = Field(None, max_length=100)
    utmMedium: Optional[str] = Field(None, max_length=100)
    utmCampaign: Optional[str] = Field(None, max_length=100)


class ConversionRequest(BaseModel):
    trackingId: str = Field(..., min_length=1, max_length=50)
    conversionType: str = Field(..., min_length=1, max_length=50)
    conversionValue: Optional[float] = Field(None, ge=0)
    metadata: Optional[dict[str, Any]] = None


# ── Endpoints ─────────────────────────────────────────────────────────────────

@router.post("/click")
@router.post("/track", include_in_schema=False)
async def track_click(
    body: TrackClickRequest,
    request: Request,
    service: AffiliateTrackingService = Depends(get_tracking_service),
):
    """Record an affiliate click and return its tracking ID."""
    tracking_id = await service.track_click(TrackingData(
        partner_id=body.partnerId,
        product_id=body.productId,
        user_id=body.userId,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent") or "unknown",
        referrer=request.headers.get("referer"),
        session_id=body.sessionId,
        utm_source=body.utmSource,
        utm_medium=body.utmMedium,
        utm_campaign=body.utmCampaign,
    ))
    return {
        "success": True,
        "data": {"trackingId": tracking_id},
        "message": "Click tracked successfully",
    }


@router.get("/redirect")
async def affiliate_redirect(
    request: Request,
    p: Optional[str] = Query(None, description="Partner ID"),
    pr: Optional[str] = Query(None, description="Product ID"),
    utm_source: Optional[str] = Query(None, max_length=100),
    utm_medium: Optional[str] = Query(None, max_length=100),
    utm_campaign: Optional[str] = Query(None, max_length=100),
    service: AffiliateTrackingService = Depends(get_tracking_service),
):
    """Track the click, then redirect to the partner's application URL."""
    if not p or not pr:
        raise HTTPException(400, "Missing required parameters")

    result = await service.process_redirect(
        p,
        pr,
        RequestContext(
            ip=client_ip(request),
            user_agent=request.headers.get("user-agent"),
            referrer=request.headers.get("referer"),
            session_id=request.cookies.get("session-id"),
            utm=UTMParams(source=utm_source, medium=utm_medium, campaign=utm_campaign),
        ),
    )

    response = RedirectResponse(url=result.redirect_url, status_code=307)
    response.set_cookie(
        settings.TRACKING_COOKIE_NAME,
        result.tracking_id,
        max_age=settings.TRACKING_COOKIE_MAX_AGE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@router.post("/generate-link")
async def generate_link(
    body: GenerateLinkRequest,
    request: Request,
    service: AffiliateTrackingService = Depends(get_tracking_service),
):
    """Build a tracking URL for an offer (does not record a click)."""
    base_url = body.baseUrl or settings.API_BASE_URL or str(request.base_url)
    url = await service.generate_affiliate_link(
        body.partnerId,
        body.productId,
        base_url,
        UTMParams(source=body.utmSource, medium=body.utmMedium, campaign=body.utmCampaign),
    )
    return {"success": True, "data": {"url": url}}


@router.post("/conversions")
@router.post("/convert", include_in_schema=False)
async def record_conversion(
    body: ConversionRequest,
    service: AffiliateTrackingService = Depends(get_tracking_service),
):
    """Credit a tracked click with a conversion and its commission."""
    success = await service.record_conversion(ConversionData(
        tracking_id=body.trackingId,
        conversion_type=body.conversionType,
        conversion_value=body.conversionValue,
        metadata=body.metadata,
    ))
    return {"success": success, "message": "Conversion recorded successfully"}


@router.get("/fraud-check/{tracking_id}")
async def fraud_check(
    tracking_id: str,
    service: AffiliateTrackingService = Depends(get_tracking_service),
):
    """Advisory fraud verdict for a tracked click."""
    verdict = await service.detect_fraud(tracking_id)
    return {"success": True, "data": verdict.to_dict()}


@router.get("/clicks/{partner_id}")
async def partner_clicks(
    partner_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    converted: Optional[bool] = Query(None),
    service: AffiliateTrackingService = Depends(get_tracking_service),
):
    result = await service.get_partner_clicks(
        partner_id, page, limit, start_date, end_date, converted
    )
    return {
        "success": True,
        "data": {
            "clicks": [c.to_dict() for c in result["clicks"]],
            "pagination": result["pagination"],
        },
    }


@router.get("/analytics")
async def tracking_analytics(
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    service: AffiliateTrackingService = Depends(get_tracking_service),
):
    """Analytics for one partner, or per-partner rollups for all of them."""
    if partner_id:
        data = await service.get_partner_analytics(partner_id, start_date, end_date)
    else:
        data = await service.get_overall_analytics(start_date, end_date)
    return {"success": True, "data": data}
