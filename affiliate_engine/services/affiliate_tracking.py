"""
Affiliate tracking service — the entry point used by the HTTP handlers.

Composes the click recorder, link generator, conversion recorder and fraud
scorer around one session, and adds the ledger lookups the dashboards need
(click by tracking ID, paginated partner clicks, per-partner analytics).

Holds no process-wide state: build one per request with the request's
session.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.analytics import pipeline
from affiliate_engine.clock import Clock, to_naive_utc, utcnow
from affiliate_engine.db.catalog import CatalogReader, SqlCatalogReader
from affiliate_engine.db.ledger import ClickLedger
from affiliate_engine.errors import PartnerInactiveOrMissing
from affiliate_engine.models.click import (
    Click,
    ConversionData,
    FraudVerdict,
    RedirectResult,
    RequestContext,
    TrackingData,
    UTMParams,
)
from affiliate_engine.services.affiliate_redirect import DEFAULT_REDIRECT_PATH, LinkGenerator
from affiliate_engine.services.click_recorder import ClickRecorder
from affiliate_engine.services.conversions import ConversionRecorder
from affiliate_engine.services.fraud import FraudScorer
from affiliate_engine.services.validation import require_identifier, validate_tracking_params

TOP_PRODUCTS_LIMIT = 10


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    return to_naive_utc(value) if value is not None else None


class AffiliateTrackingService:
    def __init__(
        self,
        session: AsyncSession,
        catalog: Optional[CatalogReader] = None,
        redirect_path: str = DEFAULT_REDIRECT_PATH,
        clock: Clock = utcnow,
    ):
        self.session = session
        self.catalog = catalog or SqlCatalogReader(session)
        self.ledger = ClickLedger(session)
        self.recorder = ClickRecorder(session, self.catalog, clock)
        self.links = LinkGenerator(session, self.catalog, redirect_path, clock)
        self.conversions = ConversionRecorder(session, self.catalog, clock)
        self.fraud = FraudScorer(session, clock)

    validate_tracking_params = staticmethod(validate_tracking_params)

    async def track_click(self, data: TrackingData) -> str:
        return await self.recorder.track_click(data)

    async def generate_affiliate_link(
        self,
        partner_id: str,
        product_id: str,
        base_url: str,
        utm_params: Optional[UTMParams] = None,
    ) -> str:
        return await self.links.generate_affiliate_link(partner_id, product_id, base_url, utm_params)

    async def process_redirect(
        self,
        partner_id: str,
        product_id: str,
        context: RequestContext,
        user_id: Optional[str] = None,
    ) -> RedirectResult:
        return await self.links.process_redirect(partner_id, product_id, context, user_id)

    async def record_conversion(self, data: ConversionData) -> bool:
        return await self.conversions.record_conversion(data)

    async def detect_fraud(self, tracking_id: str) -> FraudVerdict:
        return await self.fraud.detect_fraud(tracking_id)

    async def get_click_by_tracking_id(self, tracking_id: str) -> Optional[Click]:
        return await self.ledger.get_by_tracking_id(tracking_id)

    async def get_partner_clicks(
        self,
        partner_id: str,
        page: int = 1,
        limit: int = 20,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        converted: Optional[bool] = None,
    ) -> dict:
        """Newest-first clicks for a partner with pagination info."""
        require_identifier(partner_id, "partner_id")
        page = max(page, 1)
        limit = max(limit, 1)

        clicks, total = await self.ledger.partner_clicks_page(
            partner_id,
            offset=(page - 1) * limit,
            limit=limit,
            start=_naive(start_date),
            end=_naive(end_date),
            converted=converted,
        )
        return {
            "clicks": clicks,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    async def get_partner_analytics(
        self,
        partner_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> dict:
        """Totals for one partner plus its top products by clicks."""
        require_identifier(partner_id, "partner_id")
        partner = await self.catalog.get_partner(partner_id)
        if partner is None:
            raise PartnerInactiveOrMissing(partner_id)

        clicks = await self.ledger.clicks_between(_naive(start_date), _naive(end_date), partner_id)
        metrics = pipeline.summarize(clicks)

        by_product = pipeline.group_by(clicks, lambda c: c.product_id)
        products = await self.catalog.get_products(by_product.keys())
        top = sorted(
            (
                {
                    "productId": pid,
                    "productName": products[pid].name,
                    "clicks": len(group),
                    "conversions": sum(1 for c in group if c.converted),
                }
                for pid, group in by_product.items()
                if pid in products
            ),
            key=lambda row: row["clicks"],
            reverse=True,
        )[:TOP_PRODUCTS_LIMIT]

        return {
            "partnerId": partner_id,
            "partnerName": partner.name,
            "totalClicks": metrics.total_clicks,
            "totalConversions": metrics.total_conversions,
            "conversionRate": metrics.conversion_rate,
            "totalCommission": metrics.total_commission,
            "avgTimeToConversion": pipeline.average_time_to_conversion(clicks),
            "topProducts": top,
        }

    async def get_overall_analytics(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[dict]:
        """Per-partner rollups across every partner with clicks in the window."""
        clicks = await self.ledger.clicks_between(_naive(start_date), _naive(end_date))
        groups = pipeline.group_by(clicks, lambda c: c.partner_id)
        partners = await self.catalog.get_partners(groups.keys())

        rows = []
        for pid, group in groups.items():
            if pid not in partners:
                continue
            metrics = pipeline.summarize(group)
            rows.append({
                "partnerId": pid,
                "partnerName": partners[pid].name,
                "totalClicks": metrics.total_clicks,
                "totalConversions": metrics.total_conversions,
                "conversionRate": metrics.conversion_rate,
                "totalCommission": metrics.total_commission,
                "avgTimeToConversion": pipeline.average_time_to_conversion(group),
            })
        return rows
