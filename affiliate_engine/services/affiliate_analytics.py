"""
Affiliate performance analytics.

Time-windowed rollups over the click ledger, joined to the catalog for
display names:
- Overall metrics (clicks, conversions, rate, commission)
- Per-partner performance with period-over-period trends
- Per-product performance, optionally for one partner
- Daily series for charts (zero-filled)
- CSV exports of the above

All reads; analytics never touch attribution state. A conversion racing
with an in-flight rollup may or may not be counted.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.analytics import export, pipeline
from affiliate_engine.db.catalog import CatalogReader, SqlCatalogReader
from affiliate_engine.db.ledger import ClickLedger
from affiliate_engine.errors import InvalidExportType
from affiliate_engine.models.analytics import (
    DailyMetrics,
    DateRange,
    PartnerPerformance,
    PerformanceMetrics,
    ProductPerformance,
    TopPerformers,
)
from affiliate_engine.models.click import Click
from affiliate_engine.services.validation import require_identifier

logger = logging.getLogger(__name__)

EXPORT_ROW_LIMIT = 100


class ExportKind(str, Enum):
    PARTNERS = "partners"
    PRODUCTS = "products"
    DAILY = "daily"


class AffiliateAnalytics:
    def __init__(self, session: AsyncSession, catalog: Optional[CatalogReader] = None):
        self.ledger = ClickLedger(session)
        self.catalog = catalog or SqlCatalogReader(session)

    async def _clicks(self, window: DateRange, partner_id: Optional[str] = None) -> list[Click]:
        clicks = await self.ledger.clicks_between(window.start, window.end, partner_id=partner_id)
        return pipeline.match(clicks, window, partner_id)

    async def get_overall_metrics(self, window: DateRange) -> PerformanceMetrics:
        return pipeline.summarize(await self._clicks(window))

    async def get_partner_performance(
        self, window: DateRange, limit: int = 20
    ) -> list[PartnerPerformance]:
        current = {
            pid: pipeline.summarize(group)
            for pid, group in pipeline.group_by(await self._clicks(window), lambda c: c.partner_id).items()
        }
        previous = {
            pid: pipeline.summarize(group)
            for pid, group in pipeline.group_by(
                await self._clicks(window.previous()), lambda c: c.partner_id
            ).items()
        }
        partners = await self.catalog.get_partners(current.keys())
        rows = pipeline.join_partners(current, partners, previous)
        return pipeline.take(pipeline.sort_by_commission(rows), limit)

    async def get_product_performance(
        self,
        window: DateRange,
        partner_id: Optional[str] = None,
        limit: int = 20,
    ) -> list[ProductPerformance]:
        if partner_id is not None:
            require_identifier(partner_id, "partner_id")

        groups = {
            key: pipeline.summarize(group)
            for key, group in pipeline.group_by(
                await self._clicks(window, partner_id),
                lambda c: (c.product_id, c.partner_id),
            ).items()
        }
        products = await self.catalog.get_products(k[0] for k in groups)
        partners = await self.catalog.get_partners(k[1] for k in groups)
        rows = pipeline.join_products(groups, products, partners)
        return pipeline.take(pipeline.sort_by_commission(rows), limit)

    async def get_daily_metrics(self, window: DateRange) -> list[DailyMetrics]:
        return pipeline.daily_rollup(await self._clicks(window), window)

    async def get_top_performers(self, window: DateRange, limit: int = 5) -> TopPerformers:
        return TopPerformers(
            partners=await self.get_partner_performance(window, limit),
            products=await self.get_product_performance(window, None, limit),
        )

    async def export_performance_data(self, window: DateRange, kind: str) -> str:
        try:
            kind = ExportKind(kind)
        except ValueError:
            raise InvalidExportType(str(kind)) from None

        if kind == ExportKind.PARTNERS:
            body = export.partners_csv(await self.get_partner_performance(window, EXPORT_ROW_LIMIT))
        elif kind == ExportKind.PRODUCTS:
            body = export.products_csv(
                await self.get_product_performance(window, None, EXPORT_ROW_LIMIT)
            )
        else:
            body = export.daily_csv(await self.get_daily_metrics(window))

        logger.info("Exported %s performance data for %s to %s", kind.value, window.start, window.end)
        return body
