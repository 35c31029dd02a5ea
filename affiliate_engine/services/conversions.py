"""Conversion Recorder — credits a tracked click with its commission.

Per click the state machine is ``pending → converted`` (terminal). The
transition is one conditional UPDATE; validation happens before it and
nothing is written on failure.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.clock import Clock, utcnow
from affiliate_engine.db.catalog import CatalogReader, SqlCatalogReader
from affiliate_engine.db.ledger import ClickLedger
from affiliate_engine.errors import (
    AlreadyConvertedOrNotFound,
    AttributionWindowExpired,
    PartnerInactiveOrMissing,
)
from affiliate_engine.models.click import ConversionData
from affiliate_engine.services.commission import calculate_commission

logger = logging.getLogger(__name__)


class ConversionRecorder:
    def __init__(
        self,
        session: AsyncSession,
        catalog: Optional[CatalogReader] = None,
        clock: Clock = utcnow,
    ):
        self.session = session
        self.catalog = catalog or SqlCatalogReader(session)
        self.ledger = ClickLedger(session)
        self.clock = clock

    async def record_conversion(self, data: ConversionData) -> bool:
        click = await self.ledger.get_by_tracking_id(data.tracking_id)
        if click is None:
            raise AlreadyConvertedOrNotFound(data.tracking_id, "not_found")
        if click.converted:
            raise AlreadyConvertedOrNotFound(data.tracking_id, "already_converted")

        # Deactivated partners still honour clicks made while they were live
        partner = await self.catalog.get_partner(click.partner_id)
        if partner is None:
            raise PartnerInactiveOrMissing(click.partner_id)

        now = self.clock()
        window_days = partner.tracking_config.attribution_window
        if now - click.clicked_at > timedelta(days=window_days):
            logger.warning(
                "Conversion rejected, attribution window expired: tracking_id=%s window=%sd",
                data.tracking_id, window_days,
            )
            raise AttributionWindowExpired(data.tracking_id, window_days)

        commission = calculate_commission(partner.commission_structure, data.conversion_value)

        metadata = dict(click.metadata or {})
        metadata.update(data.metadata or {})

        marked = await self.ledger.mark_converted(
            data.tracking_id,
            conversion_date=now,
            commission_amount=commission,
            conversion_type=data.conversion_type,
            metadata=metadata or None,
        )
        if not marked:
            # Another request converted this click between our read and write
            await self.session.rollback()
            raise AlreadyConvertedOrNotFound(data.tracking_id, "already_converted")
        await self.session.commit()

        logger.info(
            "Conversion recorded: tracking_id=%s type=%s commission=%.2f",
            data.tracking_id, data.conversion_type, commission,
        )
        return True
