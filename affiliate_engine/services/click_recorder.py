"""Click Recorder — validates and persists inbound affiliate clicks."""
from __future__ import annotations

import logging
import secrets
import time
from dataclasses import asdict
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.clock import Clock, utcnow
from affiliate_engine.db.catalog import CatalogReader, SqlCatalogReader
from affiliate_engine.db.ledger import ClickLedger
from affiliate_engine.errors import (
    InvalidTrackingParams,
    PartnerInactiveOrMissing,
    ProductInactiveOrMissing,
)
from affiliate_engine.models.catalog import Partner, Product
from affiliate_engine.models.click import TrackingData
from affiliate_engine.services.validation import length_errors, require_identifier

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_tracking_id() -> str:
    """Millisecond timestamp (base 36) + 48 random bits, e.g. ``m1x2y3z4-a3f8b2c1d4e5``."""
    timestamp = _to_base36(time.time_ns() // 1_000_000)
    return f"{timestamp}-{secrets.token_hex(6)}"


async def resolve_active_offer(
    catalog: CatalogReader, partner_id: str, product_id: str
) -> tuple[Partner, Product]:
    """Validate identifiers, then require an active partner and product.

    Raises InvalidIdentifier, PartnerInactiveOrMissing or ProductInactiveOrMissing,
    in that order. A product listed under another partner counts as missing.
    """
    require_identifier(partner_id, "partner_id")
    require_identifier(product_id, "product_id")

    partner = await catalog.get_partner(partner_id)
    if partner is None or not partner.is_active:
        raise PartnerInactiveOrMissing(partner_id)

    product = await catalog.get_product(product_id)
    if product is None or not product.is_active or product.partner_id != partner_id:
        raise ProductInactiveOrMissing(product_id)

    return partner, product


class ClickRecorder:
    """Appends new clicks to the ledger."""

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

    async def track_click(self, data: TrackingData) -> str:
        """Record a click and return its tracking ID."""
        require_identifier(data.partner_id, "partner_id")
        require_identifier(data.product_id, "product_id")

        problems = []
        if not data.ip_address:
            problems.append("IP address is required")
        if not data.user_agent:
            problems.append("User agent is required")
        problems.extend(length_errors(asdict(data)))
        if problems:
            raise InvalidTrackingParams(problems)

        await resolve_active_offer(self.catalog, data.partner_id, data.product_id)

        tracking_id = generate_tracking_id()
        await self.ledger.append(tracking_id, data, clicked_at=self.clock())
        await self.session.commit()

        logger.info(
            "Affiliate click tracked: tracking_id=%s partner=%s product=%s",
            tracking_id, data.partner_id, data.product_id,
        )
        return tracking_id
