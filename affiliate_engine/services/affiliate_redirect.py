"""
Affiliate Link Generator & Redirect Service.

Outbound links never expose the partner URL directly. Every click goes
through our redirect endpoint first, which:
1. Records the click server-side (reliable, not dependent on client JS)
2. Resolves the product's current application URL
3. Tags the partner URL with our tracking ID (``ref``) and UTM parameters

Flow:
  Client taps "Apply now" →
  GET /api/affiliate/redirect?p=<partnerId>&pr=<productId> →
  Server logs click + redirects to partner URL with ?ref=<trackingId>
"""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.clock import Clock, utcnow
from affiliate_engine.db.catalog import CatalogReader, SqlCatalogReader
from affiliate_engine.errors import ProductInactiveOrMissing
from affiliate_engine.models.click import RedirectResult, RequestContext, TrackingData, UTMParams
from affiliate_engine.services.click_recorder import ClickRecorder, resolve_active_offer

logger = logging.getLogger(__name__)

DEFAULT_REDIRECT_PATH = "/api/affiliate/redirect"


def with_query_params(url: str, params: list[tuple[str, str]]) -> str:
    """Set query parameters on ``url``, replacing existing keys of the same name."""
    parts = urlsplit(url)
    keys = {k for k, _ in params}
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in keys]
    query.extend(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class LinkGenerator:
    """Builds tracking URLs and resolves partner redirect targets."""

    def __init__(
        self,
        session: AsyncSession,
        catalog: Optional[CatalogReader] = None,
        redirect_path: str = DEFAULT_REDIRECT_PATH,
        clock: Clock = utcnow,
    ):
        self.session = session
        self.catalog = catalog or SqlCatalogReader(session)
        self.redirect_path = redirect_path
        self.recorder = ClickRecorder(session, catalog=self.catalog, clock=clock)

    async def generate_affiliate_link(
        self,
        partner_id: str,
        product_id: str,
        base_url: str,
        utm_params: Optional[UTMParams] = None,
    ) -> str:
        """Build the redirect URL for an offer. Does not record a click."""
        await resolve_active_offer(self.catalog, partner_id, product_id)

        params = [("p", partner_id), ("pr", product_id)]
        if utm_params:
            params.extend(utm_params.items())
        return f"{base_url.rstrip('/')}{self.redirect_path}?{urlencode(params)}"

    async def process_redirect(
        self,
        partner_id: str,
        product_id: str,
        context: RequestContext,
        user_id: Optional[str] = None,
    ) -> RedirectResult:
        """Track the click, then resolve the partner URL tagged with ``ref``."""
        tracking_id = await self.recorder.track_click(TrackingData(
            partner_id=partner_id,
            product_id=product_id,
            user_id=user_id,
            ip_address=context.ip or "unknown",
            user_agent=context.user_agent or "unknown",
            referrer=context.referrer,
            session_id=context.session_id,
            utm_source=context.utm.source,
            utm_medium=context.utm.medium,
            utm_campaign=context.utm.campaign,
        ))

        # The product may have been deactivated since the click was validated
        product = await self.catalog.get_product(product_id)
        if product is None or not product.is_active:
            logger.warning(
                "Product %s disappeared after click %s was tracked", product_id, tracking_id
            )
            raise ProductInactiveOrMissing(product_id)

        redirect_url = with_query_params(
            product.application_url,
            [("ref", tracking_id), *context.utm.items()],
        )
        return RedirectResult(tracking_id=tracking_id, redirect_url=redirect_url)
