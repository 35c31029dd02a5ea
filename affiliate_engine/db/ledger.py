"""Click ledger repository — DB access for the affiliate click table.

Inserts are append-only. The only mutation of attribution state is
``mark_converted``, a single conditional UPDATE so two concurrent
conversions of the same tracking ID cannot both succeed.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.db.tables import AffiliateClickRow
from affiliate_engine.models.click import Click, PaymentStatus, TrackingData


def row_to_click(row: AffiliateClickRow) -> Click:
    """Convert a DB row to a Click record."""
    return Click(
        id=row.id,
        tracking_id=row.tracking_id,
        partner_id=row.partner_id,
        product_id=row.product_id,
        user_id=row.user_id,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        referrer=row.referrer,
        session_id=row.session_id,
        utm_source=row.utm_source,
        utm_medium=row.utm_medium,
        utm_campaign=row.utm_campaign,
        clicked_at=row.clicked_at,
        converted=bool(row.converted),
        conversion_date=row.conversion_date,
        conversion_type=row.conversion_type,
        commission_amount=row.commission_amount,
        payment_status=row.payment_status,
        payment_reference=row.payment_reference,
        payment_method=row.payment_method,
        payment_date=row.payment_date,
        metadata=row.conversion_metadata,
    )


def _pending_payment():
    return or_(
        AffiliateClickRow.payment_status.is_(None),
        AffiliateClickRow.payment_status == PaymentStatus.PENDING.value,
    )


class ClickLedger:
    """Reads and writes against the click ledger for one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Writes ───────────────────────────────────────────────────────────

    async def append(self, tracking_id: str, data: TrackingData, clicked_at: datetime) -> Click:
        row = AffiliateClickRow(
            tracking_id=tracking_id,
            partner_id=data.partner_id,
            product_id=data.product_id,
            user_id=data.user_id,
            ip_address=data.ip_address,
            user_agent=data.user_agent,
            referrer=data.referrer,
            session_id=data.session_id,
            utm_source=data.utm_source,
            utm_medium=data.utm_medium,
            utm_campaign=data.utm_campaign,
            clicked_at=clicked_at,
            converted=False,
        )
        self.session.add(row)
        await self.session.flush()
        return row_to_click(row)

    async def mark_converted(
        self,
        tracking_id: str,
        conversion_date: datetime,
        commission_amount: float,
        conversion_type: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Flip ``converted`` false → true. Returns False if another writer won."""
        stmt = (
            update(AffiliateClickRow)
            .where(
                AffiliateClickRow.tracking_id == tracking_id,
                AffiliateClickRow.converted.is_(False),
            )
            .values(
                converted=True,
                conversion_date=conversion_date,
                commission_amount=commission_amount,
                conversion_type=conversion_type,
                conversion_metadata=metadata,
                payment_status=PaymentStatus.PENDING.value,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_paid(
        self,
        click_ids: list[str],
        payment_reference: str,
        payment_method: str,
        paid_at: datetime,
        notes: Optional[str] = None,
    ) -> list[float]:
        """Mark pending converted clicks as paid. Already-paid rows are skipped.

        Returns the commission of each row this statement moved to paid.
        """
        stmt = (
            update(AffiliateClickRow)
            .where(
                AffiliateClickRow.id.in_(click_ids),
                AffiliateClickRow.converted.is_(True),
                _pending_payment(),
            )
            .values(
                payment_status=PaymentStatus.PAID.value,
                payment_reference=payment_reference,
                payment_method=payment_method,
                payment_date=paid_at,
                payment_notes=notes,
            )
            .returning(AffiliateClickRow.commission_amount)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return [amount or 0.0 for amount in result.scalars().all()]

    # ── Reads ────────────────────────────────────────────────────────────

    async def get_by_tracking_id(self, tracking_id: str) -> Optional[Click]:
        result = await self.session.execute(
            select(AffiliateClickRow)
            .where(AffiliateClickRow.tracking_id == tracking_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return row_to_click(row) if row else None

    async def count_recent_from_ip(self, ip_address: str, since: datetime, exclude_id: str) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(AffiliateClickRow).where(
                AffiliateClickRow.ip_address == ip_address,
                AffiliateClickRow.clicked_at >= since,
                AffiliateClickRow.id != exclude_id,
            )
        )
        return result.scalar() or 0

    async def clicks_between(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        partner_id: Optional[str] = None,
    ) -> list[Click]:
        """All clicks with ``start <= clicked_at <= end`` (either bound optional)."""
        stmt = select(AffiliateClickRow)
        if start is not None:
            stmt = stmt.where(AffiliateClickRow.clicked_at >= start)
        if end is not None:
            stmt = stmt.where(AffiliateClickRow.clicked_at <= end)
        if partner_id is not None:
            stmt = stmt.where(AffiliateClickRow.partner_id == partner_id)
        result = await self.session.execute(
            stmt.order_by(AffiliateClickRow.clicked_at).execution_options(populate_existing=True)
        )
        return [row_to_click(r) for r in result.scalars().all()]

    async def partner_clicks_page(
        self,
        partner_id: str,
        offset: int,
        limit: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        converted: Optional[bool] = None,
    ) -> tuple[list[Click], int]:
        filters = [AffiliateClickRow.partner_id == partner_id]
        if start is not None:
            filters.append(AffiliateClickRow.clicked_at >= start)
        if end is not None:
            filters.append(AffiliateClickRow.clicked_at <= end)
        if converted is not None:
            filters.append(AffiliateClickRow.converted.is_(converted))

        total = (await self.session.execute(
            select(func.count()).select_from(AffiliateClickRow).where(*filters)
        )).scalar() or 0
        result = await self.session.execute(
            select(AffiliateClickRow)
            .where(*filters)
            .order_by(AffiliateClickRow.clicked_at.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [row_to_click(r) for r in result.scalars().all()], total

    async def commissions(
        self,
        partner_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Click]:
        """Converted clicks with a positive commission, filtered on conversion date."""
        stmt = select(AffiliateClickRow).where(
            AffiliateClickRow.converted.is_(True),
            AffiliateClickRow.commission_amount > 0,
        )
        if partner_id is not None:
            stmt = stmt.where(AffiliateClickRow.partner_id == partner_id)
        if start is not None:
            stmt = stmt.where(AffiliateClickRow.conversion_date >= start)
        if end is not None:
            stmt = stmt.where(AffiliateClickRow.conversion_date <= end)
        result = await self.session.execute(
            stmt.order_by(AffiliateClickRow.conversion_date.desc())
            .execution_options(populate_existing=True)
        )
        return [row_to_click(r) for r in result.scalars().all()]

    async def commissions_page(
        self, partner_id: str, offset: int, limit: int
    ) -> tuple[list[Click], int]:
        filters = [
            AffiliateClickRow.partner_id == partner_id,
            AffiliateClickRow.converted.is_(True),
            AffiliateClickRow.commission_amount > 0,
        ]
        total = (await self.session.execute(
            select(func.count()).select_from(AffiliateClickRow).where(*filters)
        )).scalar() or 0
        result = await self.session.execute(
            select(AffiliateClickRow)
            .where(*filters)
            .order_by(AffiliateClickRow.conversion_date.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [row_to_click(r) for r in result.scalars().all()], total

    async def payable(self, click_ids: list[str]) -> list[Click]:
        """Converted clicks among ``click_ids`` whose payout is still pending."""
        result = await self.session.execute(
            select(AffiliateClickRow).where(
                AffiliateClickRow.id.in_(click_ids),
                AffiliateClickRow.converted.is_(True),
                _pending_payment(),
            ).execution_options(populate_existing=True)
        )
        return [row_to_click(r) for r in result.scalars().all()]
