"""
Commission payout tracking.

Works over converted clicks with a positive commission. Each one carries a
payment status (pending → paid); payment reference, method and date are
only ever written by ``mark_commissions_as_paid``.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.analytics.pipeline import group_by
from affiliate_engine.clock import Clock, to_naive_utc, utcnow
from affiliate_engine.db.catalog import CatalogReader, SqlCatalogReader
from affiliate_engine.db.ledger import ClickLedger
from affiliate_engine.errors import InvalidIdentifiers, NoEligibleCommissions
from affiliate_engine.models.click import Click, PaymentStatus
from affiliate_engine.models.commission import (
    CommissionDetails,
    CommissionReport,
    CommissionSummary,
    PaymentResult,
    ReportSummary,
)
from affiliate_engine.services.commission import round_money
from affiliate_engine.services.validation import is_valid_identifier, require_identifier

logger = logging.getLogger(__name__)


def _is_paid(click: Click) -> bool:
    return click.payment_status == PaymentStatus.PAID.value


def _amount(click: Click) -> float:
    return click.commission_amount or 0.0


def _summarize(partner_id: str, partner_name: str, clicks: list[Click]) -> CommissionSummary:
    total = sum(_amount(c) for c in clicks)
    paid = sum(_amount(c) for c in clicks if _is_paid(c))
    payment_dates = [c.payment_date for c in clicks if c.payment_date is not None]
    return CommissionSummary(
        partner_id=partner_id,
        partner_name=partner_name,
        total_commission=round_money(total),
        paid_commission=round_money(paid),
        pending_commission=round_money(total - paid),
        conversions=len(clicks),
        average_commission=round_money(total / len(clicks)) if clicks else 0.0,
        last_payment_date=max(payment_dates) if payment_dates else None,
    )


def _to_details(click: Click) -> CommissionDetails:
    return CommissionDetails(
        click_id=click.id,
        tracking_id=click.tracking_id,
        partner_id=click.partner_id,
        product_id=click.product_id,
        user_id=click.user_id,
        commission_amount=_amount(click),
        conversion_date=click.conversion_date,
        payment_status=click.payment_status or PaymentStatus.PENDING.value,
        payment_reference=click.payment_reference,
    )


class CommissionTracker:
    def __init__(
        self,
        session: AsyncSession,
        catalog: Optional[CatalogReader] = None,
        clock: Clock = utcnow,
    ):
        self.session = session
        self.ledger = ClickLedger(session)
        self.catalog = catalog or SqlCatalogReader(session)
        self.clock = clock

    async def _partner_breakdown(self, clicks: Iterable[Click]) -> list[CommissionSummary]:
        groups = group_by(clicks, lambda c: c.partner_id)
        partners = await self.catalog.get_partners(groups.keys())
        rows = [
            _summarize(pid, partners[pid].name, group)
            for pid, group in groups.items()
            if pid in partners
        ]
        return sorted(rows, key=lambda r: r.total_commission, reverse=True)

    async def get_commission_summary(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list[CommissionSummary]:
        """Per-partner totals; the date filter applies only when both bounds are given."""
        if start_date is not None and end_date is not None:
            clicks = await self.ledger.commissions(
                start=to_naive_utc(start_date), end=to_naive_utc(end_date)
            )
        else:
            clicks = await self.ledger.commissions()
        return await self._partner_breakdown(clicks)

    async def get_partner_commission_details(
        self, partner_id: str, page: int = 1, limit: int = 50
    ) -> dict:
        require_identifier(partner_id, "partner_id")
        page = max(page, 1)
        limit = max(limit, 1)

        clicks, total = await self.ledger.commissions_page(
            partner_id, offset=(page - 1) * limit, limit=limit
        )
        return {
            "commissions": [_to_details(c) for c in clicks],
            "total": total,
            "total_pages": math.ceil(total / limit),
        }

    async def mark_commissions_as_paid(
        self,
        commission_ids: list[str],
        payment_reference: str,
        payment_method: str,
        notes: Optional[str] = None,
    ) -> PaymentResult:
        invalid = [cid for cid in commission_ids if not is_valid_identifier(cid)]
        if invalid:
            raise InvalidIdentifiers(invalid)

        eligible = await self.ledger.payable(list(commission_ids))
        if not eligible:
            raise NoEligibleCommissions()

        paid_amounts = await self.ledger.mark_paid(
            [c.id for c in eligible],
            payment_reference=payment_reference,
            payment_method=payment_method,
            paid_at=self.clock(),
            notes=notes,
        )
        if not paid_amounts:
            # A concurrent payout claimed every row after we selected them
            await self.session.rollback()
            raise NoEligibleCommissions()
        await self.session.commit()

        updated = len(paid_amounts)
        total_amount = round_money(sum(paid_amounts))
        logger.info(
            "Commissions marked paid: requested=%d updated=%d amount=%.2f reference=%s",
            len(commission_ids), updated, total_amount, payment_reference,
        )
        return PaymentResult(success=True, updated_count=updated, total_amount=total_amount)

    async def generate_commission_report(
        self,
        start_date: datetime,
        end_date: datetime,
        partner_id: Optional[str] = None,
    ) -> CommissionReport:
        if partner_id is not None and not is_valid_identifier(partner_id):
            partner_id = None

        clicks = await self.ledger.commissions(
            partner_id=partner_id,
            start=to_naive_utc(start_date),
            end=to_naive_utc(end_date),
        )

        total = sum(_amount(c) for c in clicks)
        paid = sum(_amount(c) for c in clicks if _is_paid(c))
        summary = ReportSummary(
            total_commissions=len(clicks),
            total_amount=round_money(total),
            paid_amount=round_money(paid),
            pending_amount=round_money(total - paid),
            average_commission=round_money(total / len(clicks)) if clicks else 0.0,
        )

        by_day = group_by(clicks, lambda c: c.conversion_date.date())
        daily = [
            {
                "date": day.isoformat(),
                "commissions": len(group),
                "amount": round_money(sum(_amount(c) for c in group)),
            }
            for day, group in sorted(by_day.items())
        ]

        breakdown = [] if partner_id else await self._partner_breakdown(clicks)
        return CommissionReport(summary=summary, partner_breakdown=breakdown, daily_breakdown=daily)
