"""Catalog seeding helpers — used by the dev seed script and the tests."""
from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.db.tables import PartnerRow, ProductRow
from affiliate_engine.models.catalog import CommissionType, ConversionGoal, PartnerType

DEFAULT_GOALS = [ConversionGoal.APPLICATION_SUBMITTED.value, ConversionGoal.LOAN_APPROVED.value]


async def add_partner(
    session: AsyncSession,
    name: str,
    *,
    type: PartnerType = PartnerType.LOAN,
    commission_type: CommissionType = CommissionType.PERCENTAGE,
    commission_amount: float = 0.0,
    attribution_window_days: int = 30,
    is_active: bool = True,
    website: Optional[str] = None,
    conversion_goals: Optional[list[str]] = None,
) -> PartnerRow:
    row = PartnerRow(
        name=name,
        type=PartnerType(type).value,
        is_active=is_active,
        website=website,
        commission_type=CommissionType(commission_type).value,
        commission_amount=commission_amount,
        conversion_goals=list(conversion_goals if conversion_goals is not None else DEFAULT_GOALS),
        attribution_window_days=attribution_window_days,
    )
    session.add(row)
    await session.flush()
    return row


async def add_product(
    session: AsyncSession,
    partner_id: str,
    name: str,
    application_url: str,
    *,
    type: str = "personal_loan",
    is_active: bool = True,
    min_amount: Optional[float] = None,
    max_amount: Optional[float] = None,
) -> ProductRow:
    row = ProductRow(
        partner_id=partner_id,
        name=name,
        type=type,
        application_url=application_url,
        is_active=is_active,
        min_amount=min_amount,
        max_amount=max_amount,
    )
    session.add(row)
    await session.flush()
    return row


async def seed_demo_catalog(session: AsyncSession) -> list[PartnerRow]:
    """A handful of lenders, card issuers and brokers with one offer each.

    Idempotence is the caller's job; this always inserts.
    """
    partners = []

    lender = await add_partner(
        session, "Northwind Finance", type=PartnerType.LOAN,
        commission_type=CommissionType.PERCENTAGE, commission_amount=2.5,
        website="https://northwind.example.com",
    )
    await add_product(
        session, lender.id, "Northwind Personal Loan",
        "https://northwind.example.com/apply/personal",
        type="personal_loan", min_amount=50_000, max_amount=2_500_000,
    )
    partners.append(lender)

    issuer = await add_partner(
        session, "Crescent Bank", type=PartnerType.CREDIT_CARD,
        commission_type=CommissionType.FIXED, commission_amount=1500,
        attribution_window_days=45,
        website="https://crescent.example.com",
    )
    await add_product(
        session, issuer.id, "Crescent Rewards Card",
        "https://crescent.example.com/cards/rewards?src=aff",
        type="credit_card",
    )
    partners.append(issuer)

    broker = await add_partner(
        session, "Tidewater Securities", type=PartnerType.BROKER,
        commission_type=CommissionType.FIXED, commission_amount=500,
        attribution_window_days=7,
        conversion_goals=[ConversionGoal.ACCOUNT_OPENED.value],
        website="https://tidewater.example.com",
    )
    await add_product(
        session, broker.id, "Tidewater Demat Account",
        "https://tidewater.example.com/open-account",
        type="demat",
    )
    partners.append(broker)

    return partners
