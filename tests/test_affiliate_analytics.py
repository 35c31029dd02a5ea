"""Tests for the ledger-backed analytics aggregator."""
from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import delete

from affiliate_engine.db.seed import add_partner, add_product
from affiliate_engine.db.tables import PartnerRow
from affiliate_engine.errors import InvalidExportType, InvalidIdentifier
from affiliate_engine.models.analytics import DateRange
from affiliate_engine.services.affiliate_analytics import AffiliateAnalytics

NOW = datetime(2026, 10, 1, 12, 0)
WINDOW = DateRange(NOW - timedelta(days=7), NOW)


async def _seed_five_conversions(make_click, offer):
    for i, amount in enumerate([100, 150, 200, 250, 300]):
        await make_click(
            offer.partner_id, offer.product_id, NOW - timedelta(days=1, hours=i),
            converted=True, commission=amount,
        )


@pytest.mark.asyncio
async def test_overall_metrics(session, offer, make_click):
    await _seed_five_conversions(make_click, offer)
    for i in range(5):
        await make_click(offer.partner_id, offer.product_id, NOW - timedelta(days=2, hours=i))
    # Outside the window
    await make_click(offer.partner_id, offer.product_id, NOW - timedelta(days=30), converted=True, commission=999)

    metrics = await AffiliateAnalytics(session).get_overall_metrics(WINDOW)
    assert metrics.total_clicks == 10
    assert metrics.total_conversions == 5
    assert metrics.conversion_rate == 50.0
    assert metrics.total_commission == 1000.0
    assert metrics.average_commission == 200.0


@pytest.mark.asyncio
async def test_overall_metrics_empty_window(session):
    metrics = await AffiliateAnalytics(session).get_overall_metrics(WINDOW)
    assert metrics.total_clicks == 0
    assert metrics.conversion_rate == 0.0


@pytest.mark.asyncio
async def test_partner_performance_with_trends(session, offer, fixed_offer, make_click):
    # Current window: lender 4 clicks / 2 conversions, issuer 1 conversion of 500
    for i in range(4):
        await make_click(
            offer.partner_id, offer.product_id, NOW - timedelta(days=1, hours=i),
            converted=i < 2, commission=100 if i < 2 else None,
        )
    await make_click(
        fixed_offer.partner_id, fixed_offer.product_id, NOW - timedelta(days=2),
        converted=True, commission=500,
    )
    # Previous window: lender 2 clicks / 1 conversion
    for i in range(2):
        await make_click(
            offer.partner_id, offer.product_id, NOW - timedelta(days=10, hours=i),
            converted=i == 0, commission=100 if i == 0 else None,
        )

    rows = await AffiliateAnalytics(session).get_partner_performance(WINDOW)
    assert [r.partner_name for r in rows] == ["Test Card Issuer", "Test Lender"]

    lender = rows[1]
    assert lender.metrics.total_clicks == 4
    assert lender.metrics.total_commission == 200.0
    assert lender.trends.clicks_growth == 100.0
    assert lender.trends.conversions_growth == 100.0
    assert lender.trends.revenue_growth == 100.0

    issuer = rows[0]
    assert issuer.partner_type == "credit_card"
    assert issuer.trends.clicks_growth == 100.0


@pytest.mark.asyncio
async def test_partner_performance_limit(session, offer, fixed_offer, make_click):
    await make_click(offer.partner_id, offer.product_id, NOW - timedelta(hours=1))
    await make_click(fixed_offer.partner_id, fixed_offer.product_id, NOW - timedelta(hours=1))
    rows = await AffiliateAnalytics(session).get_partner_performance(WINDOW, limit=1)
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_product_performance_filtered_by_partner(session, offer, fixed_offer, make_click):
    second = await add_product(session, offer.partner_id, "Test Home Loan", "https://lender.example.com/home")
    await session.commit()

    await make_click(offer.partner_id, offer.product_id, NOW - timedelta(hours=3), converted=True, commission=40)
    await make_click(offer.partner_id, second.id, NOW - timedelta(hours=2), converted=True, commission=90)
    await make_click(fixed_offer.partner_id, fixed_offer.product_id, NOW - timedelta(hours=1))

    analytics = AffiliateAnalytics(session)
    all_rows = await analytics.get_product_performance(WINDOW)
    assert len(all_rows) == 3

    rows = await analytics.get_product_performance(WINDOW, partner_id=offer.partner_id)
    assert [r.product_name for r in rows] == ["Test Home Loan", "Test Personal Loan"]
    assert all(r.partner_name == "Test Lender" for r in rows)


@pytest.mark.asyncio
async def test_product_performance_rejects_bad_partner_id(session):
    with pytest.raises(InvalidIdentifier):
        await AffiliateAnalytics(session).get_product_performance(WINDOW, partner_id="nope")


@pytest.mark.asyncio
async def test_uncatalogued_partner_dropped(session, make_click):
    ghost = await add_partner(session, "Ghost Partner")
    ghost_product = await add_product(session, ghost.id, "Ghost", "https://ghost.example.com")
    await session.commit()
    await make_click(ghost.id, ghost_product.id, NOW - timedelta(hours=1))

    await session.execute(delete(PartnerRow).where(PartnerRow.id == ghost.id))
    await session.commit()

    rows = await AffiliateAnalytics(session).get_partner_performance(WINDOW)
    assert rows == []


@pytest.mark.asyncio
async def test_daily_metrics_three_days(session, offer, make_click):
    window = DateRange.from_dates(date(2026, 9, 1), date(2026, 9, 3))
    await make_click(offer.partner_id, offer.product_id, datetime(2026, 9, 2, 10), converted=True, commission=60)
    await make_click(offer.partner_id, offer.product_id, datetime(2026, 9, 2, 11))

    days = await AffiliateAnalytics(session).get_daily_metrics(window)
    assert len(days) == 3
    assert [d.clicks for d in days] == [0, 2, 0]
    assert days[1].commission == 60.0
    assert days[1].conversion_rate == 50.0


@pytest.mark.asyncio
async def test_top_performers(session, offer, fixed_offer, make_click):
    await make_click(offer.partner_id, offer.product_id, NOW - timedelta(hours=1), converted=True, commission=10)
    await make_click(fixed_offer.partner_id, fixed_offer.product_id, NOW - timedelta(hours=1),
                     converted=True, commission=500)

    top = await AffiliateAnalytics(session).get_top_performers(WINDOW, limit=1)
    assert [p.partner_name for p in top.partners] == ["Test Card Issuer"]
    assert [p.product_name for p in top.products] == ["Test Rewards Card"]


@pytest.mark.asyncio
async def test_export_partners_csv(session, offer, make_click):
    await make_click(offer.partner_id, offer.product_id, NOW - timedelta(hours=1), converted=True, commission=25)

    body = await AffiliateAnalytics(session).export_performance_data(WINDOW, "partners")
    lines = body.splitlines()
    assert lines[0].startswith("Partner ID,Partner Name,Partner Type,")
    assert lines[1].startswith(f"{offer.partner_id},Test Lender,loan,1,1,100.00,25.00,25.00")
    assert body.endswith("\n")


@pytest.mark.asyncio
async def test_export_daily_csv(session):
    window = DateRange.from_dates(date(2026, 9, 1), date(2026, 9, 2))
    body = await AffiliateAnalytics(session).export_performance_data(window, "daily")
    assert body.splitlines()[1:] == ["2026-09-01,0,0,0.00,0.00", "2026-09-02,0,0,0.00,0.00"]


@pytest.mark.asyncio
async def test_export_unknown_type(session):
    with pytest.raises(InvalidExportType):
        await AffiliateAnalytics(session).export_performance_data(WINDOW, "invoices")
