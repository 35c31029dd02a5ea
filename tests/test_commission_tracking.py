"""Tests for commission summaries, payouts and reports."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta

import pytest

from affiliate_engine.db.ledger import ClickLedger
from affiliate_engine.errors import InvalidIdentifier, InvalidIdentifiers, NoEligibleCommissions
from affiliate_engine.services.commission_tracking import CommissionTracker

NOW = datetime(2026, 10, 1, 12, 0)


async def _five_conversions(make_click, offer, paid: int = 0):
    rows = []
    for i, amount in enumerate([100, 150, 200, 250, 300]):
        rows.append(await make_click(
            offer.partner_id, offer.product_id, NOW - timedelta(days=5 - i),
            converted=True, commission=amount,
            payment_status="paid" if i < paid else None,
        ))
    return rows


# ── Payouts ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_mark_paid_skips_already_paid(session, offer, make_click, clock):
    rows = await _five_conversions(make_click, offer, paid=2)

    result = await CommissionTracker(session, clock=clock).mark_commissions_as_paid(
        [r.id for r in rows], "UTR-2026-0001", "bank_transfer", notes="September payout",
    )
    assert result.success is True
    assert result.updated_count == 3
    assert result.total_amount == 750.0

    click = await ClickLedger(session).get_by_tracking_id(rows[4].tracking_id)
    assert click.payment_status == "paid"
    assert click.payment_reference == "UTR-2026-0001"
    assert click.payment_method == "bank_transfer"
    assert click.payment_date == clock.now

    # Previously paid rows keep their original (empty) reference
    first = await ClickLedger(session).get_by_tracking_id(rows[0].tracking_id)
    assert first.payment_reference is None


@pytest.mark.asyncio
async def test_mark_paid_rejects_malformed_ids(session, offer, make_click):
    rows = await _five_conversions(make_click, offer)
    with pytest.raises(InvalidIdentifiers) as exc:
        await CommissionTracker(session).mark_commissions_as_paid(
            [rows[0].id, "not-a-uuid", "42"], "REF", "upi",
        )
    assert exc.value.invalid_ids == ["not-a-uuid", "42"]

    # Nothing was written
    click = await ClickLedger(session).get_by_tracking_id(rows[0].tracking_id)
    assert click.payment_status == "pending"


@pytest.mark.asyncio
async def test_mark_paid_nothing_eligible(session, offer, make_click):
    rows = await _five_conversions(make_click, offer, paid=5)
    unconverted = await make_click(offer.partner_id, offer.product_id, NOW)

    with pytest.raises(NoEligibleCommissions):
        await CommissionTracker(session).mark_commissions_as_paid(
            [r.id for r in rows] + [unconverted.id, str(uuid.uuid4())], "REF", "upi",
        )


@pytest.mark.asyncio
async def test_mark_paid_twice(session, offer, make_click):
    rows = await _five_conversions(make_click, offer)
    tracker = CommissionTracker(session)
    await tracker.mark_commissions_as_paid([rows[0].id], "REF-1", "upi")
    with pytest.raises(NoEligibleCommissions):
        await tracker.mark_commissions_as_paid([rows[0].id], "REF-2", "upi")


# ── Summaries ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_summary_per_partner(session, offer, fixed_offer, make_click, clock):
    rows = await _five_conversions(make_click, offer)
    await make_click(fixed_offer.partner_id, fixed_offer.product_id, NOW, converted=True, commission=500)
    await make_click(fixed_offer.partner_id, fixed_offer.product_id, NOW, converted=True, commission=0)

    tracker = CommissionTracker(session, clock=clock)
    await tracker.mark_commissions_as_paid([rows[0].id, rows[1].id], "REF", "neft")

    summary = await tracker.get_commission_summary()
    assert [s.partner_name for s in summary] == ["Test Lender", "Test Card Issuer"]

    lender = summary[0]
    assert lender.total_commission == 1000.0
    assert lender.paid_commission == 250.0
    assert lender.pending_commission == 750.0
    assert lender.conversions == 5
    assert lender.average_commission == 200.0
    assert lender.last_payment_date == clock.now

    issuer = summary[1]
    # Zero-commission conversions are excluded
    assert issuer.conversions == 1
    assert issuer.last_payment_date is None


@pytest.mark.asyncio
async def test_summary_date_filter_needs_both_bounds(session, offer, make_click):
    await _five_conversions(make_click, offer)
    tracker = CommissionTracker(session)

    # Conversions happen 1h after the click: days -5..-1
    windowed = await tracker.get_commission_summary(NOW - timedelta(days=2), NOW)
    assert windowed[0].conversions == 2

    unfiltered = await tracker.get_commission_summary(NOW - timedelta(days=2), None)
    assert unfiltered[0].conversions == 5


@pytest.mark.asyncio
async def test_partner_commission_details_paginated(session, offer, make_click):
    await _five_conversions(make_click, offer)
    await make_click(offer.partner_id, offer.product_id, NOW)  # not converted

    result = await CommissionTracker(session).get_partner_commission_details(offer.partner_id, page=1, limit=2)
    assert result["total"] == 5
    assert result["total_pages"] == 3
    assert [c.commission_amount for c in result["commissions"]] == [300.0, 250.0]
    assert result["commissions"][0].payment_status == "pending"

    last = await CommissionTracker(session).get_partner_commission_details(offer.partner_id, page=3, limit=2)
    assert [c.commission_amount for c in last["commissions"]] == [100.0]


@pytest.mark.asyncio
async def test_partner_commission_details_bad_id(session):
    with pytest.raises(InvalidIdentifier):
        await CommissionTracker(session).get_partner_commission_details("partner-1")


# ── Reports ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_report(session, offer, fixed_offer, make_click):
    await _five_conversions(make_click, offer, paid=1)
    await make_click(fixed_offer.partner_id, fixed_offer.product_id, NOW - timedelta(days=1),
                     converted=True, commission=500)

    report = await CommissionTracker(session).generate_commission_report(NOW - timedelta(days=10), NOW)
    assert report.summary.total_commissions == 6
    assert report.summary.total_amount == 1500.0
    assert report.summary.paid_amount == 100.0
    assert report.summary.pending_amount == 1400.0
    assert report.summary.average_commission == 250.0

    assert [p.partner_name for p in report.partner_breakdown] == ["Test Lender", "Test Card Issuer"]

    days = {d["date"]: d for d in report.daily_breakdown}
    assert days["2026-09-30"] == {"date": "2026-09-30", "commissions": 2, "amount": 800.0}
    assert [d["date"] for d in report.daily_breakdown] == sorted(days)


@pytest.mark.asyncio
async def test_report_for_one_partner_has_no_breakdown(session, offer, fixed_offer, make_click):
    await _five_conversions(make_click, offer)
    await make_click(fixed_offer.partner_id, fixed_offer.product_id, NOW, converted=True, commission=500)

    report = await CommissionTracker(session).generate_commission_report(
        NOW - timedelta(days=10), NOW + timedelta(days=1), partner_id=fixed_offer.partner_id,
    )
    assert report.summary.total_commissions == 1
    assert report.summary.total_amount == 500.0
    assert report.partner_breakdown == []
    assert report.to_dict()["partnerBreakdown"] == []


# ── Overlapping payouts ──────────────────────────────────────────────────────

def _rival_pays_after_select(tracker, session_factory, clock, rival_ids, results):
    """Let another payout run between ``payable`` and the UPDATE."""
    select_payable = tracker.ledger.payable

    async def payable(click_ids):
        eligible = await select_payable(click_ids)
        async with session_factory() as other:
            results.append(await CommissionTracker(other, clock=clock).mark_commissions_as_paid(
                rival_ids, "REF-RIVAL", "neft",
            ))
        return eligible

    tracker.ledger.payable = payable


@pytest.mark.asyncio
async def test_payout_loses_every_row_to_rival(session, session_factory, offer, make_click, clock):
    rows = await _five_conversions(make_click, offer)
    ids = [r.id for r in rows[:3]]
    tracker = CommissionTracker(session, clock=clock)
    rival = []
    _rival_pays_after_select(tracker, session_factory, clock, ids, rival)

    with pytest.raises(NoEligibleCommissions):
        await tracker.mark_commissions_as_paid(ids, "REF-LATE", "upi")

    assert rival[0].updated_count == 3
    assert rival[0].total_amount == 450.0
    for row in rows[:3]:
        click = await ClickLedger(session).get_by_tracking_id(row.tracking_id)
        assert click.payment_reference == "REF-RIVAL"


@pytest.mark.asyncio
async def test_payout_total_counts_only_rows_it_paid(session, session_factory, offer, make_click, clock):
    rows = await _five_conversions(make_click, offer)
    ids = [r.id for r in rows[:3]]
    tracker = CommissionTracker(session, clock=clock)
    rival = []
    _rival_pays_after_select(tracker, session_factory, clock, ids[:2], rival)

    result = await tracker.mark_commissions_as_paid(ids, "REF-LATE", "upi")

    assert rival[0].total_amount == 250.0
    assert result.updated_count == 1
    assert result.total_amount == 200.0
    third = await ClickLedger(session).get_by_tracking_id(rows[2].tracking_id)
    assert third.payment_reference == "REF-LATE"
