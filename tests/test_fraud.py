"""Tests for click fraud scoring."""
from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from affiliate_engine.errors import NotFound
from affiliate_engine.models.click import Click
from affiliate_engine.services.fraud import (
    FRAUD_THRESHOLD,
    FraudScorer,
    is_bot_user_agent,
    score_click,
)

BROWSER = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/126.0"
NOW = datetime(2026, 10, 1, 12, 0, 0)


def _click(**overrides) -> Click:
    fields = dict(
        id="c1",
        tracking_id="m1abcdef-0123456789ab",
        partner_id="p",
        product_id="pr",
        ip_address="203.0.113.9",
        user_agent=BROWSER,
        referrer="https://blog.example.com",
        clicked_at=NOW,
    )
    fields.update(overrides)
    return Click(**fields)


# ── Pure scoring ─────────────────────────────────────────────────────────────

class TestScoreClick:
    def test_clean_click(self):
        verdict = score_click(_click(), recent_ip_clicks=0)
        assert verdict.risk_score == 0
        assert verdict.reasons == []
        assert verdict.is_fraudulent is False

    def test_python_requests_without_referrer_hits_threshold(self):
        verdict = score_click(_click(user_agent="python-requests/2.31", referrer=None), 0)
        assert verdict.risk_score == 50
        assert verdict.is_fraudulent is True
        assert "Bot-like user agent detected" in verdict.reasons
        assert "Missing referrer information" in verdict.reasons

    def test_short_user_agent(self):
        verdict = score_click(_click(user_agent="Mozilla"), 0)
        assert verdict.risk_score == 20
        assert verdict.reasons == ["Suspicious or missing user agent"]

    def test_short_bot_user_agent_scores_both(self):
        verdict = score_click(_click(user_agent="curl/8"), 0)
        assert verdict.risk_score == 60
        assert verdict.is_fraudulent

    def test_ip_volume_boundary(self):
        assert score_click(_click(), recent_ip_clicks=9).risk_score == 0
        verdict = score_click(_click(), recent_ip_clicks=10)
        assert verdict.risk_score == 30
        assert verdict.reasons == ["Multiple clicks from same IP address"]

    def test_fast_conversion(self):
        fast = _click(converted=True, conversion_date=NOW + timedelta(seconds=10))
        slow = _click(converted=True, conversion_date=NOW + timedelta(seconds=30))
        assert score_click(fast, 0).risk_score == 25
        assert score_click(slow, 0).risk_score == 0

    def test_all_signals_are_additive(self):
        verdict = score_click(
            _click(
                user_agent="wget",
                referrer=None,
                converted=True,
                conversion_date=NOW + timedelta(seconds=1),
            ),
            recent_ip_clicks=50,
        )
        assert verdict.risk_score == 30 + 20 + 40 + 25 + 10
        assert len(verdict.reasons) == 5

    def test_threshold_is_inclusive(self):
        assert FRAUD_THRESHOLD == 50


class TestBotUserAgent:
    @pytest.mark.parametrize("ua", [
        "Googlebot/2.1", "AhrefsCrawler", "curl/8.4.0", "Wget/1.21",
        "python-urllib3/2.0", "Java/17.0.2", "SiteScraper 1.0", "Spider-X",
    ])
    def test_detected(self, ua):
        assert is_bot_user_agent(ua)

    def test_browser_not_flagged(self):
        assert not is_bot_user_agent(BROWSER)
        assert not is_bot_user_agent(None)


# ── Ledger-backed detection ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_detect_fraud_unknown_tracking_id(session, clock):
    with pytest.raises(NotFound):
        await FraudScorer(session, clock).detect_fraud("doesnotexist-000000")


@pytest.mark.asyncio
async def test_detect_fraud_clean_browser_click(session, offer, make_click, clock):
    row = await make_click(offer.partner_id, offer.product_id, clock.now - timedelta(minutes=5))
    verdict = await FraudScorer(session, clock).detect_fraud(row.tracking_id)
    assert verdict.risk_score == 0
    assert not verdict.is_fraudulent


@pytest.mark.asyncio
async def test_detect_fraud_bot_without_referrer(session, offer, make_click, clock):
    row = await make_click(
        offer.partner_id, offer.product_id, clock.now,
        user_agent="python-requests/2.31", referrer=None,
    )
    verdict = await FraudScorer(session, clock).detect_fraud(row.tracking_id)
    assert verdict.risk_score == 50
    assert verdict.is_fraudulent


@pytest.mark.asyncio
async def test_detect_fraud_counts_same_ip_in_trailing_hour(session, offer, make_click, clock):
    ip = "192.0.2.99"
    target = await make_click(offer.partner_id, offer.product_id, clock.now, ip_address=ip)
    for i in range(10):
        await make_click(
            offer.partner_id, offer.product_id, clock.now - timedelta(minutes=i * 5),
            ip_address=ip,
        )
    # Outside the hour and from another IP: not counted
    await make_click(offer.partner_id, offer.product_id, clock.now - timedelta(hours=2), ip_address=ip)
    await make_click(offer.partner_id, offer.product_id, clock.now, ip_address="192.0.2.100")

    verdict = await FraudScorer(session, clock).detect_fraud(target.tracking_id)
    assert verdict.risk_score == 30
    assert verdict.reasons == ["Multiple clicks from same IP address"]


@pytest.mark.asyncio
async def test_detect_fraud_nine_other_clicks_not_flagged(session, offer, make_click, clock):
    ip = "192.0.2.50"
    target = await make_click(offer.partner_id, offer.product_id, clock.now, ip_address=ip)
    for i in range(9):
        await make_click(offer.partner_id, offer.product_id, clock.now - timedelta(minutes=i), ip_address=ip)

    verdict = await FraudScorer(session, clock).detect_fraud(target.tracking_id)
    assert verdict.risk_score == 0


@pytest.mark.asyncio
async def test_detect_fraud_fast_conversion(session, offer, make_click, clock):
    row = await make_click(
        offer.partner_id, offer.product_id, clock.now,
        converted=True, commission=100.0, conversion_date=clock.now + timedelta(seconds=12),
    )
    verdict = await FraudScorer(session, clock).detect_fraud(row.tracking_id)
    assert verdict.risk_score == 25
    assert verdict.reasons == ["Suspiciously fast conversion"]
