"""
Click fraud scoring.

Each signal adds a fixed weight to an additive, uncapped risk score. All
applicable signals fire. The verdict is advisory: it never blocks tracking
or conversion, callers decide what to do with it.

Signals:
- Same-IP click volume in the trailing hour
- Missing or very short user agent
- Bot-like user agent (curl, python, crawlers...)
- Conversion within seconds of the click
- Missing referrer (direct access)
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.clock import Clock, utcnow
from affiliate_engine.db.ledger import ClickLedger
from affiliate_engine.errors import NotFound
from affiliate_engine.models.click import Click, FraudVerdict

logger = logging.getLogger(__name__)

FRAUD_THRESHOLD = 50

IP_VOLUME_WEIGHT = 30
IP_VOLUME_LIMIT = 10  # other clicks from the same IP
IP_VOLUME_WINDOW = timedelta(hours=1)

SHORT_USER_AGENT_WEIGHT = 20
MIN_USER_AGENT_LENGTH = 10

BOT_USER_AGENT_WEIGHT = 40
BOT_PATTERNS = ("bot", "crawler", "spider", "scraper", "curl", "wget", "python", "java")

FAST_CONVERSION_WEIGHT = 25
FAST_CONVERSION_SECONDS = 30

MISSING_REFERRER_WEIGHT = 10


def is_bot_user_agent(user_agent: Optional[str]) -> bool:
    if not user_agent:
        return False
    ua = user_agent.lower()
    return any(pattern in ua for pattern in BOT_PATTERNS)


def score_click(click: Click, recent_ip_clicks: int) -> FraudVerdict:
    """Score one click given how many other clicks its IP made in the last hour."""
    reasons: list[str] = []
    risk_score = 0

    if recent_ip_clicks >= IP_VOLUME_LIMIT:
        reasons.append("Multiple clicks from same IP address")
        risk_score += IP_VOLUME_WEIGHT

    if not click.user_agent or len(click.user_agent) < MIN_USER_AGENT_LENGTH:
        reasons.append("Suspicious or missing user agent")
        risk_score += SHORT_USER_AGENT_WEIGHT

    if is_bot_user_agent(click.user_agent):
        reasons.append("Bot-like user agent detected")
        risk_score += BOT_USER_AGENT_WEIGHT

    elapsed = click.time_to_conversion
    if elapsed is not None and elapsed < FAST_CONVERSION_SECONDS:
        reasons.append("Suspiciously fast conversion")
        risk_score += FAST_CONVERSION_WEIGHT

    if not click.referrer:
        reasons.append("Missing referrer information")
        risk_score += MISSING_REFERRER_WEIGHT

    return FraudVerdict(
        is_fraudulent=risk_score >= FRAUD_THRESHOLD,
        reasons=reasons,
        risk_score=risk_score,
    )


class FraudScorer:
    """Read-only fraud evaluation over the click ledger."""

    def __init__(self, session: AsyncSession, clock: Clock = utcnow):
        self.ledger = ClickLedger(session)
        self.clock = clock

    async def detect_fraud(self, tracking_id: str) -> FraudVerdict:
        click = await self.ledger.get_by_tracking_id(tracking_id)
        if click is None:
            raise NotFound("Tracking ID not found", details={"trackingId": tracking_id})

        recent = await self.ledger.count_recent_from_ip(
            click.ip_address,
            since=self.clock() - IP_VOLUME_WINDOW,
            exclude_id=click.id,
        )
        verdict = score_click(click, recent)
        if verdict.is_fraudulent:
            logger.warning(
                "High fraud risk: tracking_id=%s score=%d reasons=%s",
                tracking_id, verdict.risk_score, verdict.reasons,
            )
        return verdict
