"""SQLAlchemy ORM models for the affiliate catalog and click ledger."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, JSON, String
)
from sqlalchemy.orm import DeclarativeBase


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class PartnerRow(Base):
    """A monetization counterparty (bank, broker, card issuer)."""
    __tablename__ = "affiliate_partners"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False, index=True)
    type = Column(String(20), nullable=False, index=True)  # loan, credit_card, broker
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    website = Column(String(500), nullable=True)

    # Commission structure (flattened)
    commission_type = Column(String(20), nullable=False)  # fixed, percentage
    commission_amount = Column(Float, nullable=False, default=0.0)
    commission_currency = Column(String(3), nullable=False, default="INR")

    # Tracking config
    conversion_goals = Column(JSON, nullable=False, default=list)
    attribution_window_days = Column(Integer, nullable=False, default=30)

    created_at = Column(DateTime, default=_utcnow, nullable=False)


class ProductRow(Base):
    """An offer owned by exactly one partner."""
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_new_id)
    partner_id = Column(String(36), ForeignKey("affiliate_partners.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    type = Column(String(20), nullable=False)
    application_url = Column(String(1000), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    min_amount = Column(Float, nullable=True)  # loan products only
    max_amount = Column(Float, nullable=True)

    created_at = Column(DateTime, default=_utcnow, nullable=False)


class AffiliateClickRow(Base):
    """The click ledger — one row per attributed referral, append-only."""
    __tablename__ = "affiliate_clicks"

    id = Column(String(36), primary_key=True, default=_new_id)
    tracking_id = Column(String(50), unique=True, nullable=False, index=True)
    partner_id = Column(String(36), ForeignKey("affiliate_partners.id"), nullable=False)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    user_id = Column(String(36), nullable=True, index=True)

    # Click context
    ip_address = Column(String(45), nullable=False)  # IPv6 support
    user_agent = Column(String(500), nullable=False)
    referrer = Column(String(500), nullable=True)
    session_id = Column(String(100), nullable=True, index=True)
    utm_source = Column(String(100), nullable=True)
    utm_medium = Column(String(100), nullable=True)
    utm_campaign = Column(String(100), nullable=True)
    clicked_at = Column(DateTime, default=_utcnow, nullable=False, index=True)

    # Conversion (set exactly once)
    converted = Column(Boolean, nullable=False, default=False)
    conversion_date = Column(DateTime, nullable=True)
    conversion_type = Column(String(50), nullable=True)
    commission_amount = Column(Float, nullable=True)
    conversion_metadata = Column("metadata", JSON, nullable=True)

    # Payout
    payment_status = Column(String(20), nullable=True)  # pending, paid
    payment_reference = Column(String(200), nullable=True)
    payment_method = Column(String(50), nullable=True)
    payment_date = Column(DateTime, nullable=True)
    payment_notes = Column(String(1000), nullable=True)

    __table_args__ = (
        Index("ix_clicks_partner_clicked", "partner_id", "clicked_at"),
        Index("ix_clicks_product_clicked", "product_id", "clicked_at"),
        Index("ix_clicks_ip_clicked", "ip_address", "clicked_at"),
        Index("ix_clicks_converted_date", "converted", "conversion_date"),
        Index("ix_clicks_utm", "utm_source", "utm_medium", "utm_campaign"),
    )
