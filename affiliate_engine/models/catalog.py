"""Catalog records — partners and their products.

Read-only to the affiliate engine; created and edited by the admin workflow.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PartnerType(str, Enum):
    LOAN = "loan"
    CREDIT_CARD = "credit_card"
    BROKER = "broker"


class CommissionType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class ConversionGoal(str, Enum):
    APPLICATION_SUBMITTED = "application_submitted"
    ACCOUNT_OPENED = "account_opened"
    FIRST_TRANSACTION = "first_transaction"
    LOAN_APPROVED = "loan_approved"
    CARD_APPROVED = "card_approved"


@dataclass(frozen=True)
class CommissionStructure:
    type: CommissionType
    amount: float
    currency: str = "INR"

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError("Commission amount cannot be negative")


@dataclass(frozen=True)
class TrackingConfig:
    attribution_window: int = 30  # days
    conversion_goals: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.attribution_window <= 0:
            raise ValueError("Attribution window must be at least 1 day")


@dataclass(frozen=True)
class Partner:
    id: str
    name: str
    type: str
    is_active: bool
    commission_structure: CommissionStructure
    tracking_config: TrackingConfig


@dataclass(frozen=True)
class Product:
    id: str
    partner_id: str
    name: str
    type: str
    application_url: str
    is_active: bool
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
