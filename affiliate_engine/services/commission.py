"""Commission computation from a partner's commission structure."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from affiliate_engine.models.catalog import CommissionStructure, CommissionType

# Currency minor unit (INR paise)
_CENT = Decimal("0.01")


def round_money(value) -> float:
    """Round half-up to 2 decimal places."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def calculate_commission(structure: CommissionStructure, conversion_value: Optional[float]) -> float:
    """Fixed → the flat amount; percentage → value × amount / 100 (missing value counts as 0)."""
    if structure.type == CommissionType.FIXED:
        return round_money(structure.amount)
    base = Decimal(str(conversion_value or 0))
    return round_money(base * Decimal(str(structure.amount)) / Decimal(100))
