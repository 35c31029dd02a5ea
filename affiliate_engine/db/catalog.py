"""Catalog reader — read-only access to partners and products."""
from __future__ import annotations

from typing import Iterable, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate_engine.db.tables import PartnerRow, ProductRow
from affiliate_engine.models.catalog import (
    CommissionStructure,
    CommissionType,
    Partner,
    Product,
    TrackingConfig,
)


class CatalogReader(Protocol):
    async def get_partner(self, partner_id: str) -> Optional[Partner]: ...

    async def get_product(self, product_id: str) -> Optional[Product]: ...

    async def get_partners(self, partner_ids: Iterable[str]) -> dict[str, Partner]: ...

    async def get_products(self, product_ids: Iterable[str]) -> dict[str, Product]: ...


def row_to_partner(row: PartnerRow) -> Partner:
    return Partner(
        id=row.id,
        name=row.name,
        type=row.type,
        is_active=bool(row.is_active),
        commission_structure=CommissionStructure(
            type=CommissionType(row.commission_type),
            amount=row.commission_amount,
            currency=row.commission_currency or "INR",
        ),
        tracking_config=TrackingConfig(
            attribution_window=row.attribution_window_days,
            conversion_goals=frozenset(row.conversion_goals or []),
        ),
    )


def row_to_product(row: ProductRow) -> Product:
    return Product(
        id=row.id,
        partner_id=row.partner_id,
        name=row.name,
        type=row.type,
        application_url=row.application_url,
        is_active=bool(row.is_active),
        min_amount=row.min_amount,
        max_amount=row.max_amount,
    )


class SqlCatalogReader:
    """CatalogReader backed by the catalog tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_partner(self, partner_id: str) -> Optional[Partner]:
        row = await self.session.get(PartnerRow, partner_id, populate_existing=True)
        return row_to_partner(row) if row else None

    async def get_product(self, product_id: str) -> Optional[Product]:
        row = await self.session.get(ProductRow, product_id, populate_existing=True)
        return row_to_product(row) if row else None

    async def get_partners(self, partner_ids: Iterable[str]) -> dict[str, Partner]:
        ids = set(partner_ids)
        if not ids:
            return {}
        result = await self.session.execute(select(PartnerRow).where(PartnerRow.id.in_(ids)))
        return {row.id: row_to_partner(row) for row in result.scalars().all()}

    async def get_products(self, product_ids: Iterable[str]) -> dict[str, Product]:
        ids = set(product_ids)
        if not ids:
            return {}
        result = await self.session.execute(select(ProductRow).where(ProductRow.id.in_(ids)))
        return {row.id: row_to_product(row) for row in result.scalars().all()}
