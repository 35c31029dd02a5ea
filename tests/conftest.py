"""Shared test fixtures — single test DB for all test modules."""
from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from affiliate_engine.db.tables import AffiliateClickRow, Base
from affiliate_engine.db.engine import get_session
from affiliate_engine.db.seed import add_partner, add_product
from affiliate_engine.models.catalog import CommissionType

# Use a shared in-memory DB with check_same_thread=False and StaticPool
# This ensures all connections see the same in-memory database.
from sqlalchemy.pool import StaticPool

TEST_DB_URL = "sqlite+aiosqlite:///file:test?mode=memory&cache=shared&uri=true"
ADMIN_KEY = "test-admin-key"
BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0 Safari/537.36"
)

test_engine = create_async_engine(
    TEST_DB_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = async_sessionmaker(test_engine, expire_on_commit=False, class_=AsyncSession)


async def override_get_session():
    async with TestSession() as session:
        yield session


# Import app and override BEFORE any test module imports app
from affiliate_engine.api.main import app  # noqa: E402
from config.settings import settings  # noqa: E402

app.dependency_overrides[get_session] = override_get_session
settings.ADMIN_API_KEY = ADMIN_KEY


class FakeClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def session():
    async with TestSession() as s:
        yield s


@pytest.fixture
def session_factory():
    """Opens extra sessions, e.g. for a second request racing the first."""
    return TestSession


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 1, 12, 0, 0))


@pytest_asyncio.fixture
async def offer():
    """Active lender paying 5% of the conversion value, with one active product."""
    async with TestSession() as s:
        partner = await add_partner(
            s, "Test Lender",
            commission_type=CommissionType.PERCENTAGE, commission_amount=5,
        )
        product = await add_product(
            s, partner.id, "Test Personal Loan",
            "https://lender.example.com/apply?src=aff",
        )
        await s.commit()
    return SimpleNamespace(partner_id=partner.id, product_id=product.id)


@pytest_asyncio.fixture
async def fixed_offer():
    """Active card issuer paying a flat 500 per conversion."""
    async with TestSession() as s:
        partner = await add_partner(
            s, "Test Card Issuer", type="credit_card",
            commission_type=CommissionType.FIXED, commission_amount=500,
        )
        product = await add_product(
            s, partner.id, "Test Rewards Card",
            "https://issuer.example.com/cards/rewards", type="credit_card",
        )
        await s.commit()
    return SimpleNamespace(partner_id=partner.id, product_id=product.id)


@pytest.fixture
def make_click():
    """Insert a ledger row directly, bypassing the recorder."""
    counter = {"n": 0}

    async def _make(
        partner_id: str,
        product_id: str,
        clicked_at: datetime,
        *,
        converted: bool = False,
        commission: Optional[float] = None,
        conversion_date: Optional[datetime] = None,
        payment_status: Optional[str] = None,
        ip_address: str = "203.0.113.7",
        user_agent: str = BROWSER_UA,
        referrer: Optional[str] = "https://blog.example.com/best-loans",
    ) -> AffiliateClickRow:
        counter["n"] += 1
        row = AffiliateClickRow(
            tracking_id=f"testclick-{counter['n']:06d}",
            partner_id=partner_id,
            product_id=product_id,
            ip_address=ip_address,
            user_agent=user_agent,
            referrer=referrer,
            clicked_at=clicked_at,
            converted=converted,
            commission_amount=commission,
            conversion_date=(conversion_date or clicked_at + timedelta(hours=1)) if converted else None,
            payment_status=payment_status or ("pending" if converted else None),
        )
        async with TestSession() as s:
            s.add(row)
            await s.commit()
        return row

    return _make


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}
