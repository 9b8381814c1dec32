from datetime import datetime, timedelta, timezone
from decimal import Decimal
import uuid

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from rental_orders.main import app
from rental_orders.core.database import get_db
from rental_orders.models import Base, Coupon
from rental_orders.schemas.coupon import CouponSnapshot
from rental_orders.schemas.order import LineItem, OrderSnapshot
from rental_orders.utils.dependencies import get_order_notifier
from rental_orders.utils.helpers import utcnow

# Monday
NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_item():
    def _make(**overrides) -> LineItem:
        data = dict(
            product_id="prod-1",
            category_id="cat-ethnic",
            vendor_id="vendor-1",
            title="Silk Sherwani",
            selected_size="M",
            quantity=1,
            unit_price=Decimal("1000"),
        )
        data.update(overrides)
        return LineItem(**data)
    return _make


@pytest.fixture
def make_coupon():
    def _make(**overrides) -> CouponSnapshot:
        data = dict(
            id=uuid.uuid4(),
            code="SAVE20",
            discount_type="percentage",
            discount_value=Decimal("20"),
            minimum_amount=Decimal("500"),
            maximum_discount=Decimal("300"),
            usage_limit=None,
            used_count=0,
            valid_from=NOW - timedelta(days=30),
            valid_until=NOW + timedelta(days=30),
            is_active=True,
            applicable_to="all",
            applicable_ids=[],
        )
        data.update(overrides)
        return CouponSnapshot(**data)
    return _make


@pytest.fixture
def make_order(make_item):
    def _make(**overrides) -> OrderSnapshot:
        data = dict(
            id=uuid.uuid4(),
            order_number="ORD20240607120000AB12",
            profile_id="user-1",
            customer_name="Asha",
            customer_email="asha@example.com",
            delivery_partner_id="partner-1",
            rental_start_date=NOW - timedelta(days=2),
            rental_end_date=NOW + timedelta(days=1),
            rental_days=3,
            subtotal=Decimal("2000"),
            delivery_charge=Decimal("100"),
            discount_amount=Decimal("0"),
            total_amount=Decimal("2100"),
            order_status="pending",
            payment_status="pending",
            delivery_status=None,
            items=[make_item(quantity=2)],
            version=1,
            created_at=NOW - timedelta(days=3),
            updated_at=NOW - timedelta(days=3),
        )
        data.update(overrides)
        return OrderSnapshot(**data)
    return _make


class RecordingNotifier:
    """Stands in for the Celery-backed notifier"""

    def __init__(self):
        self.requests = []

    def dispatch(self, request) -> bool:
        self.requests.append(request)
        return True


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def add_coupon(session_factory):
    async def _add(**overrides) -> uuid.UUID:
        data = dict(
            code="SAVE20",
            title="Twenty percent off",
            discount_type="percentage",
            discount_value=Decimal("20"),
            minimum_amount=Decimal("500"),
            maximum_discount=Decimal("300"),
            usage_limit=None,
            used_count=0,
            valid_from=utcnow() - timedelta(days=30),
            valid_until=utcnow() + timedelta(days=30),
            is_active=True,
            applicable_to="all",
            applicable_ids=[],
        )
        data.update(overrides)
        async with session_factory() as session:
            coupon = Coupon(**data)
            session.add(coupon)
            await session.commit()
            return coupon.id
    return _add


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def client(session_factory, notifier):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_order_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
