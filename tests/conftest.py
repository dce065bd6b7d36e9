# tests/conftest.py
"""
Общие фикстуры.

БД - SQLite в памяти (одно соединение на тест, StaticPool).
Storage - ExpiringMemoryStorage вместо Redis.
"""

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api import create_app
from app.services.sessions import SessionStore
from config.settings import config
from infrastructure.database.base import close_db, get_db_session, init_db
from infrastructure.database.models import (
    Customer,
    PriceList,
    PriceListItem,
    Product,
)
from infrastructure.redis_storage import ExpiringMemoryStorage


@pytest.fixture(autouse=True)
def quiet_config(monkeypatch):
    """Никаких внешних вызовов: бот и вебхуки выключены."""
    monkeypatch.setattr(config, "bot_token", "")
    monkeypatch.setattr(config, "operator_telegram_id", None)
    monkeypatch.setattr(config, "whatsapp_webhook_url", "")
    monkeypatch.setattr(config, "sms_webhook_url", "")
    monkeypatch.setattr(config, "environment", "development")
    monkeypatch.setattr(config, "admin_password", "secret-admin")


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def products(session):
    """p1 = 10, p2 = 25, p3 снят с продажи."""
    rows = [
        Product(id="p1", name="בלון גז 12 ק\"ג", price=Decimal("10"), category="gas"),
        Product(id="p2", name="בלון גז 48 ק\"ג", price=Decimal("25"), category="gas"),
        Product(id="p3", name="ווסת", price=Decimal("40"), category="parts", available=False),
    ]
    session.add_all(rows)
    await session.commit()
    return {p.id: p for p in rows}


@pytest.fixture
async def customer(session):
    customer = Customer(
        user_id="user-1",
        name="ישראל ישראלי",
        phone="0501234567",
        city="עכו",
    )
    session.add(customer)
    await session.commit()
    return customer


@pytest.fixture
async def vip_customer(session, products):
    """Клиент со своим прайс-листом: p1 за 8."""
    price_list = PriceList(name="VIP")
    session.add(price_list)
    await session.flush()
    session.add(PriceListItem(price_list_id=price_list.id, product_id="p1", price=Decimal("8")))

    customer = Customer(name="לקוח VIP", phone="0529876543", price_list_id=price_list.id)
    session.add(customer)
    await session.commit()
    return customer


@pytest.fixture
def storage():
    return ExpiringMemoryStorage()


@pytest.fixture
async def app(session_maker, storage, products):
    app = create_app(storage)

    async def override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_session
    return app


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
async def customer_headers(storage, customer):
    auth = await SessionStore(storage).open(customer_id=customer.id, user_id=customer.user_id)
    return {"Authorization": f"Bearer {auth.token}"}


@pytest.fixture
async def admin_headers(storage):
    auth = await SessionStore(storage).open_admin()
    return {"Authorization": f"Bearer {auth.token}"}
