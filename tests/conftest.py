"""pytest: in-memory SQLite, тестовое меню и HTTP-клиенты к приложению."""

import json
import os
from types import SimpleNamespace

# настройки читаются при импорте приложения
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ADMIN_USER"] = "admin"
os.environ["ADMIN_PASS"] = "secret"
for _key in ("VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY", "VAPID_SUBJECT"):
    os.environ.pop(_key, None)

import httpx
import pytest
from pywebpush import WebPushException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bazaar_food.db.base import Base
from bazaar_food.db.deps import get_async_session
from bazaar_food.main import app
from bazaar_food.models import Category, MenuItem, Order, Restaurant
from bazaar_food.services import push as push_service

ADMIN_AUTH = ("admin", "secret")
PHONE = "996555123456"
MBANK_NUMBER = "996700111222"
TEST_PUSH_CONFIG = push_service.PushConfig(public_key="pub", private_key="priv", subject="mailto:ops@example.com")


class FakePushService:
    """Подменяет pywebpush.webpush: запоминает отправки, по endpoint может ответить ошибкой."""

    def __init__(self):
        self.calls = []
        self.responses = {}

    def __call__(self, subscription_info, data, vapid_private_key, vapid_claims):
        endpoint = subscription_info["endpoint"]
        self.calls.append((endpoint, json.loads(data)))
        code = self.responses.get(endpoint)
        if code:
            raise WebPushException("push failed", response=SimpleNamespace(status_code=code))


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def menu(session_maker):
    """Ресторан с тремя блюдами (одно недоступно) и чужое блюдо другого ресторана."""
    async with session_maker() as session:
        restaurant = Restaurant(slug="osh-bazaar", name="Osh Bazaar", mbank_number=MBANK_NUMBER, is_active=True)
        other = Restaurant(slug="other-stall", name="Other Stall", is_active=True)
        session.add_all([restaurant, other])
        await session.flush()

        category = Category(restaurant_id=restaurant.id, title="Hot", sort_order=0)
        session.add(category)
        await session.flush()

        plov = MenuItem(restaurant_id=restaurant.id, category_id=category.id, title="Plov", price_kgs=150,
                        photo_url="/img/plov.jpg", sort_order=1)
        samsa = MenuItem(restaurant_id=restaurant.id, category_id=category.id, title="Samsa", price_kgs=100,
                         photo_url="/img/samsa.jpg", sort_order=2)
        lagman = MenuItem(restaurant_id=restaurant.id, category_id=category.id, title="Lagman", price_kgs=200,
                          is_available=False, sort_order=3)
        foreign = MenuItem(restaurant_id=other.id, title="Shawarma", price_kgs=180)
        session.add_all([plov, samsa, lagman, foreign])
        await session.commit()

    return SimpleNamespace(restaurant=restaurant, other=other, plov=plov, samsa=samsa, lagman=lagman, foreign=foreign)


@pytest.fixture
async def db(session_maker, menu):
    async with session_maker() as session:
        yield session


@pytest.fixture
def fake_push(monkeypatch):
    fake = FakePushService()
    monkeypatch.setattr(push_service, "webpush", fake)
    monkeypatch.setattr(push_service, "get_push_config", lambda: TEST_PUSH_CONFIG)
    return fake


@pytest.fixture
def app_sessions(session_maker, menu):
    async def override():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app_sessions):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def admin_client(app_sessions):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", auth=ADMIN_AUTH) as c:
        yield c


@pytest.fixture
def order_payload(menu):
    """Фабрика тела POST /orders."""

    def make(payment_method="bank", items=None, **overrides):
        payload = {
            "restaurantSlug": "osh-bazaar",
            "items": items or [{"menuItemId": menu.plov.id, "qty": 1}, {"menuItemId": menu.samsa.id, "qty": 2}],
            "location": {"line": "12", "container": "48", "landmark": "blue gate"},
            "paymentMethod": payment_method,
            "customerPhone": PHONE,
            "comment": "no onions",
        }
        payload.update(overrides)
        return payload

    return make


@pytest.fixture
def order_count(session_maker):
    """Сколько строк сейчас в orders."""

    async def count() -> int:
        async with session_maker() as session:
            return (await session.execute(select(func.count(Order.id)))).scalar_one()

    return count
