import os
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from src.marketplace.api.deps import get_access_gate, get_subscription_service
from src.marketplace.core.security import create_access_token, hash_password
from src.marketplace.crud import CRUDPlan, CRUDProduct, CRUDSubscription, CRUDUser
from src.marketplace.db.session import get_db
from src.marketplace.main import app
from src.marketplace.models import Base, Product, Subscription, SubscriptionPlan, User
from src.marketplace.schemas import PlanCreate, TokenPayload, UserCreate, UserRole
from src.marketplace.services.access_gate import AccessGate, fixed_entitlement
from src.marketplace.services.role_projection import RoleProjection
from src.marketplace.services.subscription_service import SubscriptionService

NOW = datetime(2024, 3, 1, 12, 0, 0)
PASSWORD = "correct-horse-battery"
HASHED_PASSWORD = hash_password(PASSWORD)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def users():
    return CRUDUser(User)


@pytest.fixture
def store():
    return CRUDSubscription(Subscription)


@pytest.fixture
def catalog():
    return CRUDPlan(SubscriptionPlan)


@pytest.fixture
def products():
    return CRUDProduct(Product)


async def _create_user(users, db, email, role, is_staff=False):
    return await users.create_with_password(
        db,
        obj_in=UserCreate(name="Test", last_name="User", email=email, password=PASSWORD),
        hashed_password=HASHED_PASSWORD,
        role=role,
        is_staff=is_staff,
    )


@pytest.fixture
async def customer(db, users):
    return await _create_user(users, db, "ana@shop.io", UserRole.CUSTOMER)


@pytest.fixture
async def other_customer(db, users):
    return await _create_user(users, db, "bruno@shop.io", UserRole.CUSTOMER)


@pytest.fixture
async def admin(db, users):
    return await _create_user(users, db, "admin@marketplace.io", UserRole.MEMBERSHIPS, is_staff=True)


@pytest.fixture
async def plans(db, catalog):
    free = await catalog.create_plan(db, obj_in=PlanCreate(
        name="Free", price=Decimal("0"), duration_days=30, max_products=2,
    ))
    monthly = await catalog.create_plan(db, obj_in=PlanCreate(
        name="Premium Monthly", price=Decimal("9.99"), duration_days=30, max_products=-1,
    ))
    annual = await catalog.create_plan(db, obj_in=PlanCreate(
        name="Premium Annual", price=Decimal("99.99"), duration_days=365, max_products=-1,
    ))
    return {"free": free, "monthly": monthly, "annual": annual}


@pytest.fixture
def service(store, catalog, users, clock):
    return SubscriptionService(store, catalog, RoleProjection(users), clock=clock)


@pytest.fixture
def auth_headers():
    def build(user: User) -> dict:
        token = create_access_token(
            TokenPayload(user_id=user.id, uuid=user.uuid, email=user.email, role=user.role)
        )
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
def can_sell():
    """Entitlement answer used by the HTTP access gate."""
    return False


@pytest.fixture
async def client(session_factory, store, catalog, users, products, clock, can_sell):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_subscription_service] = lambda: SubscriptionService(
        store, catalog, RoleProjection(users), clock=clock
    )
    app.dependency_overrides[get_access_gate] = lambda: AccessGate(
        store, products, fixed_entitlement(can_sell), clock=clock
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
