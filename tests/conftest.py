import os
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Optional

# Settings are read at import time by libs.db.config; give them a database
# before anything from the app is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./quickcart-test.db")
os.environ.setdefault("ENVIRONMENT", "local")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.auth.dependencies import get_current_user  # noqa: E402
from libs.auth.models import AuthUser, UserRole  # noqa: E402
from libs.common.config import get_settings  # noqa: E402
from libs.common.events import get_publisher  # noqa: E402
from libs.db.base import Base  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402

# Import all models so metadata includes every table
from services.store_service import models as _store_models  # noqa: F401,E402
from services.wallet_service import models as _wallet_models  # noqa: F401,E402

get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_user(
    user_id: str = "customer-1", role: UserRole = UserRole.CUSTOMER
) -> AuthUser:
    return AuthUser(user_id=user_id, email=f"{user_id}@example.com", role=role)


def make_admin_user(user_id: str = "admin-1") -> AuthUser:
    return make_user(user_id=user_id, role=UserRole.ADMIN)


@contextmanager
def override_auth(app, user: AuthUser):
    """Temporarily authenticate every request as ``user``."""
    previous = app.dependency_overrides.get(get_current_user)
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = previous


# ---------------------------------------------------------------------------
# Event publisher double
# ---------------------------------------------------------------------------


class RecordingPublisher:
    """Collects published events instead of sending them anywhere."""

    def __init__(self, fail: bool = False):
        self.events: list[tuple[str, dict[str, Any], Optional[str]]] = []
        self.fail = fail

    async def publish(
        self, event: str, payload: dict[str, Any], room: Optional[str] = None
    ) -> None:
        if self.fail:
            raise RuntimeError("broker unavailable")
        self.events.append((event, payload, room))

    def names(self) -> list[str]:
        return [event for event, _, _ in self.events]


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """A fresh SQLite database per test, with every table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session configured like the application's."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def app(db_session, publisher):
    """The API app wired to the test session and publisher.

    Requests are authenticated as ``customer-1`` unless a test uses
    ``override_auth``.
    """
    from services.store_service.app.main import app as api_app

    async def _get_test_db():
        yield db_session

    api_app.dependency_overrides[get_async_db] = _get_test_db
    api_app.dependency_overrides[get_publisher] = lambda: publisher
    api_app.dependency_overrides[get_current_user] = lambda: make_user()

    yield api_app

    api_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Checkout world
# ---------------------------------------------------------------------------


@dataclass
class CheckoutWorld:
    near_store_id: uuid.UUID
    far_store_id: uuid.UUID
    address_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    second_product_id: uuid.UUID
    user_id: str = "customer-1"


@pytest_asyncio.fixture
async def world(db_session) -> CheckoutWorld:
    """Two dark stores (5 km and 50 km from the customer), two products
    stocked at both, and a customer wallet holding 1000.

    Product X costs 50 and has 10 units per store; product Y costs 20 and
    has 3 units per store.
    """
    from tests.factories import (
        FAR_STORE_COORDS,
        AddressFactory,
        DarkStoreFactory,
        ProductFactory,
        StockItemFactory,
        WalletFactory,
    )

    # The far store is older so that it would win any "first store" fallback.
    far = DarkStoreFactory.create(
        name="Far Store",
        lat=FAR_STORE_COORDS[0],
        lng=FAR_STORE_COORDS[1],
        created_at=datetime.now(timezone.utc) - timedelta(days=1),
    )
    near = DarkStoreFactory.create(name="Near Store")
    product = ProductFactory.create(name="Product X", price=Decimal("50.00"))
    second = ProductFactory.create(name="Product Y", price=Decimal("20.00"))
    address = AddressFactory.create()
    db_session.add_all([far, near, product, second, address])
    await db_session.flush()

    for store in (far, near):
        db_session.add_all(
            [
                StockItemFactory.create(
                    product_id=product.id, dark_store_id=store.id, quantity=10
                ),
                StockItemFactory.create(
                    product_id=second.id, dark_store_id=store.id, quantity=3
                ),
            ]
        )
    db_session.add(WalletFactory.create(user_id="customer-1", balance=Decimal("1000")))
    await db_session.commit()

    return CheckoutWorld(
        near_store_id=near.id,
        far_store_id=far.id,
        address_id=address.id,
        product_id=product.id,
        product_name=product.name,
        second_product_id=second.id,
    )
