"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from zimship.app.main import app
from zimship.app.core.jwt import create_access_token
from zimship.app.db.session import get_db, Base
from zimship.app.models.role import Role
from zimship.app.models.role_assignment import RoleAssignment
from zimship.app.models.shipment import Shipment

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_USER_ID = 1
DISPATCHER_USER_ID = 2
VIEWER_USER_ID = 3
UNASSIGNED_USER_ID = 99

DISPATCHER_PERMISSIONS = {
    "admin": False,
    "shipments": {"read": True, "write": True, "delete": False},
    "users": {"read": False, "write": False, "delete": False},
    "reports": {"read": True, "write": False},
    "support": {"read": False, "write": False},
    "settings": {"read": False, "write": False},
}


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Async client for testing."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user_id: int, username: str = None) -> dict:
    token = create_access_token(data={"sub": username or f"user{user_id}@zimship.test", "user_id": user_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def seeded_roles(db_session):
    """Admin, Dispatcher and Viewer roles, assigned to users 1, 2 and 3."""
    admin_role = Role(name="Admin", description="Full access", permissions={"admin": True}, is_protected=True)
    dispatcher = Role(name="Dispatcher", description="Moves shipments along", permissions=DISPATCHER_PERMISSIONS)
    viewer = Role(
        name="Viewer",
        description="Read-only shipments",
        permissions={"shipments": {"read": True}},
    )
    db_session.add_all([admin_role, dispatcher, viewer])
    await db_session.flush()

    db_session.add_all([
        RoleAssignment(user_id=ADMIN_USER_ID, role_id=admin_role.id),
        RoleAssignment(user_id=DISPATCHER_USER_ID, role_id=dispatcher.id),
        RoleAssignment(user_id=VIEWER_USER_ID, role_id=viewer.id),
    ])
    await db_session.commit()

    return {"admin": admin_role, "dispatcher": dispatcher, "viewer": viewer}


@pytest.fixture
def unassigned_headers():
    return auth_headers(UNASSIGNED_USER_ID)


@pytest.fixture
def admin_headers(seeded_roles):
    return auth_headers(ADMIN_USER_ID, "admin@zimship.test")


@pytest.fixture
def dispatcher_headers(seeded_roles):
    return auth_headers(DISPATCHER_USER_ID, "dispatch@zimship.test")


@pytest.fixture
def viewer_headers(seeded_roles):
    return auth_headers(VIEWER_USER_ID, "viewer@zimship.test")


@pytest.fixture
async def make_shipment(db_session):
    """Insert a shipment directly with the given status."""
    counter = {"n": 0}

    async def _make(status: str = "Booking Confirmed", **kwargs) -> Shipment:
        counter["n"] += 1
        shipment = Shipment(
            tracking_number=kwargs.pop("tracking_number", f"ZS-TEST{counter['n']:04d}"),
            origin=kwargs.pop("origin", "Northampton, UK"),
            destination=kwargs.pop("destination", "Harare, ZW"),
            status=status,
            **kwargs,
        )
        db_session.add(shipment)
        await db_session.commit()
        await db_session.refresh(shipment)
        return shipment

    return _make
