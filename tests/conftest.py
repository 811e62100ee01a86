"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cogscreen.catalog.loader import load_catalog
from cogscreen.catalog.models import Catalog
from cogscreen.core.config import NotificationSettings
from cogscreen.core.security import create_access_token
from cogscreen.db.base import Base
from cogscreen.db.session import get_db
from cogscreen.main import app
from cogscreen.models.audit_event import ActorType
from cogscreen.services.audit import Actor

# Use SQLite for testing (simpler than spinning up postgres)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture(scope="session")
def catalog() -> Catalog:
    """The shipped screening catalog."""
    return load_catalog()


@pytest.fixture
def notification_settings() -> NotificationSettings:
    """Notification recipients used by service tests."""
    return NotificationSettings(
        admin_email="admin@clinic.test",
        clinical_email="clinical@clinic.test",
    )


@pytest.fixture
async def client(async_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an HTTP client for the app with overridden dependencies."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield async_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def reviewer() -> Actor:
    """Clinical staff member."""
    return Actor(
        actor_type=ActorType.STAFF,
        actor_id="staff-001",
        name="Dr. Reviewer",
        role="clinical_staff",
    )


@pytest.fixture
def admin() -> Actor:
    """Administrator."""
    return Actor(
        actor_type=ActorType.STAFF,
        actor_id="staff-admin",
        name="Admin User",
        role="admin",
    )


def create_test_token(actor: Actor) -> str:
    """Create a JWT the way the identity provider issues it."""
    return create_access_token(
        subject=actor.actor_id or "anonymous",
        actor_type=actor.actor_type.value,
        role=actor.role,
        name=actor.name,
    )


@pytest.fixture
def auth_headers(reviewer: Actor) -> dict[str, str]:
    """Authorization headers for clinical staff."""
    return {"Authorization": f"Bearer {create_test_token(reviewer)}"}


@pytest.fixture
def admin_auth_headers(admin: Actor) -> dict[str, str]:
    """Authorization headers for an administrator."""
    return {"Authorization": f"Bearer {create_test_token(admin)}"}


@pytest.fixture
def patient_auth_headers() -> dict[str, str]:
    """Authorization headers for a patient."""
    token = create_test_token(
        Actor(actor_type=ActorType.PATIENT, actor_id="patient-001", name="Patient")
    )
    return {"Authorization": f"Bearer {token}"}
