"""
Shared test fixtures.

Provides:
  • a temporary SQLite database (aiosqlite) with all tables created
  • a seeded tenant, court type, court, operating hours and two users
  • an httpx AsyncClient driving the app with ``get_db`` pointed at the
    temporary database
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import time
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.database import Base, get_db
from app.main import app
from app.models import Court, CourtAvailability, CourtType, Tenant, User


# ── Helpers ────────────────────────────────────────────────────────────────


async def seed_court(
    db: AsyncSession,
    tenant_timezone: str = "UTC",
    interval_minutes: int = 60,
    buffer_minutes: int = 15,
    price_per_interval: int = 1000,
    rules=None,
) -> SimpleNamespace:
    """Create a tenant with one court open on Mondays from 08:00 to 22:00."""
    tenant = Tenant(name="Test Tenant", timezone=tenant_timezone)
    db.add(tenant)
    await db.flush()

    court_type = CourtType(
        tenant_id=tenant.id,
        type="padel",
        name="Padel",
        interval_time_minutes=interval_minutes,
        buffer_time_minutes=buffer_minutes,
        price_per_interval=price_per_interval,
    )
    db.add(court_type)
    await db.flush()

    court = Court(tenant_id=tenant.id, court_type_id=court_type.id, name="Court 1", number=1)
    user = User(name="Alice", email="alice@example.com")
    other_user = User(name="Bob", email="bob@example.com")
    db.add_all([court, user, other_user])
    await db.flush()

    if rules is None:
        rules = [{"day_of_week_recurring": "monday", "start_time": time(8, 0), "end_time": time(22, 0)}]
    for rule in rules:
        db.add(CourtAvailability(tenant_id=tenant.id, court_id=court.id, **rule))

    await db.commit()
    return SimpleNamespace(
        tenant=tenant,
        court_type=court_type,
        court=court,
        user=user,
        other_user=other_user,
    )


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
async def engine(tmp_path):
    """Engine bound to a temporary SQLite file with every table created."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture()
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def seeded(db):
    return await seed_court(db)


@pytest.fixture()
async def client(session_factory):
    """AsyncClient for the app, with ``get_db`` using the temporary database."""

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def make_court(db):
    """Seed a court with custom settings: ``await make_court(buffer_minutes=0)``."""

    async def _make(**kwargs):
        return await seed_court(db, **kwargs)

    return _make
