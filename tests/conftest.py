# tests/conftest.py
from __future__ import annotations

import datetime as dt

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from coachcal.db.sql import get_session, init_db
from coachcal.dependencies import get_current_user, get_now
from coachcal.modules.calendars.models import AvailabilityRule, Calendar
from coachcal.modules.events import AppointmentEvent, EventBus
from coachcal.modules.users import repository as users_repo
from coachcal.modules.users.models import UserRole

# Wednesday morning; the Monday below is inside every default booking window
NOW = dt.datetime(2025, 1, 1, 8, 0)
MONDAY = dt.date(2025, 1, 6)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def file_engine(tmp_path):
    """Real file database, one connection per session, so sessions can race."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'coachcal.db'}", poolclass=NullPool)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


async def make_user(session, email, role, coach_id=None):
    user = await users_repo.create_user(
        session,
        email=email,
        password_hash="not-a-real-hash",
        display_name=email.split("@")[0].title(),
        role=role,
        coach_id=coach_id,
    )
    await session.commit()
    return user


@pytest.fixture
async def coach(session):
    return await make_user(session, "coach@example.com", UserRole.COACH)


@pytest.fixture
async def client_user(session, coach):
    return await make_user(session, "client@example.com", UserRole.CLIENT, coach_id=coach.id)


@pytest.fixture
async def stranger(session):
    return await make_user(session, "stranger@example.com", UserRole.CLIENT)


async def make_calendar(session, coach, *, windows=((0, dt.time(9), dt.time(12)),), **policy):
    fields = dict(
        name="Erstgespräch",
        slot_duration_minutes=30,
        buffer_minutes=0,
        max_advance_days=60,
        min_notice_hours=0,
        is_public=False,
    )
    fields.update(policy)
    calendar = Calendar(
        coach_id=coach.id,
        rules=[AvailabilityRule(day_of_week=d, start_time=s, end_time=e) for d, s, e in windows],
        **fields,
    )
    session.add(calendar)
    await session.commit()
    return calendar


@pytest.fixture
async def calendar(session, coach):
    """Monday 09:00-12:00, 30 minute slots, no buffer, no notice."""
    return await make_calendar(session, coach)


@pytest.fixture
def events():
    return []


@pytest.fixture
def bus(events):
    bus = EventBus()
    bus.subscribe(AppointmentEvent, events.append)
    return bus


class CurrentUser:
    user = None


@pytest.fixture
def current():
    return CurrentUser()


@pytest.fixture
async def api(session_factory, current):
    from coachcal.main import app

    async def _session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    async def _user():
        return current.user

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_current_user] = _user
    app.dependency_overrides[get_now] = lambda: NOW

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
