"""
Shared test fixtures

Every test gets a fresh in-memory SQLite database, a fixed clock and
lifecycle/availability services bound to that clock. API tests drive the app
through httpx with ``get_db`` pointed at the same database.
"""
from datetime import datetime

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from genconnect import config
from genconnect.clock import FixedTimeProvider
from genconnect.database import Base, get_db
from genconnect.models import Reading, TutorProfile, User
from genconnect.models.user import ROLE_TUTEE, ROLE_TUTOR
from genconnect.services import availability_engine, session_lifecycle
from genconnect.services.auth_service import CurrentUser, create_access_token, hash_password

# Monday
NOW = datetime(2026, 3, 2, 8, 0, 0)
TEST_PASSWORD = "secret123"

_password_hash = None


def password_hash() -> str:
    # bcrypt is slow; hash once per run
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(TEST_PASSWORD)
    return _password_hash


@pytest.fixture(autouse=True)
def no_email(monkeypatch):
    """Keep SendGrid unconfigured so background emails are skipped"""
    monkeypatch.setattr(config, "SENDGRID_API_KEY", "")
    monkeypatch.setattr(config, "SENDER_EMAIL", "")


@pytest.fixture
def clock():
    return FixedTimeProvider(NOW)


@pytest.fixture
def lifecycle(clock):
    return session_lifecycle.SessionLifecycleManager(time_provider=clock, request_ttl_hours=24)


@pytest.fixture
def engine_service(clock):
    return availability_engine.AvailabilityEngine(time_provider=clock)


@pytest.fixture(autouse=True)
def clocked_services(monkeypatch, lifecycle, engine_service):
    """Route-level singletons use the fixed clock"""
    monkeypatch.setattr(session_lifecycle, "_manager", lifecycle)
    monkeypatch.setattr(availability_engine, "_engine", engine_service)


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    import genconnect.models  # noqa: F401

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
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def create_user(db, role: str, email: str, name: str, **fields) -> User:
    user = User(email=email, password_hash=password_hash(), name=name, role=role, **fields)
    db.add(user)
    await db.flush()
    if role == ROLE_TUTOR:
        db.add(TutorProfile(user_id=user.id, specialties=["Smartphone Basics"]))
    await db.commit()
    await db.refresh(user)
    return user


def as_current(user: User) -> CurrentUser:
    return CurrentUser(user_id=user.id, email=user.email, role=user.role, name=user.name)


def auth_headers(user: User) -> dict:
    token = create_access_token(user.id, user.email, user.role, user.name)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def tutor(db):
    return await create_user(db, ROLE_TUTOR, "alex@example.com", "Alex Chen", college="Stanford")


@pytest.fixture
async def other_tutor(db):
    return await create_user(db, ROLE_TUTOR, "natalie@example.com", "Natalie Shin")


@pytest.fixture
async def tutee(db):
    return await create_user(db, ROLE_TUTEE, "betty@example.com", "Betty Johnson", tech_comfort_level="beginner")


@pytest.fixture
async def other_tutee(db):
    return await create_user(db, ROLE_TUTEE, "walter@example.com", "Walter Green", tech_comfort_level="advanced")


@pytest.fixture
async def reading(db):
    reading = Reading(
        title="Online Grocery Shopping Basics",
        summary="Shopping for groceries online with confidence.",
        content="Many stores now deliver groceries to your door.",
        difficulty_level="easy",
        topic_tags="shopping,online,groceries",
        discussion_questions=[
            "What groceries would you order online?",
            "How can you check a website is trustworthy?",
        ],
    )
    db.add(reading)
    await db.commit()
    await db.refresh(reading)
    return reading


@pytest.fixture
async def client(session_factory):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
