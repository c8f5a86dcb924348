"""
Pytest fixtures and configuration for Civic Issue Reporter tests.

This module provides shared fixtures for:
- Test database setup/teardown with async support
- Sample data factories (categories, departments, users, issues)
- An HTTP client bound to the app with the test session
- Staff authentication headers
"""

import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STAFF_PASSWORD", "test_password")
os.environ.setdefault("SUBMISSION_RATE_LIMIT", "100000")
os.environ.setdefault("GENERAL_RATE_LIMIT", "100000")

import pytest
import pytest_asyncio
from datetime import datetime, timedelta
from typing import AsyncGenerator
from faker import Faker
from httpx import ASGITransport, AsyncClient

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

from civic_reporter.database import Base, get_db
from civic_reporter.models import (
    Category,
    Department,
    DepartmentCategory,
    Issue,
    StatusUpdate,
    User,
)

# Initialize Faker for generating test data
fake = Faker()

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Create test database engine with in-memory SQLite.

    StaticPool keeps a single connection so every session sees the same
    in-memory database. Each test gets a fresh database.
    """
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


@pytest.fixture
def session_factory(test_engine: AsyncEngine):
    """Session factory configured like the application's."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Clean database session for each test, rolled back afterwards."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app with get_db bound to the test session."""
    from civic_reporter.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# Database model factory fixtures
@pytest_asyncio.fixture
async def create_category(db_session: AsyncSession):
    """
    Factory fixture for creating test categories.

    Returns a function that creates and persists a Category.
    """
    async def _create_category(**kwargs) -> Category:
        defaults = {
            "name": fake.unique.word().title() + " Issues",
            "code": fake.unique.bothify(text="C###"),
            "description": fake.sentence(),
            "default_priority": "medium",
            "is_emergency": False,
            "is_active": True,
        }
        defaults.update(kwargs)

        category = Category(**defaults)
        db_session.add(category)
        await db_session.commit()
        return category

    return _create_category


@pytest_asyncio.fixture
async def create_department(db_session: AsyncSession):
    """
    Factory fixture for creating test departments.

    handles is a list of (category, is_primary, priority) tuples.
    """
    async def _create_department(handles=(), **kwargs) -> Department:
        defaults = {
            "name": fake.unique.company()[:90],
            "code": fake.unique.bothify(text="D###"),
            "priority_level": 5,
            "is_active": True,
            "operational_status": "operational",
            "max_active_issues": 50,
            "current_active_issues": 0,
            "max_daily_issues": 20,
            "current_daily_issues": 0,
            "resolution_rate": 0.0,
            "citizen_satisfaction_score": 0.0,
        }
        defaults.update(kwargs)

        department = Department(
            **defaults,
            handled_categories=[
                DepartmentCategory(category_id=category.id, is_primary=is_primary, priority=priority)
                for category, is_primary, priority in handles
            ],
        )
        db_session.add(department)
        await db_session.commit()
        return department

    return _create_department


@pytest_asyncio.fixture
async def create_user(db_session: AsyncSession):
    """Factory fixture for creating test users."""
    async def _create_user(**kwargs) -> User:
        defaults = {
            "full_name": fake.name(),
            "email": fake.unique.email(),
            "phone": None,
            "role": "citizen",
        }
        defaults.update(kwargs)

        user = User(**defaults)
        db_session.add(user)
        await db_session.commit()
        return user

    return _create_user


@pytest_asyncio.fixture
async def create_issue(db_session: AsyncSession):
    """
    Factory fixture for creating test issues directly, without intake.

    Capacity counters are not touched.
    """
    async def _create_issue(category_id, **kwargs) -> Issue:
        now = datetime.utcnow()
        defaults = {
            "title": fake.sentence(nb_words=5)[:200],
            "description": fake.text(max_nb_chars=200),
            "category_id": category_id,
            "status": "submitted",
            "priority": "medium",
            "latitude": 23.3441,
            "longitude": 85.3096,
            "city": "Ranchi",
            "tags": [],
            "created_at": now,
            "updated_at": now,
        }
        defaults.update(kwargs)

        issue = Issue(**defaults)
        db_session.add(issue)
        await db_session.commit()
        return issue

    return _create_issue


@pytest_asyncio.fixture
async def create_status_update(db_session: AsyncSession):
    """Factory fixture for creating status update records directly."""
    async def _create_status_update(issue_id, **kwargs) -> StatusUpdate:
        now = datetime.utcnow()
        defaults = {
            "issue_id": issue_id,
            "status": "submitted",
            "previous_status": None,
            "change_reason": "normal_progression",
            "change_source": "manual",
            "created_at": now,
            "updated_at": now,
        }
        defaults.update(kwargs)

        record = StatusUpdate(**defaults)
        db_session.add(record)
        await db_session.commit()
        return record

    return _create_status_update


# Authentication fixtures
@pytest.fixture
def staff_header() -> dict:
    """Staff authentication header for API tests."""
    return {"X-Staff-Password": "test_password"}


@pytest.fixture
def invalid_staff_header() -> dict:
    """Invalid staff header for testing auth failures."""
    return {"X-Staff-Password": "wrong_password"}


@pytest.fixture
def hours_ago():
    """Naive UTC timestamp the given number of hours in the past."""
    def _hours_ago(hours: float) -> datetime:
        return datetime.utcnow() - timedelta(hours=hours)

    return _hours_ago
