"""
Shared fixtures for the test suite.

- In-memory adapter bundle, reset and seeded per test
- FastAPI TestClient against the in-memory bundle
- SQLite (aiosqlite) engines and sessions for SQL repository tests
"""

import os
from typing import AsyncGenerator, Generator

os.environ.setdefault("USE_IN_MEMORY", "true")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("STRIPE_PUBLISHABLE_KEY", "pk_test_123")
os.environ.setdefault("SITE_URL", "https://tours.example.com")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from helpers import make_adult_child_tour, make_flat_tour, make_seat_tour, make_slot
from tour_booking.api.dependencies import _in_memory_bundle
from tour_booking.config import get_settings
from tour_booking.infrastructure.circuit_breaker import stripe_breaker
from tour_booking.infrastructure.db.tables import metadata
from tour_booking.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============================================================================
# IN-MEMORY BUNDLE
# ============================================================================


@pytest.fixture
def bundle():
    """Fresh in-memory adapters, seeded with one tour of each pricing type."""
    get_settings.cache_clear()
    _in_memory_bundle.cache_clear()
    adapters = _in_memory_bundle()
    for tour in (make_flat_tour(), make_adult_child_tour(), make_seat_tour()):
        adapters["tour_catalog"].tours[tour.id] = tour
    slot = make_slot()
    adapters["availability_ledger"].slots[slot.id] = slot
    yield adapters
    _in_memory_bundle.cache_clear()
    get_settings.cache_clear()


@pytest.fixture
def client(bundle) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# SQL
# ============================================================================


@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """File-backed SQLite so concurrent sessions use separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


# ============================================================================
# HOOKS
# ============================================================================


@pytest.fixture(autouse=True)
def reset_circuit_breakers():
    """Keep an open breaker from one test out of the next."""
    stripe_breaker.close()
    yield
    stripe_breaker.close()
