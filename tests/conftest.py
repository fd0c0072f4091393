"""
Test configuration and fixtures.

This module sets up test environment and provides shared fixtures for all tests.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import time
from types import SimpleNamespace

import pytest

# Point the app at SQLite and a known JWT secret for tests
# Must be set BEFORE any imports of database.connection or shared.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["TIMEZONE"] = "Asia/Taipei"

from fakes import InMemorySchedulingStore  # noqa: E402


@pytest.fixture
def store() -> InMemorySchedulingStore:
    """Empty in-memory store with per-(stylist, date) booking locks."""
    return InMemorySchedulingStore()


@pytest.fixture
def salon(store):
    """
    A store seeded with one stylist working Monday 09:00-17:00, one customer
    and three services (30, 45 and 60 minutes).
    """
    stylist = store.add_stylist("Ana")
    customer = store.add_customer("Lin", phone="0912345678", email="lin@example.com")
    cut = store.add_service("Cut", price="30.00", duration_minutes=30)
    color = store.add_service("Color", price="45.50", duration_minutes=45)
    perm = store.add_service("Perm", price="80.00", duration_minutes=60)
    store.add_window(stylist.id, 1, time(9, 0), time(17, 0))

    return SimpleNamespace(
        store=store, stylist=stylist, customer=customer, cut=cut, color=color, perm=perm
    )


# ============================================================================
# SQLite-backed store
# ============================================================================


@pytest.fixture
async def sql_session_factory():
    """Fresh in-memory SQLite schema per test."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
    from sqlalchemy.pool import StaticPool

    from database.models import Base

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    yield factory
    await engine.dispose()


@pytest.fixture
def sql_store(sql_session_factory):
    """SqlSchedulingStore bound to the per-test SQLite engine."""
    from database.repositories import SqlSchedulingStore

    @asynccontextmanager
    async def session_scope() -> AsyncIterator:
        session = sql_session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    return SqlSchedulingStore(session_factory=session_scope)

