"""
Pytest fixtures for OnboardGate tests.
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Ensure test config is set before importing onboardgate modules.
os.environ.setdefault("ONBOARDGATE_ALLOW_INSECURE_DEV", "true")
os.environ.setdefault("ONBOARDGATE_ENV", "development")
os.environ.setdefault("ONBOARDGATE_DATABASE_URL", "sqlite+aiosqlite://")

from onboardgate.db.base import Base
from onboardgate.db.repositories import ProgressRepository
from onboardgate.engine import MemoryProgressStore, ProgressTracker
from onboardgate.observability.metrics import metrics
from onboardgate.registry import StepRegistry
import onboardgate.db.tables  # noqa: F401


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def registry() -> StepRegistry:
    return StepRegistry.default()


@pytest.fixture
def memory_store() -> MemoryProgressStore:
    return MemoryProgressStore()


@pytest.fixture
def tracker(memory_store, registry) -> ProgressTracker:
    return ProgressTracker(memory_store, registry)


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with a fresh schema per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'onboardgate_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def sql_store(session_factory) -> ProgressRepository:
    return ProgressRepository(session_factory)


@pytest.fixture
def sql_tracker(sql_store, registry) -> ProgressTracker:
    return ProgressTracker(sql_store, registry)


@pytest.fixture
def app_tracker(sql_tracker):
    """Tracker the API under test will use; override per test if needed."""
    return sql_tracker


@pytest.fixture
async def client(app_tracker):
    """Async test client with overridden dependencies."""
    from onboardgate.api.deps import AuthContext, get_tracker, verify_api_key
    from onboardgate.main import app

    async def override_verify_api_key():
        return AuthContext(auth_type="insecure_dev")

    app.dependency_overrides[get_tracker] = lambda: app_tracker
    app.dependency_overrides[verify_api_key] = override_verify_api_key

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
