"""Integration-test fixtures.

Needs a migrated PostgreSQL at DATABASE_URL (alembic upgrade head) and
RUN_INTEGRATION=1; otherwise every test here is skipped. All tests share
one event loop so the module-level engine pool stays valid.
"""

import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config.settings import settings
from src.main import app
from src.pm_gateway.auth.jwt_handler import create_access_token


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.environ.get("RUN_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set RUN_INTEGRATION=1 to run against PostgreSQL")
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.integration)
            item.add_marker(skip)


def _bearer(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client: keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(scope="session")
def run_tag() -> str:
    """Unique suffix so reruns against the same database never collide."""
    return uuid.uuid4().hex[:8]


@pytest.fixture(scope="session")
def creator_headers(run_tag: str) -> dict[str, str]:
    return _bearer(f"creator-{run_tag}")


@pytest.fixture(scope="session")
def trader_headers(run_tag: str) -> dict[str, str]:
    return _bearer(f"trader-{run_tag}")


@pytest.fixture(scope="session")
def admin_headers() -> dict[str, str]:
    return _bearer(settings.ADMIN_USER_ID)
