"""
Integration Test Fixtures.

Fixtures for integration tests. These build on the root conftest.py
database and event mesh fixtures.
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from event_mesh.services.mesh import EventMesh, get_event_mesh
from event_mesh.stores.durable import DurableEventStore, DurableNarrativeStore
from event_mesh.stores.factory import StoreSet
from event_mesh.stores.memory import FallbackRegistry, InMemoryEventStore, InMemoryNarrativeStore


# =============================================================================
# Durable Store Fixtures
# =============================================================================


@pytest.fixture
def durable_stores(
    db_session_factory: async_sessionmaker[AsyncSession],
    fallback_registry: FallbackRegistry,
) -> StoreSet:
    """Durable stores on the test database with an in-memory fallback."""
    return StoreSet(
        events=DurableEventStore(session_factory=db_session_factory),
        narratives=DurableNarrativeStore(session_factory=db_session_factory),
        fallback_events=InMemoryEventStore(fallback_registry),
    )


@pytest.fixture
def durable_mesh(durable_stores: StoreSet, clock) -> EventMesh:
    """EventMesh over the durable backend."""
    return EventMesh(durable_stores, default_max_depth=5, max_depth_limit=25, clock=clock)


# =============================================================================
# API Client Fixtures
# =============================================================================


async def _client_for(mesh: EventMesh) -> AsyncGenerator[AsyncClient, None]:
    from event_mesh.main import create_app

    app = create_app()
    app.dependency_overrides[get_event_mesh] = lambda: mesh

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def client(durable_mesh: EventMesh) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client whose event mesh uses the test database.

    Usage:
        async def test_health_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    async for test_client in _client_for(durable_mesh):
        yield test_client


@pytest.fixture
async def memory_client(mesh: EventMesh) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose event mesh uses the in-memory backend."""
    async for test_client in _client_for(mesh):
        yield test_client


@pytest.fixture
async def degraded_client(
    unavailable_event_store: DurableEventStore,
    fallback_registry: FallbackRegistry,
) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose primary event store cannot be reached."""
    mesh = EventMesh(
        StoreSet(
            events=unavailable_event_store,
            narratives=InMemoryNarrativeStore(fallback_registry),
            fallback_events=InMemoryEventStore(fallback_registry),
        )
    )
    async for test_client in _client_for(mesh):
        yield test_client


# =============================================================================
# API Response Assertion Helpers
# =============================================================================


class ApiAssertions:
    """Helper class for API response assertions."""

    @staticmethod
    def assert_success(response: Any, expected_status: int = 200) -> dict[str, Any]:
        """
        Assert API response is successful.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is True, f"Response not successful: {data}"
        return data

    @staticmethod
    def assert_error(
        response: Any,
        expected_status: int,
        expected_code: str | None = None,
    ) -> dict[str, Any]:
        """
        Assert API response is an error.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is False, f"Response should be error: {data}"
        assert data.get("error") is not None, f"Missing error details: {data}"

        if expected_code:
            actual_code = data["error"].get("code")
            assert actual_code == expected_code, (
                f"Expected error code {expected_code}, got {actual_code}"
            )

        return data


@pytest.fixture
def api() -> ApiAssertions:
    """Provide API assertion helpers."""
    return ApiAssertions()
