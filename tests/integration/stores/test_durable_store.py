"""
Integration Tests for the Durable Stores.

Runs the SQL-backed stores against the test database.
"""

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest

from event_mesh.core.exceptions import BackendUnavailableError, ConflictError
from event_mesh.schemas.event import (
    DocumentableEvent,
    EventContext,
    EventMetadata,
    UserIntent,
)
from event_mesh.stores.base import EventFilter
from event_mesh.repositories.narrative import NarrativeContextRepository
from event_mesh.stores.durable import DurableEventStore, DurableNarrativeStore
from event_mesh.services.events import apply_outcome

pytestmark = pytest.mark.integration


def make_event(event_id: str, timestamp: int, **overrides) -> DocumentableEvent:
    data = {
        "id": event_id,
        "event_name": "provider.connected",
        "source": "integrations",
        "timestamp": timestamp,
        "payload": {"provider": "stripe", "scopes": ["read", "write"]},
        "should_document": True,
    }
    data.update(overrides)
    return DocumentableEvent(**data)


@pytest.fixture
def store(db_session_factory) -> DurableEventStore:
    return DurableEventStore(session_factory=db_session_factory)


@pytest.fixture
def narratives(db_session_factory) -> DurableNarrativeStore:
    return DurableNarrativeStore(session_factory=db_session_factory)


class TestDurableEventStore:
    """Tests for DurableEventStore."""

    @pytest.mark.asyncio
    async def test_roundtrip_preserves_nested_fields(self, store):
        """Should store and load every optional part of an event."""
        event = make_event(
            "e1",
            100,
            related_events=["e0"],
            user_intent=UserIntent(
                problem_solved="p", pain_point="pp", goal="g", expected_outcome="eo",
            ),
            context=EventContext(decision="d", related_events=["e0"], category="feature"),
            metadata=EventMetadata(user_id="u1", session_id="s1", environment="prod"),
        )

        await store.put(event)

        assert await store.get("e1") == event

    @pytest.mark.asyncio
    async def test_null_payload_roundtrip(self, store):
        event = make_event("e1", 100, payload=None)

        await store.put(event)

        assert (await store.get("e1")).payload is None

    @pytest.mark.asyncio
    async def test_duplicate_id_raises_conflict(self, store):
        await store.put(make_event("e1", 100))

        with pytest.raises(ConflictError) as exc_info:
            await store.put(make_event("e1", 200))

        assert exc_info.value.message == "Event e1 already exists"
        assert (await store.get("e1")).timestamp == 100

    @pytest.mark.asyncio
    async def test_scan_orders_ties_by_insertion(self, store):
        """Should break timestamp ties by insertion order."""
        await store.put(make_event("late", 300))
        await store.put(make_event("tie-b", 200))
        await store.put(make_event("tie-a", 200))
        await store.put(make_event("early", 100))

        events = await store.scan(EventFilter())

        assert [e.id for e in events] == ["early", "tie-b", "tie-a", "late"]

    @pytest.mark.asyncio
    async def test_scan_filters(self, store):
        meta = EventMetadata(user_id="u1", session_id="s1", environment="dev")
        await store.put(make_event("a", 100, metadata=meta))
        await store.put(make_event("b", 200, source="webhooks", metadata=meta))
        await store.put(make_event("c", 300))

        by_user = await store.scan(EventFilter(user_id="u1", source="integrations"))
        by_time = await store.scan(EventFilter(start_time=200, end_time=300))

        assert [e.id for e in by_user] == ["a"]
        assert [e.id for e in by_time] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_get_many(self, store):
        await store.put(make_event("a", 100))
        await store.put(make_event("b", 200))

        found = await store.get_many(["b", "ghost", "a"])

        assert sorted(found) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_write_outcome(self, store):
        """Should persist only context and user intent."""
        await store.put(make_event("e1", 100))
        stored = await store.get("e1")

        updated = await store.write_outcome(apply_outcome(stored, "connected"))

        assert updated.context.outcome == "connected"
        assert (await store.get("e1")).context.outcome == "connected"

    @pytest.mark.asyncio
    async def test_write_outcome_missing_returns_none(self, store):
        assert await store.write_outcome(make_event("ghost", 1)) is None
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_count(self, store):
        await store.put(make_event("a", 100))

        assert await store.count() == 1


class TestUnavailableBackend:
    """Tests for error translation when the database cannot be reached."""

    @pytest.mark.asyncio
    async def test_unreachable_database_raises_backend_unavailable(self):
        from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

        engine = create_async_engine("sqlite+aiosqlite:////nonexistent-dir/events.db")
        store = DurableEventStore(
            session_factory=async_sessionmaker(engine, class_=AsyncSession)
        )

        try:
            with pytest.raises(BackendUnavailableError) as exc_info:
                await store.put(make_event("e1", 100))
        finally:
            await engine.dispose()

        assert exc_info.value.operation == "put"
        assert exc_info.value.event_id == "e1"

    @pytest.mark.asyncio
    async def test_misconfigured_factory_raises_backend_unavailable(self):
        def broken_provider():
            raise FileNotFoundError("Configuration file not found: database.yaml")

        store = DurableEventStore(factory_provider=broken_provider)

        with pytest.raises(BackendUnavailableError) as exc_info:
            await store.get("e1")

        assert exc_info.value.operation == "get"


class TestDurableNarrativeStore:
    """Tests for DurableNarrativeStore."""

    @pytest.mark.asyncio
    async def test_upsert_creates_then_merges(self, narratives):
        first = await narratives.upsert(
            "evt-1",
            {"ai_summary": "short", "code_snippets": [{"language": "sql", "code": "select 1"}]},
            datetime(2024, 5, 1, 12, 0),
            lambda: "n-1",
        )
        second = await narratives.upsert(
            "evt-1",
            {"ai_tags": ["db"]},
            datetime(2024, 5, 1, 13, 0),
            lambda: "n-2",
        )

        assert first.id == second.id == "n-1"
        assert second.ai_summary == "short"
        assert second.ai_tags == ["db"]
        assert second.code_snippets[0].code == "select 1"
        assert second.created_at == "2024-05-01T12:00:00.000Z"
        assert second.updated_at == "2024-05-01T13:00:00.000Z"

    @pytest.mark.asyncio
    async def test_get(self, narratives):
        assert await narratives.get("evt-1") is None

        saved = await narratives.upsert("evt-1", {}, datetime(2024, 5, 1), lambda: "n-1")

        assert await narratives.get("evt-1") == saved

    @pytest.mark.asyncio
    async def test_concurrent_create_reports_narrative_conflict(self, narratives):
        """Should name the narrative write when a racing insert wins."""
        await narratives.upsert("evt-1", {"ai_summary": "first"}, datetime(2024, 5, 1), lambda: "n-1")

        with patch.object(
            NarrativeContextRepository, "get_by_event_id", AsyncMock(return_value=None),
        ):
            with pytest.raises(ConflictError) as exc_info:
                await narratives.upsert(
                    "evt-1", {"ai_summary": "second"}, datetime(2024, 5, 2), lambda: "n-2",
                )

        assert exc_info.value.message == (
            "Narrative context for event evt-1 was created concurrently"
        )
        assert (await narratives.get("evt-1")).ai_summary == "first"
