"""
Unit Tests for EventQueryEngine.

Builds small event graphs in the in-memory store and checks flat scans and
bounded traversal.
"""

import pytest

from event_mesh.core.exceptions import ValidationError
from event_mesh.schemas.event import DocumentableEvent, EventContext, EventHistoryQuery
from event_mesh.services.query import EventQueryEngine
from event_mesh.stores.memory import InMemoryEventStore


def make_event(
    event_id: str,
    timestamp: int,
    links: list[str] | None = None,
    legacy_links: list[str] | None = None,
    **overrides,
) -> DocumentableEvent:
    data = {
        "id": event_id,
        "event_name": "workflow.completed",
        "source": "engine",
        "timestamp": timestamp,
        "should_document": True,
        "related_events": legacy_links,
        "context": EventContext(related_events=links) if links is not None else None,
    }
    data.update(overrides)
    return DocumentableEvent(**data)


@pytest.fixture
def store(fallback_registry) -> InMemoryEventStore:
    return InMemoryEventStore(fallback_registry)


@pytest.fixture
def engine(store) -> EventQueryEngine:
    return EventQueryEngine(store, default_max_depth=5, max_depth_limit=25)


async def put_all(store, *events):
    for event in events:
        await store.put(event)


def ids(events) -> list[str]:
    return [event.id for event in events]


class TestFlatQuery:
    """Tests for queries without traversal."""

    async def test_no_filters_returns_everything_by_timestamp(self, engine, store):
        await put_all(store, make_event("b", 20), make_event("a", 10))

        result = await engine.query(EventHistoryQuery())

        assert ids(result) == ["a", "b"]

    async def test_filters_combine_with_and(self, engine, store):
        await put_all(
            store,
            make_event("a", 10, event_name="widget.created"),
            make_event("b", 20, event_name="widget.created", source="other"),
            make_event("c", 30),
        )

        result = await engine.query(
            EventHistoryQuery(event_name="widget.created", source="engine")
        )

        assert ids(result) == ["a"]

    async def test_event_id_without_include_related_is_flat(self, engine, store):
        """Should ignore event_id when include_related is false."""
        await put_all(store, make_event("a", 10, ["b"]), make_event("b", 20))

        result = await engine.query(EventHistoryQuery(event_id="a"))

        assert ids(result) == ["a", "b"]


class TestTraversal:
    """Tests for graph traversal."""

    async def test_chain_within_depth(self, engine, store):
        """Should reach every event of A -> B -> C."""
        await put_all(store, make_event("A", 1, ["B"]), make_event("B", 2, ["C"]), make_event("C", 3))

        result = await engine.query(
            EventHistoryQuery(event_id="A", include_related=True, max_depth=5)
        )

        assert ids(result) == ["A", "B", "C"]

    async def test_depth_bounds_expansion(self, engine, store):
        """Should stop after max_depth hops."""
        await put_all(store, make_event("A", 1, ["B"]), make_event("B", 2, ["C"]), make_event("C", 3))

        result = await engine.query(
            EventHistoryQuery(event_id="A", include_related=True, max_depth=1)
        )

        assert ids(result) == ["A", "B"]

    async def test_depth_zero_returns_seed_only(self, engine, store):
        await put_all(store, make_event("A", 1, ["B"]), make_event("B", 2))

        result = await engine.query(
            EventHistoryQuery(event_id="A", include_related=True, max_depth=0)
        )

        assert ids(result) == ["A"]

    async def test_default_depth_is_used(self, store):
        """Should fall back to the configured default depth."""
        engine = EventQueryEngine(store, default_max_depth=2)
        chain = [make_event(f"n{i}", i, [f"n{i + 1}"]) for i in range(5)]
        await put_all(store, *chain)

        result = await engine.query(EventHistoryQuery(event_id="n0", include_related=True))

        assert ids(result) == ["n0", "n1", "n2"]

    async def test_cycle_terminates_without_duplicates(self, engine, store):
        """Should visit each event once in A <-> B."""
        await put_all(store, make_event("A", 1, ["B"]), make_event("B", 2, ["A"]))

        result = await engine.query(
            EventHistoryQuery(event_id="A", include_related=True, max_depth=10)
        )

        assert ids(result) == ["A", "B"]

    async def test_diamond_visits_shared_node_once(self, engine, store):
        await put_all(
            store,
            make_event("A", 1, ["B", "C"]),
            make_event("B", 2, ["D"]),
            make_event("C", 3, ["D"]),
            make_event("D", 4),
        )

        result = await engine.query(EventHistoryQuery(event_id="A", include_related=True))

        assert ids(result) == ["A", "B", "C", "D"]

    async def test_dangling_links_are_skipped(self, engine, store):
        """Should ignore links to ids that were never stored."""
        await put_all(store, make_event("A", 1, ["ghost", "B"]), make_event("B", 2))

        result = await engine.query(EventHistoryQuery(event_id="A", include_related=True))

        assert ids(result) == ["A", "B"]

    async def test_follows_legacy_and_context_links(self, engine, store):
        """Should follow the union of both link fields."""
        await put_all(
            store,
            make_event("A", 1, links=["C"], legacy_links=["B"]),
            make_event("B", 2),
            make_event("C", 3),
        )

        result = await engine.query(EventHistoryQuery(event_id="A", include_related=True))

        assert ids(result) == ["A", "B", "C"]

    async def test_unknown_seed_returns_empty(self, engine, store):
        await put_all(store, make_event("A", 1))

        result = await engine.query(EventHistoryQuery(event_id="nope", include_related=True))

        assert result == []

    async def test_filters_narrow_traversal_result(self, engine, store):
        """Should follow links through events the filters exclude."""
        await put_all(
            store,
            make_event("A", 1, ["B"]),
            make_event("B", 2, ["C"], source="relay"),
            make_event("C", 3),
        )

        result = await engine.query(
            EventHistoryQuery(event_id="A", include_related=True, source="engine")
        )

        assert ids(result) == ["A", "C"]

    async def test_depth_over_limit_raises(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            await engine.query(
                EventHistoryQuery(event_id="A", include_related=True, max_depth=26)
            )

        assert "maxDepth" in exc_info.value.details

    async def test_depth_at_limit_is_allowed(self, engine, store):
        await put_all(store, make_event("A", 1))

        result = await engine.query(
            EventHistoryQuery(event_id="A", include_related=True, max_depth=25)
        )

        assert ids(result) == ["A"]
