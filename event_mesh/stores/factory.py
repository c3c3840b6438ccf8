"""
Backend Selection.

Decides once, from event_mesh.yaml and features.yaml, which store variants
back the event mesh:

    backend: durable  → primary durable, in-memory fallback for publish
                        when event_mesh_fallback_enabled
    backend: memory   → primary in-memory, no fallback
"""

from dataclasses import dataclass

from event_mesh.core.config import AppConfig
from event_mesh.core.logging import get_logger
from event_mesh.stores.base import EventStore, NarrativeStore
from event_mesh.stores.durable import DurableEventStore, DurableNarrativeStore
from event_mesh.stores.memory import (
    InMemoryEventStore,
    InMemoryNarrativeStore,
    init_fallback_registry,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoreSet:
    """The stores an EventMesh is wired to."""

    events: EventStore
    narratives: NarrativeStore
    fallback_events: EventStore | None = None


def build_stores(app_config: AppConfig) -> StoreSet:
    """Build the configured store variants."""
    registry = init_fallback_registry()
    backend = app_config.event_mesh.backend

    if backend == "memory":
        logger.info("Event mesh using in-memory backend")
        return StoreSet(
            events=InMemoryEventStore(registry),
            narratives=InMemoryNarrativeStore(registry),
        )

    fallback = (
        InMemoryEventStore(registry)
        if app_config.features.event_mesh_fallback_enabled
        else None
    )
    logger.info(
        "Event mesh using durable backend",
        extra={"fallback_enabled": fallback is not None},
    )
    return StoreSet(
        events=DurableEventStore(),
        narratives=DurableNarrativeStore(),
        fallback_events=fallback,
    )
