"""
In-Memory Stores.

Process-wide fallback storage for environments without a reachable durable
backend. All state lives in a single ``FallbackRegistry`` that is created
once by ``init_fallback_registry()`` and cleared only by
``reset_fallback_registry()``.

The registry is shared by every request handled by the process, so all
reads and writes go through its lock.
"""

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from event_mesh.core.exceptions import ConflictError
from event_mesh.core.logging import get_logger
from event_mesh.core.utils import to_iso
from event_mesh.schemas.event import DocumentableEvent
from event_mesh.schemas.narrative import NarrativeContext
from event_mesh.stores.base import EventFilter, EventStore, NarrativeStore

logger = get_logger(__name__)


@dataclass
class FallbackRegistry:
    """Events in insertion order and narrative contexts keyed by event id."""

    events: dict[str, DocumentableEvent] = field(default_factory=dict)
    narratives: dict[str, NarrativeContext] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def clear(self) -> None:
        with self.lock:
            self.events.clear()
            self.narratives.clear()


_init_lock = threading.Lock()

# Read back from the module namespace so importlib.reload keeps the registry.
_registry: FallbackRegistry | None = globals().get("_registry")


def init_fallback_registry() -> FallbackRegistry:
    """Create the process-wide registry. Later calls return the same one."""
    global _registry
    with _init_lock:
        if _registry is None:
            _registry = FallbackRegistry()
            logger.debug("Fallback registry initialized")
        return _registry


def get_fallback_registry() -> FallbackRegistry:
    """
    Return the process-wide registry.

    Raises:
        RuntimeError: If init_fallback_registry() has not been called
    """
    if _registry is None:
        raise RuntimeError("Fallback registry not initialized")
    return _registry


def reset_fallback_registry() -> None:
    """Drop every event and narrative context held in memory."""
    if _registry is not None:
        _registry.clear()
        logger.info("Fallback registry reset")


class InMemoryEventStore(EventStore):
    """EventStore over the process-wide fallback registry."""

    name = "memory"

    def __init__(self, registry: FallbackRegistry | None = None) -> None:
        self._registry = registry or get_fallback_registry()

    async def put(self, event: DocumentableEvent) -> DocumentableEvent:
        with self._registry.lock:
            if event.id in self._registry.events:
                raise ConflictError(f"Event {event.id} already exists")
            self._registry.events[event.id] = event.model_copy(deep=True)
        return event.model_copy(deep=True)

    async def get(self, event_id: str) -> DocumentableEvent | None:
        with self._registry.lock:
            event = self._registry.events.get(event_id)
            return event.model_copy(deep=True) if event is not None else None

    async def get_many(self, event_ids: Iterable[str]) -> dict[str, DocumentableEvent]:
        with self._registry.lock:
            return {
                event_id: self._registry.events[event_id].model_copy(deep=True)
                for event_id in event_ids
                if event_id in self._registry.events
            }

    async def scan(self, filters: EventFilter) -> list[DocumentableEvent]:
        with self._registry.lock:
            matched = [
                event.model_copy(deep=True)
                for event in self._registry.events.values()
                if filters.matches(event)
            ]
        # sort is stable, so equal timestamps keep insertion order
        matched.sort(key=lambda event: event.timestamp)
        return matched

    async def write_outcome(self, event: DocumentableEvent) -> DocumentableEvent | None:
        with self._registry.lock:
            stored = self._registry.events.get(event.id)
            if stored is None:
                return None
            updated = stored.model_copy(
                update={
                    "context": event.context.model_copy(deep=True) if event.context else None,
                    "user_intent": (
                        event.user_intent.model_copy(deep=True) if event.user_intent else None
                    ),
                },
            )
            self._registry.events[event.id] = updated
            return updated.model_copy(deep=True)

    async def count(self) -> int:
        with self._registry.lock:
            return len(self._registry.events)


class InMemoryNarrativeStore(NarrativeStore):
    """NarrativeStore over the process-wide fallback registry."""

    name = "memory"

    def __init__(self, registry: FallbackRegistry | None = None) -> None:
        self._registry = registry or get_fallback_registry()

    async def get(self, event_id: str) -> NarrativeContext | None:
        with self._registry.lock:
            context = self._registry.narratives.get(event_id)
            return context.model_copy(deep=True) if context is not None else None

    async def upsert(
        self,
        event_id: str,
        fields: dict[str, Any],
        now: datetime,
        id_factory: Callable[[], str],
    ) -> NarrativeContext:
        timestamp = to_iso(now)
        with self._registry.lock:
            existing = self._registry.narratives.get(event_id)
            if existing is None:
                data: dict[str, Any] = {
                    "id": id_factory(),
                    "event_id": event_id,
                    "created_at": timestamp,
                }
            else:
                data = existing.model_dump()
            data.update(fields)
            data["updated_at"] = timestamp
            context = NarrativeContext.model_validate(data)
            self._registry.narratives[event_id] = context
            return context.model_copy(deep=True)
