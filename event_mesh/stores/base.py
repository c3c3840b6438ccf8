"""
Store Interfaces.

One polymorphic interface per record collection, with a durable (SQL) and an
in-memory variant of each. Services depend only on these interfaces; which
variant backs them is decided once, in ``event_mesh.stores.factory``.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from event_mesh.schemas.event import DocumentableEvent, EventHistoryQuery
from event_mesh.schemas.narrative import NarrativeContext


@dataclass(frozen=True)
class EventFilter:
    """
    Conjunctive event filter. ``None`` means "no constraint".

    Time bounds are inclusive Unix milliseconds.
    """

    event_name: str | None = None
    source: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    start_time: int | None = None
    end_time: int | None = None

    @classmethod
    def from_query(cls, query: EventHistoryQuery) -> "EventFilter":
        return cls(
            event_name=query.event_name,
            source=query.source,
            user_id=query.user_id,
            session_id=query.session_id,
            start_time=query.start_time,
            end_time=query.end_time,
        )

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.event_name,
                self.source,
                self.user_id,
                self.session_id,
                self.start_time,
                self.end_time,
            )
        )

    def matches(self, event: DocumentableEvent) -> bool:
        if self.event_name is not None and event.event_name != self.event_name:
            return False
        if self.source is not None and event.source != self.source:
            return False
        if self.user_id is not None:
            if event.metadata is None or event.metadata.user_id != self.user_id:
                return False
        if self.session_id is not None:
            if event.metadata is None or event.metadata.session_id != self.session_id:
                return False
        if self.start_time is not None and event.timestamp < self.start_time:
            return False
        if self.end_time is not None and event.timestamp > self.end_time:
            return False
        return True


class EventStore(ABC):
    """
    Keyed storage of documentable events.

    Implementations must treat every field except ``context`` and
    ``user_intent`` as write-once.
    """

    name: str

    @abstractmethod
    async def put(self, event: DocumentableEvent) -> DocumentableEvent:
        """
        Insert a new event.

        Raises:
            ConflictError: If an event with the same id already exists
        """

    @abstractmethod
    async def get(self, event_id: str) -> DocumentableEvent | None:
        """Return the event with ``event_id``, or None."""

    @abstractmethod
    async def get_many(self, event_ids: Iterable[str]) -> dict[str, DocumentableEvent]:
        """Return the subset of ``event_ids`` that exist, keyed by id."""

    @abstractmethod
    async def scan(self, filters: EventFilter) -> list[DocumentableEvent]:
        """
        Return matching events ordered by timestamp ascending, ties broken
        by insertion order.
        """

    @abstractmethod
    async def write_outcome(self, event: DocumentableEvent) -> DocumentableEvent | None:
        """
        Persist ``event.context`` and ``event.user_intent`` for an existing
        event. All other fields of ``event`` are ignored. Returns the stored
        event, or None if it does not exist.
        """

    async def count(self) -> int:
        return len(await self.scan(EventFilter()))


class NarrativeStore(ABC):
    """Keyed storage of narrative contexts, one per event id."""

    name: str

    @abstractmethod
    async def get(self, event_id: str) -> NarrativeContext | None:
        """Return the narrative context for ``event_id``, or None."""

    @abstractmethod
    async def upsert(
        self,
        event_id: str,
        fields: dict[str, Any],
        now: datetime,
        id_factory: Callable[[], str],
    ) -> NarrativeContext:
        """
        Create or partially update the narrative context for ``event_id``.

        ``fields`` holds only the attributes to overwrite. ``created_at`` is
        set to ``now`` on first write only; ``updated_at`` is set to ``now``
        on every write.
        """
