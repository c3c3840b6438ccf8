"""
Event Service.

Publish pipeline, lookup and outcome backfill for documentable events.

Publishing degrades to the in-memory fallback store when the primary store
cannot take the write; reads and outcome updates never degrade and surface
backend failures to the caller.
"""

from collections.abc import Callable

from event_mesh.core.exceptions import NotFoundError, StoreError
from event_mesh.core.logging import log_store_failure
from event_mesh.core.utils import new_id, now_ms
from event_mesh.schemas.event import (
    DocumentableEvent,
    DocumentableEventCreate,
    EventContext,
    OutcomeUpdate,
)
from event_mesh.services.base import BaseService
from event_mesh.services.classifier import classify
from event_mesh.stores.base import EventStore
from event_mesh.stores.factory import StoreSet


def apply_outcome(
    event: DocumentableEvent,
    outcome: str,
    impact_metric: str | None = None,
) -> DocumentableEvent:
    """
    Return a copy of ``event`` with the outcome backfilled.

    ``impact_metric`` lands on ``user_intent`` only when the event already
    carries a user intent; an absent intent stays absent.
    """
    context = (event.context or EventContext()).model_copy(update={"outcome": outcome})
    user_intent = event.user_intent
    if impact_metric is not None and user_intent is not None:
        user_intent = user_intent.model_copy(update={"impact_metric": impact_metric})
    return event.model_copy(update={"context": context, "user_intent": user_intent})


class EventService(BaseService):
    """
    Service for event writes and lookups.

    Wraps the primary event store and the optional fallback store that
    receives publishes the primary could not accept.
    """

    def __init__(
        self,
        stores: StoreSet,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        super().__init__()
        self.events = stores.events
        self.fallback_events = stores.fallback_events
        self._clock = clock
        self._id_factory = id_factory

    def materialize(self, data: DocumentableEventCreate) -> DocumentableEvent:
        """Fill in id, timestamp and should_document where the caller left them out."""
        return DocumentableEvent(
            id=data.id or self._id_factory(),
            event_name=data.event_name,
            source=data.source,
            timestamp=data.timestamp if data.timestamp is not None else self._clock(),
            payload=data.payload,
            should_document=classify(data.event_name, data.should_document),
            related_events=data.related_events,
            user_intent=data.user_intent,
            context=data.context,
            metadata=data.metadata,
        )

    async def publish(self, data: DocumentableEventCreate) -> DocumentableEvent:
        """
        Publish a new event.

        Args:
            data: Publish input

        Returns:
            The event as persisted, including generated fields

        Raises:
            ConflictError: If the id is already taken
            BackendUnavailableError: If the primary store failed and no
                fallback store is configured
        """
        event = self.materialize(data)
        self._log_operation(
            "Publishing event",
            event_id=event.id,
            event_name=event.event_name,
            should_document=event.should_document,
        )

        try:
            stored = await self.events.put(event)
        except StoreError as e:
            if self.fallback_events is None:
                raise
            log_store_failure(
                self._logger,
                "Primary event store write failed, degrading to in-memory store",
                e,
                level="warning",
                event_id=event.id,
                store=self.events.name,
            )
            stored = await self.fallback_events.put(event)

        self._log_debug("Event published", event_id=stored.id)
        return stored

    async def _locate(self, event_id: str) -> tuple[EventStore, DocumentableEvent | None]:
        event = await self.events.get(event_id)
        if event is not None or self.fallback_events is None:
            return self.events, event
        return self.fallback_events, await self.fallback_events.get(event_id)

    async def get_event(self, event_id: str) -> DocumentableEvent | None:
        """
        Get an event by ID.

        Consults the fallback store when the primary store has no such event.
        """
        _, event = await self._locate(event_id)
        return event

    async def update_outcome(self, event_id: str, data: OutcomeUpdate) -> DocumentableEvent:
        """
        Backfill the outcome of an existing event.

        This is the only mutation allowed after publish. Last write wins.

        Raises:
            NotFoundError: If no event has this id; nothing is created
        """
        store, event = await self._locate(event_id)
        if event is None:
            self._logger.warning(
                "Outcome update for unknown event",
                extra={"operation": "update_outcome", "event_id": event_id},
            )
            raise NotFoundError(f"Event {event_id} not found")

        if data.impact_metric is not None and event.user_intent is None:
            self._log_debug(
                "Impact metric dropped, event has no user intent",
                event_id=event_id,
            )

        updated = await store.write_outcome(
            apply_outcome(event, data.outcome, data.impact_metric)
        )
        if updated is None:
            raise NotFoundError(f"Event {event_id} not found")

        self._log_operation(
            "Event outcome updated",
            event_id=event_id,
            store=store.name,
        )
        return updated
