"""
Event Repository.

Data access layer for the event_history table. Converts between
EventRecord rows and DocumentableEvent models.
"""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from event_mesh.models.event import EventRecord
from event_mesh.repositories.base import BaseRepository
from event_mesh.schemas.event import DocumentableEvent
from event_mesh.stores.base import EventFilter


def record_to_event(record: EventRecord) -> DocumentableEvent:
    """Convert a database row to a DocumentableEvent."""
    return DocumentableEvent.model_validate(
        {
            "id": record.id,
            "event_name": record.event_name,
            "source": record.source,
            "timestamp": record.timestamp,
            "payload": record.payload,
            "should_document": record.should_document,
            "related_events": record.related_events,
            "user_intent": record.user_intent,
            "context": record.context,
            "metadata": record.event_metadata,
        }
    )


def _dump(model: Any) -> dict[str, Any] | None:
    """Store nested models with their wire (camelCase) keys."""
    return model.to_wire() if model is not None else None


def event_to_columns(event: DocumentableEvent) -> dict[str, Any]:
    """Convert a DocumentableEvent to EventRecord column values."""
    return {
        "id": event.id,
        "event_name": event.event_name,
        "source": event.source,
        "timestamp": event.timestamp,
        "payload": event.payload,
        "should_document": event.should_document,
        "related_events": event.related_events,
        "user_intent": _dump(event.user_intent),
        "context": _dump(event.context),
        "event_metadata": _dump(event.metadata),
    }


class EventRepository(BaseRepository[EventRecord]):
    """
    Repository for EventRecord.

    Rows are append-only apart from update_outcome_fields(), which rewrites
    the context and user_intent columns.
    """

    model = EventRecord

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get_by_ids(self, ids: Iterable[str]) -> list[EventRecord]:
        """Get every record whose id is in ``ids``. Missing ids are skipped."""
        id_list = list(dict.fromkeys(ids))
        if not id_list:
            return []
        result = await self.session.execute(
            select(EventRecord).where(EventRecord.id.in_(id_list))
        )
        return list(result.scalars().all())

    async def find(self, filters: EventFilter) -> list[EventRecord]:
        """
        Get records matching the column filters, oldest first.

        Metadata filters (user_id, session_id) live inside a JSON column and
        are applied by the caller.
        """
        query = select(EventRecord)
        if filters.event_name is not None:
            query = query.where(EventRecord.event_name == filters.event_name)
        if filters.source is not None:
            query = query.where(EventRecord.source == filters.source)
        if filters.start_time is not None:
            query = query.where(EventRecord.timestamp >= filters.start_time)
        if filters.end_time is not None:
            query = query.where(EventRecord.timestamp <= filters.end_time)

        result = await self.session.execute(
            query.order_by(EventRecord.timestamp.asc(), EventRecord.seq.asc())
        )
        return list(result.scalars().all())

    async def update_outcome_fields(
        self,
        id: str,
        context: dict[str, Any] | None,
        user_intent: dict[str, Any] | None,
    ) -> EventRecord | None:
        """
        Rewrite the context and user_intent columns of one record.

        Returns:
            Updated record, or None if no record has this id
        """
        instance = await self.get_by_id_or_none(id)
        if instance is None:
            return None

        instance.context = context
        instance.user_intent = user_intent

        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def count(self) -> int:
        """Get the total number of stored events."""
        result = await self.session.execute(
            select(func.count()).select_from(EventRecord)
        )
        return result.scalar_one()
