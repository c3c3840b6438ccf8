"""
Durable Stores.

SQL-backed EventStore and NarrativeStore. Each operation runs in its own
session and transaction, so a failed write never leaves a half-open session
behind for the caller.

SQLAlchemy exceptions are translated here:
    IntegrityError                       → ConflictError
    OperationalError / InterfaceError    → BackendUnavailableError
    OSError (refused, timed out, ...)    → BackendUnavailableError
    any other SQLAlchemyError            → DatabaseError
"""

from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from event_mesh.core.exceptions import (
    BackendUnavailableError,
    ConflictError,
    DatabaseError,
)
from event_mesh.core.logging import get_logger
from event_mesh.repositories.event import (
    EventRepository,
    event_to_columns,
    record_to_event,
)
from event_mesh.repositories.narrative import (
    NarrativeContextRepository,
    record_to_narrative,
)
from event_mesh.schemas.event import DocumentableEvent
from event_mesh.schemas.narrative import NarrativeContext
from event_mesh.stores.base import EventFilter, EventStore, NarrativeStore

logger = get_logger(__name__)

T = TypeVar("T")
SessionFactory = Callable[[], async_sessionmaker[AsyncSession]]

# Conflict messages for unique-constraint violations, by store operation
CONFLICT_MESSAGES = {
    "put": "Event {event_id} already exists",
    "save_narrative": "Narrative context for event {event_id} was created concurrently",
}


class _SqlBackend:
    """Session handling and error translation shared by the durable stores."""

    name = "durable"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        factory_provider: SessionFactory | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._factory_provider = factory_provider

    def _factory(self, operation: str, event_id: str | None) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            if self._factory_provider is None:
                from event_mesh.core.database import get_session_factory

                self._factory_provider = get_session_factory
            try:
                self._session_factory = self._factory_provider()
            except BackendUnavailableError as e:
                logger.warning(
                    "Durable store not configured",
                    extra={"operation": operation, "event_id": event_id, "error": e.message},
                )
                raise BackendUnavailableError(
                    e.message, operation=operation, event_id=event_id,
                ) from e
            except (RuntimeError, FileNotFoundError, ValueError) as e:
                logger.warning(
                    "Durable store configuration invalid",
                    extra={"operation": operation, "event_id": event_id, "error": str(e)},
                )
                raise BackendUnavailableError(
                    "Durable event store is not configured",
                    operation=operation,
                    event_id=event_id,
                ) from e
        return self._session_factory

    async def _execute_db_operation(
        self,
        operation: str,
        event_id: str | None,
        work: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        """
        Run ``work`` inside a committed transaction.

        Raises:
            ConflictError: For unique constraint violations
            BackendUnavailableError: When the database cannot be reached
            DatabaseError: For other database errors
        """
        factory = self._factory(operation, event_id)
        try:
            async with factory() as session:
                async with session.begin():
                    return await work(session)
        except IntegrityError as e:
            logger.warning(
                "Database integrity error",
                extra={"operation": operation, "event_id": event_id, "error": str(e)},
            )
            error_str = str(e).lower()
            if "unique" in error_str or "duplicate" in error_str:
                template = CONFLICT_MESSAGES.get(operation, "Conflicting write during {operation}")
                raise ConflictError(
                    template.format(event_id=event_id, operation=operation)
                ) from e
            raise DatabaseError(
                f"Database constraint violation: {operation}",
                operation=operation,
                event_id=event_id,
            ) from e
        except (OperationalError, InterfaceError, OSError) as e:
            logger.error(
                "Durable store unreachable",
                extra={"operation": operation, "event_id": event_id, "error": str(e)},
            )
            raise BackendUnavailableError(
                f"Durable store unreachable during {operation}",
                operation=operation,
                event_id=event_id,
            ) from e
        except SQLAlchemyError as e:
            logger.error(
                "Database error",
                extra={"operation": operation, "event_id": event_id, "error": str(e)},
            )
            raise DatabaseError(
                f"Database operation failed: {operation}",
                operation=operation,
                event_id=event_id,
            ) from e


class DurableEventStore(_SqlBackend, EventStore):
    """EventStore over the event_history table."""

    async def put(self, event: DocumentableEvent) -> DocumentableEvent:
        async def work(session: AsyncSession) -> DocumentableEvent:
            record = await EventRepository(session).create(**event_to_columns(event))
            return record_to_event(record)

        return await self._execute_db_operation("put", event.id, work)

    async def get(self, event_id: str) -> DocumentableEvent | None:
        async def work(session: AsyncSession) -> DocumentableEvent | None:
            record = await EventRepository(session).get_by_id_or_none(event_id)
            return record_to_event(record) if record is not None else None

        return await self._execute_db_operation("get", event_id, work)

    async def get_many(self, event_ids: Iterable[str]) -> dict[str, DocumentableEvent]:
        ids = list(event_ids)

        async def work(session: AsyncSession) -> dict[str, DocumentableEvent]:
            records = await EventRepository(session).get_by_ids(ids)
            return {record.id: record_to_event(record) for record in records}

        return await self._execute_db_operation("get_many", ",".join(ids), work)

    async def scan(self, filters: EventFilter) -> list[DocumentableEvent]:
        async def work(session: AsyncSession) -> list[DocumentableEvent]:
            records = await EventRepository(session).find(filters)
            return [record_to_event(record) for record in records]

        events = await self._execute_db_operation("scan", None, work)
        return [event for event in events if filters.matches(event)]

    async def write_outcome(self, event: DocumentableEvent) -> DocumentableEvent | None:
        columns = event_to_columns(event)

        async def work(session: AsyncSession) -> DocumentableEvent | None:
            record = await EventRepository(session).update_outcome_fields(
                event.id,
                context=columns["context"],
                user_intent=columns["user_intent"],
            )
            return record_to_event(record) if record is not None else None

        return await self._execute_db_operation("write_outcome", event.id, work)

    async def count(self) -> int:
        async def work(session: AsyncSession) -> int:
            return await EventRepository(session).count()

        return await self._execute_db_operation("count", None, work)


class DurableNarrativeStore(_SqlBackend, NarrativeStore):
    """NarrativeStore over the narrative_context table."""

    async def get(self, event_id: str) -> NarrativeContext | None:
        async def work(session: AsyncSession) -> NarrativeContext | None:
            record = await NarrativeContextRepository(session).get_by_event_id(event_id)
            return record_to_narrative(record) if record is not None else None

        return await self._execute_db_operation("get_narrative", event_id, work)

    async def upsert(
        self,
        event_id: str,
        fields: dict[str, Any],
        now: datetime,
        id_factory: Callable[[], str],
    ) -> NarrativeContext:
        async def work(session: AsyncSession) -> NarrativeContext:
            record = await NarrativeContextRepository(session).upsert(
                event_id, fields, now, id_factory,
            )
            return record_to_narrative(record)

        return await self._execute_db_operation("save_narrative", event_id, work)
