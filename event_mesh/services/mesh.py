"""
Event Mesh Facade.

The operations consumed by API route handlers:

    publish_documentable(input)              -> DocumentableEvent
    query_event_history(options)             -> list[DocumentableEvent]
    get_event(id)                            -> DocumentableEvent | None
    update_event_outcome(id, update)         -> DocumentableEvent
    save_narrative_context(event_id, fields) -> NarrativeContext
    get_narrative_context(event_id)          -> NarrativeContext | None

Inputs may be schema instances or plain camelCase/snake_case mappings.

Usage:
    from event_mesh.services.mesh import get_event_mesh

    mesh = get_event_mesh()
    event = await mesh.publish_documentable(
        {"eventName": "widget.created", "source": "widget_wizard", "payload": {}}
    )
"""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from event_mesh.core.config import AppConfig
from event_mesh.core.exceptions import ValidationError
from event_mesh.core.logging import get_logger
from event_mesh.core.utils import new_id, now_ms, utc_now
from event_mesh.schemas.event import (
    DocumentableEvent,
    DocumentableEventCreate,
    EventHistoryQuery,
    OutcomeUpdate,
)
from event_mesh.schemas.narrative import NarrativeContext, NarrativeContextUpdate
from event_mesh.services.events import EventService
from event_mesh.services.narrative import NarrativeContextService
from event_mesh.services.query import DEFAULT_MAX_DEPTH, EventQueryEngine
from event_mesh.stores.factory import StoreSet, build_stores

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _coerce(schema_cls: type[SchemaT], data: SchemaT | Mapping[str, Any] | None) -> SchemaT:
    """Validate a mapping into ``schema_cls``; schema instances pass through."""
    if isinstance(data, schema_cls):
        return data
    try:
        return schema_cls.model_validate(dict(data or {}))
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid {schema_cls.__name__}",
            details={
                "validation_errors": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Validation error"),
                        "type": err.get("type", "unknown"),
                    }
                    for err in e.errors()
                ]
            },
        ) from e


class EventMesh:
    """Persistence and query core of the event mesh."""

    def __init__(
        self,
        stores: StoreSet,
        default_max_depth: int = DEFAULT_MAX_DEPTH,
        max_depth_limit: int | None = None,
        clock: Callable[[], int] = now_ms,
        wall_clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.stores = stores
        self.event_service = EventService(stores, clock=clock, id_factory=id_factory)
        self.query_engine = EventQueryEngine(
            stores.events,
            default_max_depth=default_max_depth,
            max_depth_limit=max_depth_limit,
        )
        self.narrative_service = NarrativeContextService(
            stores.narratives, clock=wall_clock, id_factory=id_factory,
        )

    @classmethod
    def from_config(cls, app_config: AppConfig) -> "EventMesh":
        """Build an EventMesh wired to the configured backends."""
        settings = app_config.event_mesh
        return cls(
            build_stores(app_config),
            default_max_depth=settings.default_max_depth,
            max_depth_limit=settings.max_depth_limit,
        )

    async def publish_documentable(
        self, data: DocumentableEventCreate | Mapping[str, Any],
    ) -> DocumentableEvent:
        return await self.event_service.publish(_coerce(DocumentableEventCreate, data))

    async def query_event_history(
        self, options: EventHistoryQuery | Mapping[str, Any] | None = None,
    ) -> list[DocumentableEvent]:
        return await self.query_engine.query(_coerce(EventHistoryQuery, options))

    async def get_event(self, event_id: str) -> DocumentableEvent | None:
        return await self.event_service.get_event(event_id)

    async def update_event_outcome(
        self, event_id: str, data: OutcomeUpdate | Mapping[str, Any],
    ) -> DocumentableEvent:
        return await self.event_service.update_outcome(event_id, _coerce(OutcomeUpdate, data))

    async def save_narrative_context(
        self, event_id: str, data: NarrativeContextUpdate | Mapping[str, Any],
    ) -> NarrativeContext:
        return await self.narrative_service.save(event_id, _coerce(NarrativeContextUpdate, data))

    async def get_narrative_context(self, event_id: str) -> NarrativeContext | None:
        return await self.narrative_service.get(event_id)


_event_mesh: EventMesh | None = None


def get_event_mesh() -> EventMesh:
    """Get the shared EventMesh (lazy initialization from configuration)."""
    global _event_mesh
    if _event_mesh is None:
        from event_mesh.core.config import get_app_config

        _event_mesh = EventMesh.from_config(get_app_config())
        logger.info(
            "Event mesh created",
            extra={
                "backend": _event_mesh.stores.events.name,
                "fallback": _event_mesh.stores.fallback_events is not None,
            },
        )
    return _event_mesh


def reset_event_mesh() -> None:
    """Forget the shared EventMesh so the next call rebuilds it."""
    global _event_mesh
    _event_mesh = None
