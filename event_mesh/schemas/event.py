"""
Event Schemas.

Pydantic models for documentable events. Field names are snake_case in
Python and camelCase on the wire (``eventName``, ``shouldDocument``, ...).

``payload`` is opaque, provider-defined JSON and is never validated
against a fixed shape here.
"""

from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, model_serializer
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for wire models: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys and absent fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WireModel(CamelModel):
    """
    Model returned to clients.

    Optional fields left as None are omitted from the serialized form.
    Fields named in ``_keep_none`` are always written, so a client can tell
    an explicit null from a field the model does not have.
    """

    _keep_none: ClassVar[frozenset[str]] = frozenset()

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler):
        data = handler(self)
        keep = self._keep_none | {to_camel(name) for name in self._keep_none}
        return {key: value for key, value in data.items() if value is not None or key in keep}


class UserIntent(WireModel):
    """Why the user took an action, captured at creation time."""

    problem_solved: str
    pain_point: str
    goal: str
    expected_outcome: str
    impact_metric: str | None = None


class EventContext(WireModel):
    """Causal and workflow metadata. ``related_events`` are outgoing links."""

    decision: str | None = None
    outcome: str | None = None
    related_events: list[str] | None = None
    category: Literal["architecture", "bug-fix", "feature", "refactor"] | None = None


class EventMetadata(WireModel):
    """Technical provenance. Not used by business logic."""

    user_id: str
    session_id: str
    environment: Literal["dev", "prod"]


class DocumentableEventCreate(CamelModel):
    """
    Publish input.

    ``id``, ``timestamp`` and ``should_document`` are filled in by the
    publish pipeline when omitted.
    """

    id: str | None = Field(default=None, min_length=1, max_length=64)
    event_name: str = Field(..., min_length=1, max_length=255, examples=["widget.created"])
    source: str = Field(..., min_length=1, max_length=255, examples=["widget_wizard"])
    timestamp: int | None = Field(default=None, ge=0, description="Unix time in milliseconds")
    payload: Any = None
    should_document: bool | None = None
    related_events: list[str] | None = Field(
        default=None,
        description="Legacy top-level links; prefer context.relatedEvents",
    )
    user_intent: UserIntent | None = None
    context: EventContext | None = None
    metadata: EventMetadata | None = None


class DocumentableEvent(WireModel):
    """A persisted, fully materialized event. ``payload`` is written even when null."""

    _keep_none: ClassVar[frozenset[str]] = frozenset({"payload"})

    id: str
    event_name: str
    source: str
    timestamp: int
    payload: Any = None
    should_document: bool
    related_events: list[str] | None = None
    user_intent: UserIntent | None = None
    context: EventContext | None = None
    metadata: EventMetadata | None = None

    def linked_ids(self) -> list[str]:
        """
        Outgoing link targets, legacy field first, deduplicated in order.
        """
        links = list(self.related_events or [])
        if self.context is not None and self.context.related_events:
            links.extend(self.context.related_events)
        return list(dict.fromkeys(links))


class OutcomeUpdate(CamelModel):
    """Outcome backfill request."""

    outcome: str = Field(..., min_length=1)
    impact_metric: str | None = None


class EventHistoryQuery(CamelModel):
    """
    Query options for event history.

    All filters are optional and combined with AND. Graph traversal runs
    only when both ``event_id`` and ``include_related`` are set.
    """

    event_id: str | None = None
    event_name: str | None = None
    source: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    start_time: int | None = Field(default=None, ge=0)
    end_time: int | None = Field(default=None, ge=0)
    include_related: bool = False
    max_depth: int | None = Field(default=None, ge=0)

    @property
    def traverses(self) -> bool:
        return bool(self.include_related and self.event_id)
