"""
Events API Endpoints.

REST API endpoints for publishing, querying and annotating documentable
events. Request and response bodies use camelCase field names.
"""

from fastapi import APIRouter, Depends, Query

from event_mesh.core.dependencies import Mesh, RequestId
from event_mesh.core.exceptions import NotFoundError
from event_mesh.schemas.base import ApiResponse, ResponseMetadata
from event_mesh.schemas.event import (
    DocumentableEvent,
    DocumentableEventCreate,
    EventHistoryQuery,
    OutcomeUpdate,
)
from event_mesh.schemas.narrative import NarrativeContext, NarrativeContextUpdate

router = APIRouter()


def get_history_query(
    event_id: str | None = Query(default=None, alias="eventId"),
    event_name: str | None = Query(default=None, alias="eventName"),
    source: str | None = Query(default=None),
    user_id: str | None = Query(default=None, alias="userId"),
    session_id: str | None = Query(default=None, alias="sessionId"),
    start_time: int | None = Query(default=None, ge=0, alias="startTime"),
    end_time: int | None = Query(default=None, ge=0, alias="endTime"),
    include_related: bool = Query(default=False, alias="includeRelated"),
    max_depth: int | None = Query(default=None, ge=0, alias="maxDepth"),
) -> EventHistoryQuery:
    """Collect query-string filters into an EventHistoryQuery."""
    return EventHistoryQuery(
        event_id=event_id,
        event_name=event_name,
        source=source,
        user_id=user_id,
        session_id=session_id,
        start_time=start_time,
        end_time=end_time,
        include_related=include_related,
        max_depth=max_depth,
    )


@router.post(
    "",
    response_model=ApiResponse[DocumentableEvent],
    status_code=201,
    summary="Publish an event",
    description="Persist a documentable event. id, timestamp and shouldDocument are filled in when omitted.",
)
async def publish_event(
    data: DocumentableEventCreate,
    mesh: Mesh,
    request_id: RequestId,
) -> ApiResponse[DocumentableEvent]:
    """Publish an event."""
    event = await mesh.publish_documentable(data)
    return ApiResponse(data=event, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "",
    response_model=ApiResponse[list[DocumentableEvent]],
    summary="Query event history",
    description=(
        "Filter events by name, source, user, session and time range. "
        "With eventId and includeRelated, walk relatedEvents links from that event."
    ),
)
async def query_events(
    mesh: Mesh,
    request_id: RequestId,
    options: EventHistoryQuery = Depends(get_history_query),
) -> ApiResponse[list[DocumentableEvent]]:
    """Query event history."""
    events = await mesh.query_event_history(options)
    return ApiResponse(data=events, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/{event_id}",
    response_model=ApiResponse[DocumentableEvent],
    summary="Get an event",
)
async def get_event(
    event_id: str,
    mesh: Mesh,
    request_id: RequestId,
) -> ApiResponse[DocumentableEvent]:
    """Get an event by ID."""
    event = await mesh.get_event(event_id)
    if event is None:
        raise NotFoundError(f"Event {event_id} not found")
    return ApiResponse(data=event, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/{event_id}/outcome",
    response_model=ApiResponse[DocumentableEvent],
    summary="Record an event outcome",
    description="Backfill context.outcome and, when the event has a user intent, userIntent.impactMetric.",
)
async def update_event_outcome(
    event_id: str,
    data: OutcomeUpdate,
    mesh: Mesh,
    request_id: RequestId,
) -> ApiResponse[DocumentableEvent]:
    """Record the outcome of an event."""
    event = await mesh.update_event_outcome(event_id, data)
    return ApiResponse(data=event, metadata=ResponseMetadata(request_id=request_id))


@router.put(
    "/{event_id}/narrative",
    response_model=ApiResponse[NarrativeContext],
    summary="Save narrative context",
    description="Create or partially update the narrative context of an event.",
)
async def save_narrative_context(
    event_id: str,
    data: NarrativeContextUpdate,
    mesh: Mesh,
    request_id: RequestId,
) -> ApiResponse[NarrativeContext]:
    """Save narrative context for an event."""
    context = await mesh.save_narrative_context(event_id, data)
    return ApiResponse(data=context, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/{event_id}/narrative",
    response_model=ApiResponse[NarrativeContext],
    summary="Get narrative context",
)
async def get_narrative_context(
    event_id: str,
    mesh: Mesh,
    request_id: RequestId,
) -> ApiResponse[NarrativeContext]:
    """Get the narrative context of an event."""
    context = await mesh.get_narrative_context(event_id)
    if context is None:
        raise NotFoundError(f"Narrative context for event {event_id} not found")
    return ApiResponse(data=context, metadata=ResponseMetadata(request_id=request_id))
