# Pydantic schemas package
from event_mesh.schemas.base import (
    ApiResponse,
    ErrorDetail,
    ErrorResponse,
    ResponseMetadata,
)
from event_mesh.schemas.event import (
    DocumentableEvent,
    DocumentableEventCreate,
    EventContext,
    EventHistoryQuery,
    EventMetadata,
    OutcomeUpdate,
    UserIntent,
)
from event_mesh.schemas.narrative import (
    CodeSnippet,
    NarrativeContext,
    NarrativeContextUpdate,
)

__all__ = [
    "ApiResponse",
    "CodeSnippet",
    "DocumentableEvent",
    "DocumentableEventCreate",
    "ErrorDetail",
    "ErrorResponse",
    "EventContext",
    "EventHistoryQuery",
    "EventMetadata",
    "NarrativeContext",
    "NarrativeContextUpdate",
    "OutcomeUpdate",
    "ResponseMetadata",
    "UserIntent",
]
