"""
Narrative Context Schemas.

Supplementary documentation attached to an event. ``created_at`` and
``updated_at`` are ISO-8601 strings on the wire, unlike the integer
millisecond ``timestamp`` of events.
"""

from pydantic import Field

from event_mesh.schemas.event import CamelModel, WireModel


class CodeSnippet(WireModel):
    language: str
    code: str


class NarrativeContextUpdate(CamelModel):
    """
    Partial narrative content. Only fields present in the request are
    written; omitted fields keep their stored value.
    """

    long_description: str | None = None
    screenshots: list[str] | None = None
    code_snippets: list[CodeSnippet] | None = None
    related_docs: list[str] | None = None
    ai_narrative: str | None = None
    ai_summary: str | None = None
    ai_tags: list[str] | None = None


class NarrativeContext(WireModel):
    """Stored narrative context for one event."""

    id: str
    event_id: str
    long_description: str | None = None
    screenshots: list[str] | None = None
    code_snippets: list[CodeSnippet] | None = None
    related_docs: list[str] | None = None
    ai_narrative: str | None = None
    ai_summary: str | None = None
    ai_tags: list[str] | None = None
    created_at: str = Field(description="ISO-8601 creation time")
    updated_at: str = Field(description="ISO-8601 last write time")


NARRATIVE_FIELDS = tuple(NarrativeContextUpdate.model_fields)
