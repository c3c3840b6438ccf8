"""
Narrative Context Model.

Large supplementary content kept out of event_history so event writes stay
small. One row per event id.
"""

from typing import Any

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_mesh.models.base import Base, TimestampMixin, UUIDMixin


class NarrativeContextRecord(UUIDMixin, TimestampMixin, Base):
    """Row in the narrative_context table, keyed by event_id."""

    __tablename__ = "narrative_context"

    event_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    long_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    screenshots: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    code_snippets: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    related_docs: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    ai_narrative: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<NarrativeContextRecord(event_id={self.event_id})>"
