"""
Event History Model.

Database model for persisted documentable events.
"""

from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from event_mesh.models.base import Base


class EventRecord(Base):
    """
    Row in the event_history table.

    ``seq`` is a surrogate key that records insertion order, used to break
    timestamp ties. ``id`` is the public event identifier. Only ``context``
    and ``user_intent`` are ever rewritten after insert, by outcome backfill.
    """

    __tablename__ = "event_history"

    seq: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    event_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    source: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    timestamp: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        index=True,
    )
    payload: Mapped[Any] = mapped_column(
        JSON(none_as_null=True),
        nullable=True,
    )
    should_document: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    related_events: Mapped[list[str] | None] = mapped_column(
        JSON,
        nullable=True,
    )
    user_intent: Mapped[dict[str, Any] | None] = mapped_column(
        JSON,
        nullable=True,
    )
    context: Mapped[dict[str, Any] | None] = mapped_column(
        JSON,
        nullable=True,
    )
    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<EventRecord(id={self.id}, event_name={self.event_name!r})>"
