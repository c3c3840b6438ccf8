"""
Narrative Context Repository.

Data access layer for the narrative_context table.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from event_mesh.core.utils import to_iso
from event_mesh.models.narrative import NarrativeContextRecord
from event_mesh.repositories.base import BaseRepository
from event_mesh.schemas.narrative import NARRATIVE_FIELDS, NarrativeContext


def record_to_narrative(record: NarrativeContextRecord) -> NarrativeContext:
    """Convert a database row to a NarrativeContext."""
    data: dict[str, Any] = {name: getattr(record, name) for name in NARRATIVE_FIELDS}
    data.update(
        id=record.id,
        event_id=record.event_id,
        created_at=to_iso(record.created_at),
        updated_at=to_iso(record.updated_at),
    )
    return NarrativeContext.model_validate(data)


class NarrativeContextRepository(BaseRepository[NarrativeContextRecord]):
    """Repository for NarrativeContextRecord, addressed by event id."""

    model = NarrativeContextRecord

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get_by_event_id(self, event_id: str) -> NarrativeContextRecord | None:
        """Get the narrative context row for an event, if any."""
        result = await self.session.execute(
            select(NarrativeContextRecord).where(
                NarrativeContextRecord.event_id == event_id
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        event_id: str,
        fields: dict[str, Any],
        now: datetime,
        id_factory: Callable[[], str],
    ) -> NarrativeContextRecord:
        """
        Insert the row for ``event_id`` or overwrite the given fields.

        Args:
            event_id: Event the narrative belongs to
            fields: Column values to write; other columns are left untouched
            now: Write time, used for updated_at (and created_at on insert)
            id_factory: Generates the row id on insert

        Returns:
            The stored row
        """
        instance = await self.get_by_event_id(event_id)
        if instance is None:
            return await self.create(
                id=id_factory(),
                event_id=event_id,
                created_at=now,
                updated_at=now,
                **fields,
            )

        for key, value in fields.items():
            setattr(instance, key, value)
        instance.updated_at = now

        await self.session.flush()
        await self.session.refresh(instance)
        return instance
