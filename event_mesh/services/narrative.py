"""
Narrative Context Service.

Upserts and reads the supplementary documentation stored alongside events.
Narrative contexts have their own lifecycle: saving one does not require the
referenced event to exist, and events never require a narrative.
"""

from collections.abc import Callable
from datetime import datetime

from event_mesh.core.exceptions import ValidationError
from event_mesh.core.utils import new_id, utc_now
from event_mesh.schemas.narrative import NarrativeContext, NarrativeContextUpdate
from event_mesh.services.base import BaseService
from event_mesh.stores.base import NarrativeStore


class NarrativeContextService(BaseService):
    """Service for narrative context upserts."""

    def __init__(
        self,
        narratives: NarrativeStore,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        super().__init__()
        self.narratives = narratives
        self._clock = clock
        self._id_factory = id_factory

    async def save(self, event_id: str, data: NarrativeContextUpdate) -> NarrativeContext:
        """
        Create or partially update the narrative context of an event.

        Only fields present in ``data`` are written.

        Raises:
            ValidationError: If event_id is blank
        """
        if not event_id or not event_id.strip():
            raise ValidationError(
                "Required fields missing",
                details={"missing_fields": ["eventId"]},
            )

        fields = data.model_dump(exclude_unset=True)
        context = await self.narratives.upsert(
            event_id, fields, self._clock(), self._id_factory,
        )

        self._log_operation(
            "Narrative context saved",
            event_id=event_id,
            fields=sorted(fields),
        )
        return context

    async def get(self, event_id: str) -> NarrativeContext | None:
        """Get the narrative context of an event, or None if never saved."""
        return await self.narratives.get(event_id)
