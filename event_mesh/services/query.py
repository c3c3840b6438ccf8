"""
Event Query Engine.

Filtered retrieval of event history, plus bounded breadth-first traversal of
event links for reconstructing workflows.

Traversal follows the union of each event's legacy ``relatedEvents`` and
``context.relatedEvents``. Links to unknown ids are skipped and links back to
visited events are ignored; neither is an error.
"""

from event_mesh.core.exceptions import ValidationError
from event_mesh.schemas.event import DocumentableEvent, EventHistoryQuery
from event_mesh.services.base import BaseService
from event_mesh.stores.base import EventFilter, EventStore

DEFAULT_MAX_DEPTH = 5


class EventQueryEngine(BaseService):
    """Runs flat scans and graph traversals against one event store."""

    def __init__(
        self,
        events: EventStore,
        default_max_depth: int = DEFAULT_MAX_DEPTH,
        max_depth_limit: int | None = None,
    ) -> None:
        super().__init__()
        self.events = events
        self.default_max_depth = default_max_depth
        self.max_depth_limit = max_depth_limit

    async def query(self, options: EventHistoryQuery) -> list[DocumentableEvent]:
        """
        Query event history.

        Without traversal, returns every event matching the filters ordered
        by timestamp. With ``event_id`` and ``include_related`` set, returns
        the seed and its linked events in discovery order, narrowed by the
        same filters.
        """
        filters = EventFilter.from_query(options)

        if not options.traverses:
            events = await self.events.scan(filters)
            self._log_debug("Event history scanned", matched=len(events))
            return events

        max_depth = self._resolve_max_depth(options.max_depth)
        discovered = await self.traverse(options.event_id, max_depth)
        if filters.is_empty:
            return discovered
        return [event for event in discovered if filters.matches(event)]

    def _resolve_max_depth(self, requested: int | None) -> int:
        if requested is None:
            return self.default_max_depth
        if self.max_depth_limit is not None and requested > self.max_depth_limit:
            raise ValidationError(
                "maxDepth too large",
                details={"maxDepth": f"Maximum is {self.max_depth_limit}"},
            )
        return requested

    async def traverse(self, seed_id: str, max_depth: int) -> list[DocumentableEvent]:
        """
        Breadth-first walk from ``seed_id``, at most ``max_depth`` hops.

        Each level is fetched in one store call. Returns the seed followed
        by newly discovered events, level by level, in link order; an
        unknown seed yields an empty list.
        """
        seed = (await self.events.get_many([seed_id])).get(seed_id)
        if seed is None:
            self._log_debug("Traversal seed not found", event_id=seed_id)
            return []

        visited = {seed_id}
        result = [seed]
        frontier = [seed]
        depth = 0
        dangling = 0

        while frontier and depth < max_depth:
            next_ids: list[str] = []
            for event in frontier:
                for linked_id in event.linked_ids():
                    if linked_id not in visited:
                        visited.add(linked_id)
                        next_ids.append(linked_id)
            if not next_ids:
                break

            found = await self.events.get_many(next_ids)
            frontier = [found[linked_id] for linked_id in next_ids if linked_id in found]
            dangling += len(next_ids) - len(frontier)
            result.extend(frontier)
            depth += 1

        self._log_debug(
            "Event graph traversed",
            event_id=seed_id,
            max_depth=max_depth,
            depth_reached=depth,
            discovered=len(result),
            dangling_links=dangling,
        )
        return result
