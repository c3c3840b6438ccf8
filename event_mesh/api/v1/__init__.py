"""
API Version 1 Router.

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from event_mesh.api.v1.endpoints import events

router = APIRouter()

router.include_router(events.router, prefix="/events", tags=["events"])
