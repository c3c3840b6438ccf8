"""
FastAPI Dependencies.

Shared dependencies for request handling.
"""

import uuid
from typing import Annotated

from fastapi import Depends, Header

from event_mesh.services.mesh import EventMesh, get_event_mesh


async def get_request_id(x_request_id: str | None = Header(None)) -> str:
    """
    Extract or generate request ID from headers.

    Used for request tracing and correlation.
    """
    return x_request_id or str(uuid.uuid4())


RequestId = Annotated[str, Depends(get_request_id)]

# Override get_event_mesh in app.dependency_overrides to swap backends in tests
Mesh = Annotated[EventMesh, Depends(get_event_mesh)]
