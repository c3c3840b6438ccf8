# SQLAlchemy models package
from event_mesh.models.base import Base
from event_mesh.models.event import EventRecord
from event_mesh.models.narrative import NarrativeContextRecord

__all__ = [
    "Base",
    "EventRecord",
    "NarrativeContextRecord",
]
