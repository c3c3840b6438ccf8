"""
Auto-Documentation Classifier.

Decides whether an event belongs in the documentable corpus when the
publisher did not say so explicitly.
"""

DOCUMENTABLE_EVENT_NAMES = frozenset({
    "widget.created",
    "provider.connected",
    "automation.triggered",
    "workflow.completed",
    "error.occurred",
})


def classify(event_name: str, explicit_flag: bool | None = None) -> bool:
    """
    Return whether an event should be documented.

    An explicit flag from the caller always wins. Otherwise only the
    exact names in DOCUMENTABLE_EVENT_NAMES are documented.
    """
    if explicit_flag is not None:
        return explicit_flag
    return event_name in DOCUMENTABLE_EVENT_NAMES
