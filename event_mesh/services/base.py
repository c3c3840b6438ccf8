"""
Base Service.

Base class for all services providing common patterns for business logic.
Services orchestrate stores and implement business rules; they never talk
to SQLAlchemy directly.

Usage:
    from event_mesh.services.base import BaseService

    class EventService(BaseService):
        def __init__(self, stores: StoreSet) -> None:
            super().__init__()
            self.events = stores.events
"""

from typing import Any

from event_mesh.core.logging import get_logger


class BaseService:
    """
    Base class for all services.

    Provides:
    - Logging context
    - Operation logging helpers

    Subclasses should:
    - Call super().__init__() in their __init__
    - Keep stores as attributes
    - Implement business logic methods
    """

    def __init__(self) -> None:
        self._logger = get_logger(self.__class__.__module__)

    def _log_operation(
        self,
        operation: str,
        **context: Any,
    ) -> None:
        """
        Log a service operation with context.

        Args:
            operation: Description of the operation
            **context: Additional context to include in log
        """
        self._logger.info(
            operation,
            extra={"service": self.__class__.__name__, **context},
        )

    def _log_debug(
        self,
        message: str,
        **context: Any,
    ) -> None:
        """Log debug information."""
        self._logger.debug(
            message,
            extra={"service": self.__class__.__name__, **context},
        )
