"""Base service class for business logic."""

from __future__ import annotations

import logging

from eventlane_service.infra.logging import get_lazy_logger


class BaseService:
    """Base class for all service classes.

    Loggers:
        - self.logger: Standard logger for INFO/WARNING/ERROR (always evaluated)
        - self._lazy: Lazy logger for DEBUG (zero overhead when DEBUG disabled)

    Example:
        class WebhookDispatcher(BaseService):
            async def queue(self, event_type: str, vendor_id: int) -> int:
                self.logger.info("Dispatching", extra={"event_type": event_type})
                self._lazy.debug(lambda: f"State: {expensive_computation()}")
    """

    def __init__(self) -> None:
        """Initialize base service with loggers."""
        class_name = self.__class__.__name__
        # Standard logger for INFO/WARNING/ERROR
        self.logger = logging.getLogger(class_name)
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger(class_name)
