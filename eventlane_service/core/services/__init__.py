"""Core services module."""

from eventlane_service.core.services.base import BaseService

__all__ = ["BaseService"]
