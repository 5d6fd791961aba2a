"""Infrastructure layer for external service integrations."""

from .availability import AvailabilityTracker
from .redis import AsyncRedisBackend, BackendUnavailableError

__all__ = [
    "AsyncRedisBackend",
    "AvailabilityTracker",
    "BackendUnavailableError",
]
