"""Reachability flag for the Redis backend."""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class AvailabilityTracker:
    """Tracks whether the backing store is currently reachable.

    The flag starts out False and is only changed by connection lifecycle
    events reported by the backend:
    - connection established -> True
    - connection error -> False
    - health check -> True on a successful round trip, False otherwise
    """

    def __init__(self) -> None:
        self._available: bool = False
        self.last_error: Optional[str] = None

    @property
    def available(self) -> bool:
        """Whether the backing store is believed reachable."""
        return self._available

    def mark_connected(self) -> None:
        """Record a successful connection."""
        if not self._available:
            logger.info("Redis marked available")
        self._available = True
        self.last_error = None

    def mark_error(self, error: BaseException) -> None:
        """Record a connection error.

        Args:
            error: Exception raised by the Redis client
        """
        if self._available:
            logger.error(f"Redis marked unavailable: {error}")
        self._available = False
        self.last_error = str(error)

    def record_health_check(self, ok: bool, error: Optional[BaseException] = None) -> bool:
        """Record the result of a health check.

        Anything short of a confirmed round trip counts as unreachable.

        Args:
            ok: True if the PING got a valid reply
            error: Exception raised by the PING, if any

        Returns:
            The updated availability flag
        """
        if ok:
            if not self._available:
                logger.info("Redis connection restored")
            self._available = True
            self.last_error = None
        else:
            if self._available:
                logger.warning(f"Redis health check failed: {error or 'no PONG'}")
            self._available = False
            self.last_error = str(error) if error else "PING returned no PONG"
        return self._available
