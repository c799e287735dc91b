"""Exception types raised by cachegate."""

from typing import Any, Dict, Optional


class CacheGateError(Exception):
    """Base exception for cachegate errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class UnknownDriverError(CacheGateError):
    """Raised when a driver name is not registered or cannot be constructed."""

    def __init__(self, driver: Optional[str], details: Optional[Dict[str, Any]] = None):
        self.driver = driver
        super().__init__(f"Cache driver not valid: {driver!r}", details)


class BackendOperationError(CacheGateError):
    """Raised inside a backend when its client is missing or a call fails.

    Backends catch this themselves and report a miss or ``False``.
    """
