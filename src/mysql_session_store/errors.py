from __future__ import annotations

from typing import Optional


class SessionStoreError(Exception):
    """Base class for every error raised or reported by the session store."""


class ConfigurationError(SessionStoreError, ValueError):
    """Raised at construction when a configured value has the wrong type."""

    def __init__(self, field: str, actual_type: str, expected: str) -> None:
        self.field = field
        self.actual_type = actual_type
        self.expected = expected
        super().__init__(f"The {field} setting must be {expected}. Received: {actual_type}")


class StoreConnectionError(SessionStoreError):
    """A connection attempt failed. Logged by the connection manager, never raised."""


class QueryError(SessionStoreError):
    """The database rejected a statement, or no connection was available to run it."""

    def __init__(self, message: str, *, statement: Optional[str] = None) -> None:
        self.statement = statement
        super().__init__(message)


class SerializationError(SessionStoreError):
    """A session payload could not be encoded to, or decoded from, its stored form."""
