"""Exceptions raised by the log store.

Adapters translate driver errors into this hierarchy so callers can tell
connectivity problems from rejected writes and failed queries.
"""


class LogStoreError(Exception):
    """Base exception for log store failures."""


class StoreConnectionError(LogStoreError):
    """Raised when the backing store is unreachable or rejects authentication."""


class ConfigurationError(StoreConnectionError):
    """Raised when store configuration is missing or malformed."""


class ClosedError(StoreConnectionError):
    """Raised when the store is used after it has been closed."""


class StorageWriteError(LogStoreError):
    """Raised when a record cannot be written. Writes are never retried."""


class InvalidRecordError(StorageWriteError):
    """Raised when a reported record is rejected before reaching storage."""


class StorageQueryError(LogStoreError):
    """Raised when a query against the store fails."""
