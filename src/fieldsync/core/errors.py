"""Error taxonomy for the cache and sync engine.

- StorageError: a statement against the local cache failed
- TableNotFoundError: the statement referenced a table that does not exist
- InvalidArgumentError: a caller omitted or malformed a required argument
- RemoteError: a call to the remote CRM failed, possibly with a known error code
- UnexpectedError: anything uncaught during a refresh, surfaced with a generic message
- MetadataRefreshError: a metadata refresh failed; carries a user-facing message

Storage and metadata layers propagate these without retrying.
"""

from __future__ import annotations


class FieldSyncError(Exception):
    """Base class for every error raised by this package."""


class StorageError(FieldSyncError):
    """Raised when a statement against the local cache fails.

    Attributes:
        statement: The SQL statement that failed.
        original_error: The underlying driver exception.
    """

    def __init__(self, statement: str, original_error: Exception) -> None:
        self.statement = statement
        self.original_error = original_error
        super().__init__(f"Statement failed: {original_error} [{statement}]")


class TableNotFoundError(StorageError):
    """Raised when a statement targets a table that has not been created."""

    def __init__(self, table_name: str, statement: str, original_error: Exception) -> None:
        self.table_name = table_name
        super().__init__(statement, original_error)


class InvalidArgumentError(FieldSyncError, ValueError):
    """Raised when a required argument (filter, values, record shape) is missing or wrong."""


class RemoteError(FieldSyncError):
    """Raised when the remote CRM rejects or fails a call.

    Attributes:
        error_code: Remote or application error code (e.g. ``invalid_record_type``).
        status_code: HTTP status code when the failure came from an HTTP response.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class MetadataRefreshError(FieldSyncError):
    """Raised when a metadata refresh aborts.

    The message is always one of the fixed user-facing messages.

    Attributes:
        original_error: The exception that aborted the refresh.
    """

    def __init__(self, user_message: str, original_error: Exception) -> None:
        self.user_message = user_message
        self.original_error = original_error
        super().__init__(user_message)


class UnexpectedError(MetadataRefreshError):
    """Raised when a refresh fails for a reason with no specific user message."""
