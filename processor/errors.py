"""Error types raised inside the sync pipeline."""


class SyncError(Exception):
    """Base class for pipeline errors."""


class FetchError(SyncError):
    """Network failure, timeout or non-2xx response from an upstream source."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(SyncError):
    """Upstream payload could not be parsed."""


class DateError(SyncError):
    """Event date is missing or unparseable."""


class StoreWriteError(SyncError):
    """Calendar store rejected a create, update or delete."""


class StoreReadError(SyncError):
    """Calendar store lookup or scan failed."""
