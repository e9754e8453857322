"""Error types raised by the DayCounter core."""


class DayCounterError(Exception):
    """Base class for recoverable DayCounter failures."""


class FormatError(DayCounterError):
    """An import payload (JSON or ICS) is malformed."""


class StorageError(DayCounterError):
    """The storage adapter failed; the in-memory collection is unchanged."""


class PermissionDeniedError(DayCounterError):
    """Notification permission was refused or revoked."""
