class InvalidSlotFormat(ValueError):
    """Raised when a date or time label cannot be turned into a TimeSlot."""
    pass


class DataFetchError(RuntimeError):
    """Raised by store adapters when the underlying document store call fails."""
    pass


class SnapshotWriteError(RuntimeError):
    """Raised when the derived availability snapshot could not be persisted."""
    pass


class StoreNotConfigured(RuntimeError):
    """Raised when the selected store provider is missing required settings."""
    pass
