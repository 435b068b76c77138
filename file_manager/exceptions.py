"""Errors raised by the file manager and its storage engines."""


class FileManagerError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(FileManagerError):
    """Invalid construction-time settings (gate bound, instance name, engine settings)."""


class UsageError(FileManagerError):
    """The caller asked for something the engine or object cannot do."""


class InvalidKeyError(UsageError, ValueError):
    """A key or prefix is malformed or escapes the storage root."""


class StorageError(FileManagerError):
    """Base class for failures reported by a storage engine."""


class NotFoundError(StorageError):
    """The requested key does not exist in the backend."""

    def __init__(self, key: str, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"Object not found: {key}")


class BackendError(StorageError):
    """The backend failed for a reason other than a missing key."""


class BackendReadError(BackendError):
    pass


class BackendWriteError(BackendError):
    pass


class BackendSigningError(BackendError):
    pass
