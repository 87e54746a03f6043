"""Storage-level exceptions raised by repository implementations."""


class StorageError(Exception):
    """The storage backend failed or is unavailable."""


class StorageConflictError(StorageError):
    """A write was rejected by a uniqueness, check, or version constraint.

    Attributes:
        constraint: Name of the constraint that fired, when the backend reports it.

    """

    def __init__(self, message: str, *, constraint: str | None = None) -> None:
        self.constraint = constraint
        super().__init__(message)
