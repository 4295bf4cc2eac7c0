"""Error taxonomy shared by the client, repositories and sync engine."""


class MigratorError(Exception):
    """Base class for all errors raised by the migrator."""


class NotFoundError(MigratorError):
    """Raised when a product or product model does not exist."""

    def __init__(self, key: str, kind: str = "node"):
        self.key = key
        self.kind = kind
        super().__init__(f"{kind} '{key}' not found")


class ValidationError(MigratorError):
    """Raised when the destination rejects a payload.

    Attributes:
        field_errors: (property, message) pairs reported by the API
    """

    def __init__(self, message: str, field_errors: list[tuple[str, str]] | None = None):
        self.field_errors: list[tuple[str, str]] = field_errors or []
        super().__init__(message)


class TransportError(MigratorError):
    """Raised on network, authentication or unexpected HTTP failures."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class MalformedDataError(MigratorError):
    """Raised when a node lacks its identity field."""


class ChangeStreamError(MigratorError):
    """Raised when the next page of a change feed cannot be fetched."""


class SyncCancelledError(MigratorError):
    """Raised when a caller cancels a running sync."""
