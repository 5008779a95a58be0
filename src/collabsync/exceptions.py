"""Library exceptions for the collabsync package."""


class CollabSyncError(Exception):
    """Base exception for collabsync library."""

    pass


class AuthenticationError(CollabSyncError):
    """
    Raised when a connection presents a missing or invalid credential.

    Fatal to the connection attempt. The server forwards ``client_message``
    to the client as the ``connect_error`` reason.

    Attributes:
        reason: Short reason ("No token provided" or "Invalid token")
    """

    NO_TOKEN = "No token provided"
    INVALID_TOKEN = "Invalid token"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Authentication error: {reason}")

    @property
    def client_message(self) -> str:
        """Message sent to the client with the connection refusal."""
        return f"Authentication error: {self.reason}"


class StoreUnavailableError(CollabSyncError):
    """
    Raised when the shared lock store cannot be reached.

    Lock operations fail closed on this error: a lock is never granted
    when the store did not confirm it.

    Attributes:
        operation: Store operation that failed (acquire, release, get, ...)
        key: Lock key involved, if any
    """

    def __init__(self, operation: str, key: str | None = None, message: str = "") -> None:
        self.operation = operation
        self.key = key
        target = f" for '{key}'" if key else ""
        detail = f": {message}" if message else ""
        super().__init__(f"Lock store unavailable during {operation}{target}{detail}")


class BroadcastError(CollabSyncError):
    """Raised when a message cannot be handed to the transport."""

    def __init__(self, event: str, message: str) -> None:
        self.event = event
        super().__init__(f"Failed to broadcast '{event}': {message}")


class RelayDegradedError(CollabSyncError):
    """
    Raised while probing the cross-process relay when it cannot be reached.

    Never surfaces to clients. The server falls back to process-local
    delivery and reports the degraded state.
    """

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"Relay at {url} unavailable: {message}")


class SessionNotFoundError(CollabSyncError):
    """Raised when a connection has no registered session."""

    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id
        super().__init__(f"No session registered for connection {connection_id}")


class InvalidLockRequestError(CollabSyncError):
    """Raised when a lock message payload cannot be parsed."""

    pass


__all__ = [
    "CollabSyncError",
    "AuthenticationError",
    "StoreUnavailableError",
    "BroadcastError",
    "RelayDegradedError",
    "SessionNotFoundError",
    "InvalidLockRequestError",
]
