"""Exception types shared across meowchat."""


class MeowchatError(Exception):
    """Base class for all meowchat errors."""


class DispatchError(MeowchatError):
    """A model request could not produce a reply.

    The message is user-facing: the controller shows it in the thread.
    """


class ConfigurationError(DispatchError):
    """A required credential is missing; raised before any network call."""


class TransportError(DispatchError):
    """The provider answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(DispatchError):
    """The provider answered successfully but the body lacks expected fields."""


class ThreadNotFoundError(MeowchatError, KeyError):
    """No thread with the given id exists."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class ThreadBusyError(MeowchatError):
    """A send to this thread is already in flight."""


class StorageError(MeowchatError):
    """The key-value storage file could not be parsed."""
