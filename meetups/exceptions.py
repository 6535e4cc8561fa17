"""
Error taxonomy for the meetup aggregation pipeline.

Every failure that crosses a component boundary is a MeetupError tagged with
an ErrorKind, so callers branch on `err.kind` instead of parsing messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Tag identifying the class of a pipeline failure."""
    TRANSPORT = "transport"
    DECODE = "decode"
    PROVIDER = "provider"
    NOT_FOUND = "not_found"
    TOP_LEVEL = "top_level"
    DEADLINE = "deadline"
    INTERNAL = "internal"


class MeetupError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    @staticmethod
    def from_kind(kind: str | ErrorKind, message: str) -> "MeetupError":
        """
        Rebuild an error from its kind tag and message.

        Used to turn a cached failure marker back into an exception.
        Unknown tags fall back to ProviderError.
        """
        try:
            kind = ErrorKind(kind)
        except ValueError:
            return ProviderError(message)
        return _ERRORS_BY_KIND[kind](message)


class TransportError(MeetupError):
    """Network or HTTP failure reaching an external dependency."""
    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class DecodeError(MeetupError):
    """Malformed response body."""
    kind = ErrorKind.DECODE


class ProviderError(MeetupError):
    """The upstream API reported a business-level error."""
    kind = ErrorKind.PROVIDER

    @classmethod
    def from_messages(cls, messages: list[str]) -> "ProviderError":
        return cls("\n".join(messages))


class NotFoundError(MeetupError):
    """A country or continent lookup had no result."""
    kind = ErrorKind.NOT_FOUND


class TopLevelError(MeetupError):
    """Group discovery failed; the whole request is aborted."""
    kind = ErrorKind.TOP_LEVEL


class DeadlineError(MeetupError):
    """A group load did not finish before the request deadline."""
    kind = ErrorKind.DEADLINE


_ERRORS_BY_KIND: dict[ErrorKind, type[MeetupError]] = {
    ErrorKind.TRANSPORT: TransportError,
    ErrorKind.DECODE: DecodeError,
    ErrorKind.PROVIDER: ProviderError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.TOP_LEVEL: TopLevelError,
    ErrorKind.DEADLINE: DeadlineError,
    ErrorKind.INTERNAL: MeetupError,
}
